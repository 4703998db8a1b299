from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import Unauthorized, Forbidden
from app.models import models

SESSION_KEY = "user_id"


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[models.User]:
    user_id = request.session.get(SESSION_KEY)
    if user_id is None:
        return None
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        # the account behind this session was deleted
        request.session.clear()
    return user


def get_current_user(user: Optional[models.User] = Depends(get_optional_user)) -> models.User:
    if user is None:
        raise Unauthorized()
    return user


def get_admin_user(user: Optional[models.User] = Depends(get_optional_user)) -> models.User:
    if user is None:
        raise Unauthorized()
    if not user.is_admin:
        raise Forbidden()
    return user
