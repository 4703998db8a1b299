from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import SESSION_KEY, get_current_user
from app.core.database import get_db
from app.models import models
from app.schemas import schemas
from app.services import accounts

router = APIRouter(prefix="/api", tags=["auth"])

@router.post("/register", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register(user_in: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    user = accounts.register(db, user_in)
    request.session[SESSION_KEY] = user.id
    return user

@router.post("/login", response_model=schemas.UserOut)
def login(credentials: schemas.LoginIn, request: Request, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, credentials.username, credentials.password)
    request.session.clear()
    request.session[SESSION_KEY] = user.id
    return user

@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}

@router.get("/user", response_model=schemas.UserOut)
def current_user(user: models.User = Depends(get_current_user)):
    return user
