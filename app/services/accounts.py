import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import NotFound, Conflict, InvalidOperation, Unauthorized
from app.core.security import hash_password, verify_password
from app.models import models
from app.schemas import schemas
from app.services.ledger import count_active_for_account

logger = logging.getLogger("elibrary.accounts")

MAX_PASSWORD_BYTES = 72


def get_account(db: Session, account_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == account_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def get_by_username(db: Session, username: str) -> Optional[models.User]:
    return (db.query(models.User)
            .filter(func.lower(models.User.username) == username.strip().lower())
            .first())


def _check_unique(db: Session, username: str = None, email: str = None, exclude_id: int = None):
    if username is not None:
        existing = get_by_username(db, username)
        if existing and existing.id != exclude_id:
            raise Conflict("Username already exists")
    if email:
        query = db.query(models.User).filter(func.lower(models.User.email) == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(models.User.id != exclude_id)
        if query.first():
            raise Conflict("Email already registered")


def _flush_unique(db: Session):
    # a concurrent insert can pass _check_unique and still hit the unique index
    try:
        db.flush()
    except IntegrityError as exc:
        raise Conflict("Username or email already exists") from exc


def _create(db: Session, username: str, password: str, full_name: str,
            email: str = None, is_admin: bool = False) -> models.User:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidOperation("Password cannot be longer than 72 bytes")
    _check_unique(db, username=username, email=email)
    user = models.User(
        username=username.strip(),
        password=hash_password(password),
        full_name=full_name.strip(),
        email=email.strip() if email else None,
        is_admin=is_admin,
    )
    with transaction(db):
        db.add(user)
        _flush_unique(db)
    db.refresh(user)
    logger.info(f"Created user id={user.id} username={user.username} admin={user.is_admin}")
    return user


def register(db: Session, user_in: schemas.UserCreate) -> models.User:
    # self-registration never grants the admin role
    return _create(db, user_in.username, user_in.password, user_in.full_name, email=user_in.email)


def create_admin(db: Session, username: str, password: str, full_name: str,
                 email: str = None) -> models.User:
    return _create(db, username, password, full_name, email=email, is_admin=True)


def authenticate(db: Session, username: str, password: str) -> models.User:
    user = get_by_username(db, username)
    if not user or not verify_password(password, user.password):
        logger.info(f"Failed login for username={username}")
        raise Unauthorized("Invalid username or password")
    logger.info(f"User {user.id} logged in")
    return user


def list_accounts(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.username).all()


def update_account(db: Session, account_id: int, user_upd: schemas.UserUpdate) -> models.User:
    user = get_account(db, account_id)
    data = user_upd.model_dump(exclude_unset=True)
    _check_unique(db, username=data.get('username'), email=data.get('email'), exclude_id=user.id)
    with transaction(db):
        for k, v in data.items():
            if v is None and k in ('username', 'full_name', 'is_admin'):
                continue
            setattr(user, k, v)
        _flush_unique(db)
    db.refresh(user)
    logger.info(f"Updated user id={user.id}")
    return user


def delete_account(db: Session, account_id: int, requester_id: int) -> None:
    if account_id == requester_id:
        raise InvalidOperation("Cannot delete your own account")
    user = get_account(db, account_id)
    if count_active_for_account(db, user.id) > 0:
        raise InvalidOperation("Cannot delete a user with active borrows")
    with transaction(db):
        db.delete(user)
    logger.info(f"Deleted user id={account_id} by user {requester_id}")
