"""Borrow/return ledger and availability accounting.

``Book.available_copies`` is a counter kept in step with the ledger: every
change to it happens inside the same transaction as the ledger transition
that causes it.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.database import transaction
from app.core.errors import (NotFound, Unavailable, AlreadyBorrowed, AlreadyReturned,
                             Forbidden, InvalidOperation)
from app.models import models

logger = logging.getLogger("elibrary.ledger")


def due_date_for(borrowed_at: datetime) -> datetime:
    return borrowed_at + timedelta(days=settings.loan_days)


def _active_borrow(db: Session, account_id: int, book_id: int) -> Optional[models.Borrow]:
    return (db.query(models.Borrow)
            .filter(models.Borrow.user_id == account_id,
                    models.Borrow.book_id == book_id,
                    models.Borrow.is_returned == False)  # noqa: E712
            .first())


def borrow(db: Session, account_id: int, book_id: int, due_date: datetime = None) -> models.Borrow:
    """Lend one copy of ``book_id`` to ``account_id``.

    Preconditions are checked in order (book exists, a copy is available, the
    account has no active borrow of this book) before anything is written.
    The ledger insert and the counter decrement commit together.
    """
    with transaction(db):
        book = (db.query(models.Book)
                .filter(models.Book.id == book_id)
                .with_for_update()
                .first())
        if not book:
            raise NotFound("Book not found")
        if book.available_copies <= 0:
            raise Unavailable()
        if _active_borrow(db, account_id, book_id):
            raise AlreadyBorrowed()

        now = datetime.utcnow()
        if due_date is not None and due_date <= now:
            raise InvalidOperation("Due date must be in the future")

        # conditional decrement: a concurrent borrow may have taken the last copy
        result = db.execute(
            update(models.Book)
            .where(models.Book.id == book_id, models.Book.available_copies > 0)
            .values(available_copies=models.Book.available_copies - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Unavailable()

        loan = models.Borrow(
            user_id=account_id,
            book_id=book_id,
            borrow_date=now,
            due_date=due_date or due_date_for(now),
            return_date=None,
            is_returned=False,
        )
        db.add(loan)
    db.refresh(loan)
    db.refresh(book)
    logger.info(f"User {account_id} borrowed book {book_id} borrow {loan.id}")
    return loan


def return_borrow(db: Session, borrow_id: int, requester_id: int,
                  requester_is_admin: bool = False) -> models.Borrow:
    """Move a ledger entry to its terminal returned state.

    Only the owning account or an admin may return an entry. The counter is
    incremented in the same transaction and never rises above total_copies.
    """
    with transaction(db):
        loan = db.query(models.Borrow).filter(models.Borrow.id == borrow_id).first()
        if not loan:
            raise NotFound("Borrow record not found")
        if loan.user_id != requester_id and not requester_is_admin:
            raise Forbidden("You don't have permission to return this book")
        if loan.is_returned:
            raise AlreadyReturned()

        now = max(datetime.utcnow(), loan.borrow_date)
        result = db.execute(
            update(models.Borrow)
            .where(models.Borrow.id == borrow_id, models.Borrow.is_returned == False)  # noqa: E712
            .values(is_returned=True, return_date=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyReturned()

        book = (db.query(models.Book)
                .filter(models.Book.id == loan.book_id)
                .with_for_update()
                .first())
        if book is not None:
            if book.available_copies >= book.total_copies:
                logger.warning(f"Book {book.id} already at {book.total_copies} available copies; "
                               f"return of borrow {borrow_id} leaves the counter capped")
            db.execute(
                update(models.Book)
                .where(models.Book.id == book.id)
                .values(available_copies=case(
                    (models.Book.available_copies < models.Book.total_copies,
                     models.Book.available_copies + 1),
                    else_=models.Book.total_copies,
                ))
                .execution_options(synchronize_session=False)
            )
    db.refresh(loan)
    if loan.book is not None:
        db.refresh(loan.book)
    logger.info(f"Borrow {borrow_id} returned by user {requester_id}")
    return loan


def reconcile_availability(db: Session, book_id: int) -> int:
    """Return the ledger-derived available count for a book."""
    book = db.query(models.Book).filter(models.Book.id == book_id).first()
    if not book:
        raise NotFound("Book not found")
    return book.total_copies - count_active_for_book(db, book_id)


def count_active_for_book(db: Session, book_id: int) -> int:
    return (db.query(func.count(models.Borrow.id))
            .filter(models.Borrow.book_id == book_id,
                    models.Borrow.is_returned == False)  # noqa: E712
            .scalar())


def count_active_for_account(db: Session, account_id: int) -> int:
    return (db.query(func.count(models.Borrow.id))
            .filter(models.Borrow.user_id == account_id,
                    models.Borrow.is_returned == False)  # noqa: E712
            .scalar())


def get_borrow(db: Session, borrow_id: int) -> models.Borrow:
    loan = db.query(models.Borrow).filter(models.Borrow.id == borrow_id).first()
    if not loan:
        raise NotFound("Borrow record not found")
    return loan


def list_borrows_for_account(db: Session, account_id: int) -> List[models.Borrow]:
    return (db.query(models.Borrow)
            .options(joinedload(models.Borrow.book))
            .filter(models.Borrow.user_id == account_id)
            .order_by(models.Borrow.borrow_date.desc(), models.Borrow.id.desc())
            .all())


def list_active_borrows_for_account(db: Session, account_id: int) -> List[models.Borrow]:
    return (db.query(models.Borrow)
            .options(joinedload(models.Borrow.book))
            .filter(models.Borrow.user_id == account_id,
                    models.Borrow.is_returned == False)  # noqa: E712
            .order_by(models.Borrow.due_date)
            .all())


def list_all_borrows(db: Session) -> List[models.Borrow]:
    return (db.query(models.Borrow)
            .options(joinedload(models.Borrow.book), joinedload(models.Borrow.user))
            .order_by(models.Borrow.borrow_date.desc(), models.Borrow.id.desc())
            .all())


def list_overdue_borrows(db: Session, account_id: int = None, now: datetime = None) -> List[models.Borrow]:
    now = now or datetime.utcnow()
    query = (db.query(models.Borrow)
             .options(joinedload(models.Borrow.book))
             .filter(models.Borrow.is_returned == False,  # noqa: E712
                     models.Borrow.due_date < now))
    if account_id is not None:
        query = query.filter(models.Borrow.user_id == account_id)
    return query.order_by(models.Borrow.due_date).all()


def circulation_stats(db: Session, now: datetime = None) -> dict:
    now = now or datetime.utcnow()
    active = db.query(func.count(models.Borrow.id)).filter(models.Borrow.is_returned == False)  # noqa: E712
    return {
        'total_books': db.query(func.count(models.Book.id)).scalar(),
        'total_copies': db.query(func.coalesce(func.sum(models.Book.total_copies), 0)).scalar(),
        'available_copies': db.query(func.coalesce(func.sum(models.Book.available_copies), 0)).scalar(),
        'total_users': db.query(func.count(models.User.id)).scalar(),
        'active_borrows': active.scalar(),
        'overdue_borrows': active.filter(models.Borrow.due_date < now).scalar(),
    }
