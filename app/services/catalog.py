import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import NotFound, Conflict, InvalidOperation
from app.models import models
from app.schemas import schemas
from app.services.ledger import count_active_for_book

logger = logging.getLogger("elibrary.catalog")


def list_books(db: Session, search_term: Optional[str] = None) -> List[models.Book]:
    query = db.query(models.Book)
    if search_term and search_term.strip():
        like_q = f"%{search_term.strip()}%"
        query = query.filter(or_(
            models.Book.title.ilike(like_q),
            models.Book.author.ilike(like_q),
            models.Book.isbn.ilike(like_q),
            models.Book.category.ilike(like_q),
            models.Book.description.ilike(like_q),
        ))
    return query.order_by(models.Book.title, models.Book.id).all()


def get_book(db: Session, book_id: int) -> models.Book:
    book = db.query(models.Book).filter(models.Book.id == book_id).first()
    if not book:
        raise NotFound("Book not found")
    return book


def _isbn_taken(db: Session, isbn: str, exclude_id: int = None) -> bool:
    query = db.query(models.Book).filter(models.Book.isbn == isbn)
    if exclude_id is not None:
        query = query.filter(models.Book.id != exclude_id)
    return query.first() is not None


def create_book(db: Session, book_in: schemas.BookCreate) -> models.Book:
    if _isbn_taken(db, book_in.isbn):
        raise Conflict("Book with this ISBN already exists")
    data = book_in.model_dump()
    if data['available_copies'] is None:
        data['available_copies'] = data['total_copies']
    book = models.Book(**data)
    with transaction(db):
        db.add(book)
    db.refresh(book)
    logger.info(f"Created book id={book.id} title={book.title}")
    return book


def update_book(db: Session, book_id: int, book_upd: schemas.BookUpdate) -> models.Book:
    """Apply a partial update.

    Copy counts set here are admin overrides and are not reconciled against
    the ledger. Changing total_copies alone shifts available_copies by the
    same delta.
    """
    book = get_book(db, book_id)
    data = book_upd.model_dump(exclude_unset=True)
    if data.get('isbn') and _isbn_taken(db, data['isbn'], exclude_id=book.id):
        raise Conflict("Book with this ISBN already exists")

    total = data.pop('total_copies', None)
    available = data.pop('available_copies', None)
    new_total = total if total is not None else book.total_copies
    if available is not None:
        if available > new_total:
            raise InvalidOperation("available_copies cannot exceed total_copies")
        new_available = available
    elif total is not None:
        delta = total - book.total_copies
        new_available = min(new_total, max(0, book.available_copies + delta))
    else:
        new_available = book.available_copies

    with transaction(db):
        for k, v in data.items():
            # non-nullable columns keep their value when null is sent
            if v is None and k in ('title', 'author', 'isbn'):
                continue
            setattr(book, k, v)
        book.total_copies = new_total
        book.available_copies = new_available
    db.refresh(book)
    logger.info(f"Updated book id={book.id}")
    return book


def delete_book(db: Session, book_id: int) -> None:
    book = get_book(db, book_id)
    if count_active_for_book(db, book.id) > 0:
        raise InvalidOperation("Cannot delete book with active borrows")
    with transaction(db):
        db.delete(book)
    logger.info(f"Deleted book id={book_id}")
