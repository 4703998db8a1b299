import pytest
from pydantic import ValidationError

from app.core.errors import NotFound, Conflict, InvalidOperation
from app.models import models
from app.schemas import schemas
from app.services import catalog, ledger


def test_create_book_defaults_available_to_total(make_book):
    book = make_book(total_copies=4)
    assert book.available_copies == 4
    assert book.language == "English"


def test_create_book_duplicate_isbn(db, make_book):
    make_book(isbn="9780451524935")
    with pytest.raises(Conflict):
        make_book(title="Other", isbn="9780451524935")
    assert db.query(models.Book).count() == 1


def test_book_validation():
    with pytest.raises(ValidationError):
        schemas.BookCreate(title="T", author="A", isbn="123", total_copies=1)
    with pytest.raises(ValidationError):
        schemas.BookCreate(title="T", author="A", isbn="1234567890", total_copies=0)
    with pytest.raises(ValidationError):
        schemas.BookCreate(title="T", author="A", isbn="1234567890", total_copies=1, available_copies=2)


def test_search_matches_several_fields(db, make_book):
    make_book(title="Dune", author="Frank Herbert", category="Science Fiction")
    make_book(title="Emma", author="Jane Austen", description="A comedy of manners")
    make_book(title="Persuasion", author="Jane Austen", isbn="9780141439686")

    assert [b.title for b in catalog.list_books(db, "austen")] == ["Emma", "Persuasion"]
    assert [b.title for b in catalog.list_books(db, "science")] == ["Dune"]
    assert [b.title for b in catalog.list_books(db, "MANNERS")] == ["Emma"]
    assert [b.title for b in catalog.list_books(db, "9780141439686")] == ["Persuasion"]
    assert len(catalog.list_books(db)) == 3
    assert len(catalog.list_books(db, "   ")) == 3


def test_get_book_not_found(db):
    with pytest.raises(NotFound):
        catalog.get_book(db, 1)


def test_update_total_shifts_available(db, make_user, make_book):
    alice = make_user("alice")
    book = make_book(total_copies=3)
    ledger.borrow(db, alice.id, book.id)

    book = catalog.update_book(db, book.id, schemas.BookUpdate(total_copies=5))
    assert (book.total_copies, book.available_copies) == (5, 4)

    book = catalog.update_book(db, book.id, schemas.BookUpdate(total_copies=1))
    assert (book.total_copies, book.available_copies) == (1, 0)


def test_update_available_override(db, make_book):
    book = make_book(total_copies=3)
    book = catalog.update_book(db, book.id, schemas.BookUpdate(available_copies=1))
    assert book.available_copies == 1

    with pytest.raises(InvalidOperation):
        catalog.update_book(db, book.id, schemas.BookUpdate(available_copies=4))


def test_update_fields_and_isbn_conflict(db, make_book):
    first = make_book(isbn="9780000000001")
    second = make_book(isbn="9780000000002")

    updated = catalog.update_book(db, second.id, schemas.BookUpdate(title="Renamed", category="Poetry"))
    assert (updated.title, updated.category) == ("Renamed", "Poetry")

    with pytest.raises(Conflict):
        catalog.update_book(db, second.id, schemas.BookUpdate(isbn=first.isbn))
    with pytest.raises(NotFound):
        catalog.update_book(db, 999, schemas.BookUpdate(title="x"))


def test_delete_book_with_active_borrow_rejected(db, make_user, make_book):
    alice = make_user("alice")
    book = make_book()
    loan = ledger.borrow(db, alice.id, book.id)

    with pytest.raises(InvalidOperation):
        catalog.delete_book(db, book.id)

    ledger.return_borrow(db, loan.id, alice.id)
    catalog.delete_book(db, book.id)
    assert db.query(models.Book).count() == 0
    assert db.query(models.Borrow).count() == 0


def test_delete_missing_book(db):
    with pytest.raises(NotFound):
        catalog.delete_book(db, 3)
