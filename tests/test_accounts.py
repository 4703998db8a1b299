import pytest

from app.core.errors import Conflict, InvalidOperation, NotFound, Unauthorized
from app.core.security import hash_password, verify_password
from app.models import models
from app.schemas import schemas
from app.services import accounts, ledger


def test_password_is_hashed(make_user):
    user = make_user("alice", password="hunter22")
    assert user.password != "hunter22"
    assert verify_password("hunter22", user.password)
    assert not verify_password("hunter23", user.password)


def test_verify_password_with_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
    assert verify_password("secret", hash_password("secret")) is True


def test_register_never_grants_admin(db):
    user = accounts.register(db, schemas.UserCreate(
        username="mallory", password="secret123", full_name="Mallory"))
    assert user.is_admin is False


def test_duplicate_username_is_case_insensitive(make_user):
    make_user("Alice")
    with pytest.raises(Conflict):
        make_user("alice")


def test_duplicate_email(make_user):
    make_user("alice", email="a@example.com")
    with pytest.raises(Conflict):
        make_user("bob", email="A@example.com")


def test_authenticate(db, make_user):
    make_user("alice", password="secret123")
    assert accounts.authenticate(db, "ALICE", "secret123").username == "alice"
    with pytest.raises(Unauthorized):
        accounts.authenticate(db, "alice", "wrong-password")
    with pytest.raises(Unauthorized):
        accounts.authenticate(db, "nobody", "secret123")


def test_no_hard_coded_admin_credentials(db, make_user):
    make_user("admin", password="correct-horse", is_admin=True)
    with pytest.raises(Unauthorized):
        accounts.authenticate(db, "admin", "n1mD@")
    with pytest.raises(Unauthorized):
        accounts.authenticate(db, "admin", "admin123")


def test_update_account(db, make_user):
    alice = make_user("alice")
    make_user("bob")

    updated = accounts.update_account(db, alice.id, schemas.UserUpdate(full_name="Alice Liddell", is_admin=True))
    assert (updated.full_name, updated.is_admin) == ("Alice Liddell", True)

    with pytest.raises(Conflict):
        accounts.update_account(db, alice.id, schemas.UserUpdate(username="BOB"))
    with pytest.raises(NotFound):
        accounts.update_account(db, 999, schemas.UserUpdate(full_name="Nobody"))


def test_admin_cannot_delete_self(db, make_user):
    admin = make_user("root", is_admin=True)
    with pytest.raises(InvalidOperation):
        accounts.delete_account(db, admin.id, requester_id=admin.id)
    assert db.get(models.User, admin.id) is not None


def test_delete_account_with_active_borrow_rejected(db, make_user, make_book):
    admin = make_user("root", is_admin=True)
    alice = make_user("alice")
    book = make_book()
    loan = ledger.borrow(db, alice.id, book.id)

    with pytest.raises(InvalidOperation):
        accounts.delete_account(db, alice.id, requester_id=admin.id)

    ledger.return_borrow(db, loan.id, alice.id)
    accounts.delete_account(db, alice.id, requester_id=admin.id)
    assert accounts.get_by_username(db, "alice") is None
    assert db.query(models.Borrow).count() == 0


def test_delete_missing_account(db, make_user):
    admin = make_user("root", is_admin=True)
    with pytest.raises(NotFound):
        accounts.delete_account(db, 999, requester_id=admin.id)


def test_password_over_72_bytes_rejected(db, make_user):
    with pytest.raises(InvalidOperation):
        make_user("root", password="é" * 40, is_admin=True)
    assert db.query(models.User).count() == 0


def test_unique_index_race_maps_to_conflict(db, make_user, monkeypatch):
    make_user("alice", email="a@example.com")
    bob = make_user("bob")
    # another request inserted the same row between the check and the insert
    monkeypatch.setattr(accounts, "_check_unique", lambda *args, **kwargs: None)

    with pytest.raises(Conflict):
        make_user("alice")
    with pytest.raises(Conflict):
        accounts.update_account(db, bob.id, schemas.UserUpdate(email="a@example.com"))

    assert db.query(models.User).count() == 2
    db.refresh(bob)
    assert bob.email is None
