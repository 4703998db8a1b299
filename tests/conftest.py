import os

os.environ["ELIB_DB"] = "sqlite://"
os.environ.setdefault("ELIB_BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.main import app
from app.schemas import schemas
from app.services import accounts, catalog


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(username, password="secret123", full_name="Test User", is_admin=False, email=None):
        if is_admin:
            return accounts.create_admin(db, username, password, full_name, email=email)
        return accounts.register(db, schemas.UserCreate(
            username=username, password=password, full_name=full_name, email=email))
    return _make


@pytest.fixture
def make_book(db):
    counter = iter(range(1000000000, 1999999999))

    def _make(title="Test Book", author="Author", total_copies=1, **extra):
        extra.setdefault("isbn", f"978{next(counter)}")
        return catalog.create_book(db, schemas.BookCreate(
            title=title, author=author, total_copies=total_copies, **extra))
    return _make


@pytest.fixture
def login():
    def _login(client, username, password="secret123"):
        r = client.post("/api/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        return r.json()
    return _login
