from sqlalchemy import (Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index,
                        UniqueConstraint, CheckConstraint)
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    full_name = Column(String(100), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    # federated identity, populated by an external provider flow
    oauth_provider = Column(String, nullable=True)
    oauth_id = Column(String, unique=True, nullable=True)
    email = Column(String, unique=True, nullable=True, index=True)
    profile_image = Column(String, nullable=True)

    borrows = relationship("Borrow", back_populates="user", cascade="all, delete-orphan")

class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_copies >= 1", name="ck_books_total_copies"),
        CheckConstraint("available_copies >= 0", name="ck_books_available_copies"),
    )
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False, index=True)
    isbn = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    cover_image = Column(String, nullable=True)
    publication_year = Column(Integer, nullable=True)
    publisher = Column(String, nullable=True)
    page_count = Column(Integer, nullable=True)
    language = Column(String, default="English")
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)

    borrows = relationship("Borrow", back_populates="book", cascade="all, delete-orphan")

Index('ix_books_title_author', Book.title, Book.author)

class Borrow(Base):
    __tablename__ = "borrows"
    __table_args__ = (
        UniqueConstraint("book_id", "user_id", "borrow_date", name="uq_borrows_book_user_date"),
    )
    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    borrow_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    is_returned = Column(Boolean, default=False, nullable=False, index=True)

    user = relationship("User", back_populates="borrows")
    book = relationship("Book", back_populates="borrows")

    def overdue_at(self, now: datetime) -> bool:
        return not self.is_returned and self.due_date < now

    @property
    def is_overdue(self) -> bool:
        # derived on read, never stored
        return self.overdue_at(datetime.utcnow())
