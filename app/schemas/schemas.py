from pydantic import BaseModel, ConfigDict, Field, constr, field_validator, model_validator
from datetime import datetime, timezone
from typing import Optional

class BookBase(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    author: constr(strip_whitespace=True, min_length=1)
    isbn: constr(strip_whitespace=True, min_length=10)
    description: Optional[str] = None
    category: Optional[str] = None
    cover_image: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = "English"
    total_copies: int = Field(default=1, ge=1)

class BookCreate(BookBase):
    available_copies: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def available_within_total(self):
        if self.available_copies is not None and self.available_copies > self.total_copies:
            raise ValueError('available_copies cannot exceed total_copies')
        return self

class BookUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    author: Optional[constr(strip_whitespace=True, min_length=1)] = None
    isbn: Optional[constr(strip_whitespace=True, min_length=10)] = None
    description: Optional[str] = None
    category: Optional[str] = None
    cover_image: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = None
    total_copies: Optional[int] = Field(default=None, ge=1)
    available_copies: Optional[int] = Field(default=None, ge=0)

class BookOut(BookBase):
    id: int
    isbn: str
    available_copies: int
    model_config = ConfigDict(from_attributes=True)

class UserCreate(BaseModel):
    username: constr(strip_whitespace=True, min_length=3, max_length=50)
    # bcrypt rejects passwords longer than 72 bytes
    password: constr(min_length=6, max_length=72)
    full_name: constr(strip_whitespace=True, min_length=2, max_length=100)
    email: Optional[str] = None

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v):
        if len(v.encode("utf-8")) > 72:
            raise ValueError('password cannot be longer than 72 bytes')
        return v

class UserUpdate(BaseModel):
    username: Optional[constr(strip_whitespace=True, min_length=3, max_length=50)] = None
    full_name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    email: Optional[str] = None
    is_admin: Optional[bool] = None
    profile_image: Optional[str] = None

class LoginIn(BaseModel):
    username: constr(min_length=1)
    password: constr(min_length=1)

class UserOut(BaseModel):
    id: int
    username: str
    full_name: str
    is_admin: bool
    email: Optional[str] = None
    oauth_provider: Optional[str] = None
    profile_image: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class BorrowCreate(BaseModel):
    book_id: int
    due_date: Optional[datetime] = None

    @field_validator('due_date')
    @classmethod
    def naive_utc(cls, v):
        # stored timestamps are naive UTC
        if v is not None and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

class BorrowOut(BaseModel):
    id: int
    book_id: int
    user_id: int
    borrow_date: datetime
    due_date: datetime
    return_date: Optional[datetime] = None
    is_returned: bool
    is_overdue: bool
    model_config = ConfigDict(from_attributes=True)

class BorrowWithBook(BorrowOut):
    book: BookOut

class BorrowWithBookAndUser(BorrowWithBook):
    user: UserOut

class StatsOut(BaseModel):
    total_books: int
    total_copies: int
    available_copies: int
    total_users: int
    active_borrows: int
    overdue_borrows: int
