from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.api.deps import get_current_user, get_admin_user
from app.core.database import get_db
from app.models import models
from app.schemas import schemas
from app.services import accounts, catalog, ledger

router = APIRouter(prefix="/api")

# -----------------------------
# Catalog
# -----------------------------
@router.get("/books", response_model=List[schemas.BookOut])
def list_books(q: Optional[str] = Query(None, description="search title, author, ISBN, category or description"),
               db: Session = Depends(get_db)):
    return catalog.list_books(db, q)

@router.get("/books/search", response_model=List[schemas.BookOut])
def search_books(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return catalog.list_books(db, q)

@router.get("/books/{book_id}", response_model=schemas.BookOut)
def read_book(book_id: int, db: Session = Depends(get_db)):
    return catalog.get_book(db, book_id)

@router.post("/books", response_model=schemas.BookOut, status_code=status.HTTP_201_CREATED)
def create_book(book_in: schemas.BookCreate, db: Session = Depends(get_db),
                admin: models.User = Depends(get_admin_user)):
    return catalog.create_book(db, book_in)

@router.api_route("/books/{book_id}", methods=["PUT", "PATCH"], response_model=schemas.BookOut)
def update_book(book_id: int, book_upd: schemas.BookUpdate, db: Session = Depends(get_db),
                admin: models.User = Depends(get_admin_user)):
    return catalog.update_book(db, book_id, book_upd)

@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: int, db: Session = Depends(get_db),
                admin: models.User = Depends(get_admin_user)):
    catalog.delete_book(db, book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# -----------------------------
# Borrows (borrow & return)
# -----------------------------
@router.post("/borrows", response_model=schemas.BorrowWithBook, status_code=status.HTTP_201_CREATED)
def borrow_book(borrow_in: schemas.BorrowCreate, db: Session = Depends(get_db),
                user: models.User = Depends(get_current_user)):
    return ledger.borrow(db, user.id, borrow_in.book_id, due_date=borrow_in.due_date)

@router.post("/borrows/{borrow_id}/return", response_model=schemas.BorrowWithBook)
def return_book(borrow_id: int, db: Session = Depends(get_db),
                user: models.User = Depends(get_current_user)):
    return ledger.return_borrow(db, borrow_id, user.id, user.is_admin)

@router.get("/borrows", response_model=List[schemas.BorrowWithBookAndUser])
def list_borrows(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    # admins see the whole ledger, everyone else their own entries
    if user.is_admin:
        return ledger.list_all_borrows(db)
    return ledger.list_borrows_for_account(db, user.id)

@router.get("/borrows/active", response_model=List[schemas.BorrowWithBook])
def list_active_borrows(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return ledger.list_active_borrows_for_account(db, user.id)

@router.get("/borrows/overdue", response_model=List[schemas.BorrowWithBook])
def list_overdue_borrows(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return ledger.list_overdue_borrows(db, account_id=user.id)

@router.get("/borrows/all", response_model=List[schemas.BorrowWithBookAndUser])
def list_all_borrows(db: Session = Depends(get_db), admin: models.User = Depends(get_admin_user)):
    return ledger.list_all_borrows(db)

# -----------------------------
# Users (admin)
# -----------------------------
@router.get("/users", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db), admin: models.User = Depends(get_admin_user)):
    return accounts.list_accounts(db)

@router.patch("/users/{user_id}", response_model=schemas.UserOut)
def update_user(user_id: int, user_upd: schemas.UserUpdate, db: Session = Depends(get_db),
                admin: models.User = Depends(get_admin_user)):
    return accounts.update_account(db, user_id, user_upd)

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db),
                admin: models.User = Depends(get_admin_user)):
    accounts.delete_account(db, user_id, admin.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# -----------------------------
# Stats
# -----------------------------
@router.get("/stats", response_model=schemas.StatsOut)
def stats(db: Session = Depends(get_db), admin: models.User = Depends(get_admin_user)):
    return ledger.circulation_stats(db)
