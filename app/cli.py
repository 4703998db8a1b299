"""Small maintenance utilities: create tables, seed the catalog, add an admin."""
import argparse
import sys

from pydantic import ValidationError

from app.core.config import logger
from app.core.database import Base, SessionLocal, engine
from app.core.errors import Conflict, LibraryError
from app.schemas import schemas
from app.services import accounts, catalog

SAMPLE_BOOKS = [
    dict(title="To Kill a Mockingbird", author="Harper Lee", isbn="9780061120084",
         description="A young girl's coming-of-age in a Southern town while her father "
                     "defends a man unjustly accused of a crime.",
         category="Fiction", total_copies=5, publication_year=1960),
    dict(title="The Great Gatsby", author="F. Scott Fitzgerald", isbn="9780743273565",
         description="Jay Gatsby and his obsession with Daisy Buchanan in the Jazz Age.",
         category="Fiction", total_copies=3, publication_year=1925),
    dict(title="1984", author="George Orwell", isbn="9780451524935",
         description="A dystopian novel about totalitarianism, surveillance and the suppression of truth.",
         category="Science Fiction", total_copies=4, publication_year=1949),
    dict(title="Pride and Prejudice", author="Jane Austen", isbn="9780141439518",
         description="Elizabeth Bennet and Mr. Darcy navigate manners, marriage and money.",
         category="Romance", total_copies=2, publication_year=1813),
]


def seed(db) -> int:
    created = 0
    for data in SAMPLE_BOOKS:
        try:
            catalog.create_book(db, schemas.BookCreate(**data))
            created += 1
        except Conflict:
            logger.info(f"Skipping existing book isbn={data['isbn']}")
    return created


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="elibrary", description='E-Library small utilities')
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("initdb", help="Create tables")
    sub.add_parser("seed", help="Seed sample books")
    admin = sub.add_parser("create-admin", help="Create an admin account")
    admin.add_argument("--username", required=True)
    admin.add_argument("--password", required=True)
    admin.add_argument("--full-name", required=True)
    admin.add_argument("--email")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    if args.command == "initdb":
        print("Tables created")
        return 0

    db = SessionLocal()
    try:
        if args.command == "seed":
            print(f"Seeded {seed(db)} books")
        elif args.command == "create-admin":
            if accounts.get_by_username(db, args.username):
                print(f"User {args.username} already exists")
                return 1
            try:
                data = schemas.UserCreate(username=args.username, password=args.password,
                                          full_name=args.full_name, email=args.email)
                user = accounts.create_admin(db, data.username, data.password, data.full_name, email=data.email)
            except ValidationError as exc:
                print(f"Invalid admin account: {exc}")
                return 2
            except LibraryError as exc:
                print(f"Could not create admin: {exc.message}")
                return 2
            print(f"Admin user created: {user.username}")
    finally:
        db.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
