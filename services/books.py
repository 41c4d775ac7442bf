"""Book catalog and borrowing domain logic."""
from __future__ import annotations

import datetime
from contextlib import contextmanager
from dataclasses import dataclass
from typing import List, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import ISBN_MAX_LENGTH, TITLE_MAX_LENGTH, db, Book
from .errors import (
    AlreadyBorrowedError,
    NotBorrowedError,
    NotFoundError,
    NotOwnerError,
    ValidationError,
)
from .locking import KeyedLock
from .policy import Operation, authorize, is_permitted


@dataclass(frozen=True)
class BookInput:
    isbn: str
    title: str
    authors: tuple
    description: Optional[str] = None

    @classmethod
    def from_payload(cls, payload) -> 'BookInput':
        """Validate a decoded JSON body.

        Server managed fields (``identifier`` and the borrow state) are
        ignored if a client sends them.
        """
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object.')
        isbn = payload.get('isbn')
        if not isinstance(isbn, str) or not isbn.strip():
            raise ValidationError('isbn must be a non-empty string.')
        if len(isbn.strip()) > ISBN_MAX_LENGTH:
            raise ValidationError(f'isbn must be at most {ISBN_MAX_LENGTH} characters.')
        title = payload.get('title')
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('title must be a non-empty string.')
        if len(title.strip()) > TITLE_MAX_LENGTH:
            raise ValidationError(f'title must be at most {TITLE_MAX_LENGTH} characters.')
        description = payload.get('description')
        if description is not None and not isinstance(description, str):
            raise ValidationError('description must be a string.')
        authors = payload.get('authors')
        if not isinstance(authors, list) or not authors:
            raise ValidationError('authors must be a non-empty list.')
        if not all(isinstance(a, str) and a.strip() for a in authors):
            raise ValidationError('authors must contain non-empty strings.')
        return cls(
            isbn=isbn.strip(),
            title=title.strip(),
            authors=tuple(a.strip() for a in authors),
            description=description,
        )


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class BookService:
    """Book CRUD plus the available/borrowed state machine.

    Every public method checks the caller's capabilities first, in a fixed
    order: credential holders without any library role are rejected before
    an identifier is looked up, so only library members learn whether a
    book exists; the operation specific capability is checked after that.
    """

    def __init__(self, locks: Optional[KeyedLock] = None):
        self._locks = locks or KeyedLock()

    @contextmanager
    def _transaction(self):
        try:
            yield
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            current_app.logger.exception('Book transaction failed: %s', exc)
            db.session.rollback()
            raise
        except Exception:
            db.session.rollback()
            raise

    def _load(self, identifier: str) -> Book:
        book = db.session.get(Book, identifier)
        if book is None:
            raise NotFoundError(f'Book {identifier} not found.')
        return book

    def _ensure_unique_isbn(self, isbn: str, exclude: Optional[str] = None) -> None:
        query = db.select(Book.identifier).filter(Book.isbn == isbn)
        if exclude is not None:
            query = query.filter(Book.identifier != exclude)
        if db.session.execute(query).first() is not None:
            raise ValidationError(f'A book with isbn {isbn} already exists.')

    # -- catalog -----------------------------------------------------------

    def list_books(self, identity) -> List[Book]:
        authorize(identity, Operation.LIST)
        return list(db.session.execute(db.select(Book).order_by(Book.title)).scalars())

    def get_book(self, identity, identifier: str) -> Book:
        authorize(identity, Operation.READ)
        return self._load(identifier)

    def create_book(self, identity, payload) -> Book:
        authorize(identity, Operation.CREATE)
        data = payload if isinstance(payload, BookInput) else BookInput.from_payload(payload)
        try:
            with self._transaction():
                self._ensure_unique_isbn(data.isbn)
                book = Book(
                    isbn=data.isbn,
                    title=data.title,
                    description=data.description,
                    authors=list(data.authors),
                )
                db.session.add(book)
                db.session.flush()
        except IntegrityError as exc:
            # a concurrent writer took the isbn after the uniqueness check
            raise ValidationError(f'A book with isbn {data.isbn} already exists.') from exc
        current_app.logger.info('Book %s (%s) created by %s', book.identifier, book.isbn, identity.principal)
        return book

    def update_book(self, identity, identifier: str, payload) -> Book:
        authorize(identity, Operation.READ)
        book = self._load(identifier)
        authorize(identity, Operation.UPDATE)
        data = payload if isinstance(payload, BookInput) else BookInput.from_payload(payload)
        try:
            with self._transaction():
                self._ensure_unique_isbn(data.isbn, exclude=identifier)
                book.isbn = data.isbn
                book.title = data.title
                book.description = data.description
                book.authors = list(data.authors)
        except IntegrityError as exc:
            raise ValidationError(f'A book with isbn {data.isbn} already exists.') from exc
        current_app.logger.info('Book %s updated by %s', identifier, identity.principal)
        return book

    def delete_book(self, identity, identifier: str) -> None:
        authorize(identity, Operation.READ)
        book = self._load(identifier)
        authorize(identity, Operation.DELETE)
        with self._transaction():
            db.session.delete(book)
        current_app.logger.info('Book %s deleted by %s', identifier, identity.principal)

    # -- borrowing ---------------------------------------------------------

    def borrow_book(self, identity, identifier: str) -> Book:
        authorize(identity, Operation.BORROW)
        borrower = identity.principal
        with self._locks.hold(identifier):
            with self._transaction():
                result = db.session.execute(
                    update(Book)
                    .where(Book.identifier == identifier, Book.borrowed_by.is_(None))
                    .values(borrowed_by=borrower, borrowed_date=_utcnow())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    self._load(identifier)
                    raise AlreadyBorrowedError(f'Book {identifier} is already borrowed.')
            book = self._reload(identifier)
        current_app.logger.info('Book %s borrowed by %s', identifier, borrower)
        return book

    def return_book(self, identity, identifier: str) -> Book:
        authorize(identity, Operation.RETURN)
        with self._locks.hold(identifier):
            with self._transaction():
                book = self._load(identifier)
                borrower = book.borrowed_by
                if borrower is None:
                    raise NotBorrowedError(f'Book {identifier} is not borrowed.')
                forced = borrower != identity.principal
                if forced and not is_permitted(identity, Operation.FORCE_RETURN):
                    raise NotOwnerError(f'Book {identifier} is borrowed by another user.')
                result = db.session.execute(
                    update(Book)
                    .where(Book.identifier == identifier, Book.borrowed_by == borrower)
                    .values(borrowed_by=None, borrowed_date=None)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    # changed underneath us by another process
                    raise NotBorrowedError(f'Book {identifier} is not borrowed.')
            book = self._reload(identifier)
        if forced:
            current_app.logger.info('Book %s force-returned by %s (borrowed by %s)', identifier, identity.principal, borrower)
        else:
            current_app.logger.info('Book %s returned by %s', identifier, borrower)
        return book

    def _reload(self, identifier: str) -> Book:
        book = self._load(identifier)
        db.session.refresh(book)
        return book
