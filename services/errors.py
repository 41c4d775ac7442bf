"""Failure taxonomy shared by the service layer.

Every failed precondition surfaces as one of these.  None of them is
transient, so callers should not retry; the HTTP layer maps each class to
a status code.
"""
from __future__ import annotations


class LibraryError(RuntimeError):
    """Base class for library service failures."""

    code = 'library_error'
    default_message = 'Library operation failed.'

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFoundError(LibraryError):
    code = 'not_found'
    default_message = 'Book not found.'


class ForbiddenError(LibraryError):
    code = 'forbidden'
    default_message = 'Insufficient role for this operation.'


class UnauthenticatedError(LibraryError):
    code = 'unauthenticated'
    default_message = 'Authentication required.'


class AlreadyBorrowedError(LibraryError):
    code = 'already_borrowed'
    default_message = 'Book is already borrowed.'


class NotBorrowedError(LibraryError):
    code = 'not_borrowed'
    default_message = 'Book is not borrowed.'


class NotOwnerError(LibraryError):
    code = 'not_owner'
    default_message = 'Book is borrowed by someone else.'


class ValidationError(LibraryError):
    code = 'validation_error'
    default_message = 'Invalid book data.'
