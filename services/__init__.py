"""Service layer package for encapsulating business logic."""

from .books import BookInput, BookService  # noqa: F401
from .auth import Identity, get_current_identity, issue_token, make_identity  # noqa: F401
from .errors import (  # noqa: F401
    AlreadyBorrowedError,
    ForbiddenError,
    LibraryError,
    NotBorrowedError,
    NotFoundError,
    NotOwnerError,
    UnauthenticatedError,
    ValidationError,
)
from .policy import Operation, Role, authorize, is_permitted  # noqa: F401
