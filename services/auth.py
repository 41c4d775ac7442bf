"""Credential verification producing the caller's verified claim set.

Two ``Authorization`` schemes are understood:

``Basic``
    email and password checked against the ``library_user`` table.
``Bearer``
    a signed, time limited access token issued by :func:`issue_token`.
    The payload mirrors a JWT claim set (``sub``, ``email``, ``scope``).

Anything else, or a credential that fails verification, raises
:class:`UnauthenticatedError` before any authorization policy runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash

from models import db, User
from .errors import UnauthenticatedError

TOKEN_SALT = 'library-access-token'


@dataclass(frozen=True)
class Identity:
    subject: str
    email: Optional[str] = None
    roles: frozenset = field(default_factory=frozenset)

    @property
    def principal(self) -> str:
        """Name recorded as the borrower: the email claim, else the subject."""
        return self.email or self.subject

    def has_role(self, role) -> bool:
        return getattr(role, 'value', role) in self.roles

    @classmethod
    def from_claims(cls, claims: dict) -> 'Identity':
        subject = claims.get('sub')
        if not subject:
            raise UnauthenticatedError('Token has no subject.')
        scopes = claims.get('scope') or []
        if isinstance(scopes, str):
            scopes = scopes.split()
        return cls(
            subject=str(subject),
            email=claims.get('email'),
            roles=frozenset(s.upper() for s in scopes),
        )

    @classmethod
    def from_user(cls, user: User) -> 'Identity':
        return cls(subject=str(user.id), email=user.email, roles=user.role_names)

    def to_claims(self) -> dict:
        return {
            'sub': self.subject,
            'email': self.email,
            'scope': sorted(r.lower() for r in self.roles),
        }


def make_identity(subject: str, email: Optional[str] = None, roles: Iterable = ()) -> Identity:
    return Identity(subject=subject, email=email, roles=frozenset(getattr(r, 'value', r) for r in roles))


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(identity: Identity) -> str:
    return _serializer().dumps(identity.to_claims())


def verify_token(token: str) -> Identity:
    try:
        claims = _serializer().loads(token, max_age=current_app.config['TOKEN_MAX_AGE'])
    except SignatureExpired as exc:
        raise UnauthenticatedError('Token has expired.') from exc
    except BadSignature as exc:
        raise UnauthenticatedError('Token is invalid.') from exc
    if not isinstance(claims, dict):
        raise UnauthenticatedError('Token is invalid.')
    return Identity.from_claims(claims)


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the user if the email and password match, else None."""
    if not email or not password:
        return None
    user = db.session.execute(db.select(User).filter_by(email=email)).scalar_one_or_none()
    if user and check_password_hash(user.password_hash, password):
        return user
    return None


def verify_basic(username: str, password: str) -> Identity:
    user = authenticate_user(username, password)
    if user is None:
        raise UnauthenticatedError('Invalid email or password.')
    return Identity.from_user(user)


def authenticate_request() -> Identity:
    """Verify the current request's credential and return its identity."""
    auth = request.authorization
    if auth is None:
        raise UnauthenticatedError()
    try:
        if auth.type == 'basic':
            return verify_basic(auth.username, auth.password)
        if auth.type == 'bearer':
            return verify_token(auth.token or '')
    except UnauthenticatedError as exc:
        current_app.logger.warning('Rejected %s credential for %s: %s', auth.type, request.path, exc)
        raise
    raise UnauthenticatedError(f'Unsupported authorization scheme: {auth.type}.')


def get_current_identity() -> Identity:
    if getattr(g, '_identity', None) is None:
        g._identity = authenticate_request()
    return g._identity
