import datetime
import uuid
from datetime import timezone

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy instance (initialized by app)
db = SQLAlchemy()

ISBN_MAX_LENGTH = 20
TITLE_MAX_LENGTH = 255


def _as_utc(value):
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Book(db.Model):
    __tablename__ = 'book'
    identifier = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    isbn = db.Column(db.String(ISBN_MAX_LENGTH), unique=True, nullable=False)
    title = db.Column(db.String(TITLE_MAX_LENGTH), nullable=False)
    description = db.Column(db.Text, nullable=True)
    authors = db.Column(db.JSON, nullable=False, default=list)
    # both set while borrowed, both NULL while available
    borrowed_by = db.Column(db.Text, nullable=True)
    borrowed_date = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def borrowed(self) -> bool:
        return self.borrowed_by is not None

    @property
    def borrowed_since(self):
        return _as_utc(self.borrowed_date)

    def to_dict(self):
        return {
            'identifier': self.identifier,
            'isbn': self.isbn,
            'title': self.title,
            'description': self.description,
            'authors': list(self.authors or []),
            'borrowed': self.borrowed,
            'borrowedBy': self.borrowed_by,
            'borrowedDate': self.borrowed_since.isoformat() if self.borrowed_date else None,
        }

    def __repr__(self):
        return f'<Book {self.identifier} {self.isbn!r}>'


class User(db.Model):
    __tablename__ = 'library_user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(120), nullable=True)
    # comma separated role names, e.g. "LIBRARY_USER,LIBRARY_CURATOR"
    roles = db.Column(db.String(255), nullable=False, default='LIBRARY_USER')
    created_at = db.Column(db.DateTime, default=lambda: datetime.datetime.now(timezone.utc))

    @property
    def role_names(self) -> frozenset:
        return frozenset(r.strip().upper() for r in (self.roles or '').split(',') if r.strip())