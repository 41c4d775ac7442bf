"""Demo catalog and accounts, loaded by ``init_db.py --seed`` or SEED_DATA."""
from __future__ import annotations

from werkzeug.security import generate_password_hash

from models import db, Book, User

BOOK_CLEAN_CODE_IDENTIFIER = 'f9bf70d6-e56d-4cab-be68-8fd7c6ae5ffc'
BOOK_CLOUD_NATIVE_IDENTIFIER = '2a4bb4ff-7ea3-4ba4-a3a3-a3d1f3e1ad2d'
BOOK_SPRING_ACTION_IDENTIFIER = '02c3d1fb-ca17-4ad9-9a58-3a4ee43ab7e9'
BOOK_DEVOPS_IDENTIFIER = '26e6a9fb-b2b5-4cbb-8b8d-9c8dfb6c3cd2'

DEFAULT_PASSWORD = 'library'

BOOKS = [
    {
        'identifier': BOOK_CLEAN_CODE_IDENTIFIER,
        'isbn': '9780132350884',
        'title': 'Clean Code',
        'description': 'Even bad code can function. But if code isn’t clean, it can bring a development '
                       'organization to its knees.',
        'authors': ['Robert C. Martin'],
    },
    {
        'identifier': BOOK_CLOUD_NATIVE_IDENTIFIER,
        'isbn': '9781449374648',
        'title': 'Cloud Native Java',
        'description': 'Designing Resilient Systems with Spring Boot, Spring Cloud, and Cloud Foundry.',
        'authors': ['Josh Long', 'Kenny Bastani'],
    },
    {
        'identifier': BOOK_SPRING_ACTION_IDENTIFIER,
        'isbn': '9781617291203',
        'title': 'Spring in Action: Covers Spring 4',
        'description': 'Spring in Action, Fourth Edition is a hands-on guide to the Spring Framework.',
        'authors': ['Craig Walls'],
    },
    {
        'identifier': BOOK_DEVOPS_IDENTIFIER,
        'isbn': '9781430245698',
        'title': 'DevOps for Developers',
        'description': 'Integrate development and operations to deliver software faster.',
        'authors': ['Michael Hüttermann'],
    },
]

USERS = [
    {'email': 'bruce.wayne@example.com', 'full_name': 'Bruce Wayne', 'roles': 'LIBRARY_USER'},
    {'email': 'bruce.banner@example.com', 'full_name': 'Bruce Banner', 'roles': 'LIBRARY_USER'},
    {'email': 'peter.parker@example.com', 'full_name': 'Peter Parker', 'roles': 'LIBRARY_CURATOR'},
]


def seed_database(password: str = DEFAULT_PASSWORD) -> int:
    """Insert missing demo rows and return how many were added."""
    added = 0
    password_hash = None
    for data in BOOKS:
        if db.session.get(Book, data['identifier']) is None:
            db.session.add(Book(**data))
            added += 1
    for data in USERS:
        exists = db.session.execute(db.select(User).filter_by(email=data['email'])).scalar_one_or_none()
        if exists is None:
            password_hash = password_hash or generate_password_hash(password)
            db.session.add(User(password_hash=password_hash, **data))
            added += 1
    db.session.commit()
    return added
