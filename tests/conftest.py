import json
import os
import re

import pytest

from app import create_app
from models import db
from seed import seed_database
from services.auth import issue_token, make_identity
from services.policy import Role

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SNIPPETS_DIR = os.environ.get('SNIPPETS_DIR', os.path.join(ROOT, 'build', 'generated-snippets'))
DOCS_PORT = 9091


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        seed_database()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def book_service(app):
    return app.extensions['book_service']


# plain identity values, no credentials involved

def user_identity(email='bruce.wayne@example.com'):
    return make_identity(subject=email, email=email, roles=[Role.LIBRARY_USER])


def curator_identity(email='peter.parker@example.com'):
    return make_identity(subject=email, email=email, roles=[Role.LIBRARY_CURATOR])


@pytest.fixture
def user():
    return user_identity()


@pytest.fixture
def other_user():
    return user_identity('bruce.banner@example.com')


@pytest.fixture
def curator():
    return curator_identity()


@pytest.fixture
def outsider():
    return make_identity(subject='clark.kent@example.com', email='clark.kent@example.com')


@pytest.fixture
def bearer(app):
    """Build an Authorization header carrying a signed token for an identity."""

    def _bearer(identity):
        return {'Authorization': f'Bearer {issue_token(identity)}'}

    return _bearer


def _with_docs_port(text):
    return re.sub(r'http://localhost(:\d+)?/', f'http://localhost:{DOCS_PORT}/', text)


def _pretty(raw):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@pytest.fixture
def document():
    """Record a pretty printed request/response pair under SNIPPETS_DIR."""

    def _document(name, response, body=None):
        req = response.request
        snippet = {
            'request': {
                'method': req.method,
                'uri': _with_docs_port(req.url),
                'headers': {k: v for k, v in req.headers.items() if k != 'Authorization'},
                'body': body,
            },
            'response': {
                'status': response.status_code,
                'headers': {k: _with_docs_port(v) for k, v in response.headers.items()},
                'body': _pretty(_with_docs_port(response.get_data(as_text=True))),
            },
        }
        os.makedirs(SNIPPETS_DIR, exist_ok=True)
        path = os.path.join(SNIPPETS_DIR, f'{name}.json')
        with open(path, 'w', encoding='utf-8') as fh:
            json.dump(snippet, fh, ensure_ascii=False, indent=2)
        return path

    return _document
