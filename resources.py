"""HAL style representations of books.

Pure formatting: takes loaded :class:`models.Book` rows and returns plain
dicts with ``_links`` pointing at the book endpoints.  Must be called
inside a request or with a ``SERVER_NAME`` configured, since links are
built with :func:`flask.url_for`.
"""
from __future__ import annotations

from typing import Iterable

from flask import url_for


def _link(endpoint: str, **values) -> dict:
    return {'href': url_for(endpoint, _external=True, **values)}


def book_links(identifier: str) -> dict:
    return {
        'self': _link('get_book', book_id=identifier),
        'update': _link('update_book', book_id=identifier),
        'borrow': _link('borrow_book', book_id=identifier),
        'return': _link('return_book', book_id=identifier),
    }


def book_resource(book) -> dict:
    payload = book.to_dict()
    payload['_links'] = book_links(book.identifier)
    return payload


def book_collection(books: Iterable) -> dict:
    return {
        '_embedded': {'books': [book_resource(b) for b in books]},
        '_links': {
            'self': _link('get_books'),
            'create': _link('create_book'),
        },
    }
