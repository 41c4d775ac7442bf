from __future__ import annotations

import os

from flask import Flask, g, jsonify, request, url_for
from werkzeug.exceptions import HTTPException

from config import BaseConfig, config_by_name
from models import db
from resources import book_collection, book_resource
from services.auth import get_current_identity, issue_token, verify_basic
from services.books import BookService
from services.errors import (
    AlreadyBorrowedError,
    ForbiddenError,
    LibraryError,
    NotBorrowedError,
    NotFoundError,
    NotOwnerError,
    UnauthenticatedError,
    ValidationError,
)

ERROR_STATUS = {
    ValidationError: 400,
    UnauthenticatedError: 401,
    ForbiddenError: 403,
    NotOwnerError: 403,
    NotFoundError: 404,
    AlreadyBorrowedError: 409,
    NotBorrowedError: 409,
}

AUTH_CHALLENGES = ('Bearer realm="library-server"', 'Basic realm="library-server"')


def status_for(exc: LibraryError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def _load_config(app: Flask, config_name: str | None, test_config: dict | None) -> None:
    resolved_name = config_name or os.environ.get('FLASK_CONFIG', 'development')
    config_cls = config_by_name.get(resolved_name, BaseConfig)
    app.config.from_object(config_cls)
    if test_config:
        app.config.update(test_config)


def create_app(config_name: str | None = None, test_config: dict | None = None):
    if isinstance(config_name, dict) and test_config is None:
        test_config = config_name
        config_name = None
    app = Flask(__name__)
    _load_config(app, config_name, test_config)
    app.logger.setLevel(app.config['LOG_LEVEL'])
    app.json.sort_keys = False
    db.init_app(app)
    book_service = BookService()
    app.extensions['book_service'] = book_service
    prefix = app.config['API_PREFIX'].rstrip('/')

    if app.config.get('SEED_DATA'):
        from seed import seed_database

        with app.app_context():
            db.create_all()
            added = seed_database()
            app.logger.info('Seeded %d demo rows', added)

    @app.before_request
    def reset_identity():
        g.pop('_identity', None)

    @app.errorhandler(LibraryError)
    def handle_library_error(exc: LibraryError):
        status = status_for(exc)
        response = jsonify({'error': exc.code, 'message': exc.message})
        response.status_code = status
        if status == 401:
            for challenge in AUTH_CHALLENGES:
                response.headers.add('WWW-Authenticate', challenge)
        elif status >= 500:
            app.logger.error('Unmapped library error: %r', exc)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        response = jsonify({'error': exc.name.lower().replace(' ', '_'), 'message': exc.description})
        response.status_code = exc.code or 500
        if getattr(exc, 'valid_methods', None):
            response.headers['Allow'] = ', '.join(exc.valid_methods)
        return response

    @app.after_request
    def set_security_headers(response):
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', 'no-referrer')
        response.headers.setdefault('Content-Security-Policy', "default-src 'none'; frame-ancestors 'none'")
        return response

    @app.route(f'{prefix}/token', methods=['POST'])
    def issue_access_token():
        auth = request.authorization
        if auth is None or auth.type != 'basic':
            raise UnauthenticatedError('Basic credentials required to obtain a token.')
        identity = verify_basic(auth.username, auth.password)
        app.logger.info('Issued access token for %s', identity.principal)
        return jsonify({
            'access_token': issue_token(identity),
            'token_type': 'Bearer',
            'expires_in': app.config['TOKEN_MAX_AGE'],
        })

    @app.route(f'{prefix}/books', methods=['GET'])
    def get_books():
        books = book_service.list_books(get_current_identity())
        return jsonify(book_collection(books))

    @app.route(f'{prefix}/books', methods=['POST'])
    def create_book():
        book = book_service.create_book(get_current_identity(), request.get_json(silent=True))
        response = jsonify(book_resource(book))
        response.status_code = 201
        response.headers['Location'] = url_for('get_book', book_id=book.identifier, _external=True)
        return response

    @app.route(f'{prefix}/books/<book_id>', methods=['GET'])
    def get_book(book_id: str):
        book = book_service.get_book(get_current_identity(), book_id)
        return jsonify(book_resource(book))

    @app.route(f'{prefix}/books/<book_id>', methods=['PUT'])
    def update_book(book_id: str):
        book = book_service.update_book(get_current_identity(), book_id, request.get_json(silent=True))
        return jsonify(book_resource(book))

    @app.route(f'{prefix}/books/<book_id>', methods=['DELETE'])
    def delete_book(book_id: str):
        book_service.delete_book(get_current_identity(), book_id)
        return '', 204

    @app.route(f'{prefix}/books/<book_id>/borrow', methods=['POST'])
    def borrow_book(book_id: str):
        book = book_service.borrow_book(get_current_identity(), book_id)
        return jsonify(book_resource(book))

    @app.route(f'{prefix}/books/<book_id>/return', methods=['POST'])
    def return_book(book_id: str):
        book = book_service.return_book(get_current_identity(), book_id)
        return jsonify(book_resource(book))

    return app


if __name__ == '__main__':
    application = create_app()
    with application.app_context():
        db.create_all()
    application.run(debug=True)
