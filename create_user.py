#!/usr/bin/env python3
"""
Create or update a library account.
Usage:
  python create_user.py --email peter.parker@example.com --password secret --role LIBRARY_CURATOR

This script must be run from the project root and will use the app's SQLAlchemy
configuration. It creates the user if missing, otherwise it resets the password
and replaces the roles.
"""
import argparse
import sys

from werkzeug.security import generate_password_hash

from app import create_app
from models import db, User
from services.policy import Role


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create or update a library user')
    parser.add_argument('--email', '-e', required=True, help='login email')
    parser.add_argument('--password', '-p', required=True, help='password')
    parser.add_argument('--name', help='full name')
    parser.add_argument(
        '--role', '-r', action='append', choices=[r.value for r in Role],
        help='role to grant; repeat for several (default LIBRARY_USER)',
    )
    parser.add_argument('--db-uri', help='optional DB URI to override app config')
    args = parser.parse_args(argv)

    config = {'SEED_DATA': False}
    if args.db_uri:
        config['SQLALCHEMY_DATABASE_URI'] = args.db_uri
    roles = ','.join(args.role or [Role.LIBRARY_USER.value])

    app = create_app(config)
    with app.app_context():
        db.create_all()
        user = db.session.execute(db.select(User).filter_by(email=args.email)).scalar_one_or_none()
        if not user:
            user = User(
                email=args.email,
                full_name=args.name,
                password_hash=generate_password_hash(args.password),
                roles=roles,
            )
            db.session.add(user)
            db.session.commit()
            print(f"Created user {args.email} with roles {roles}")
            return 0
        user.password_hash = generate_password_hash(args.password)
        user.roles = roles
        if args.name:
            user.full_name = args.name
        db.session.commit()
        print(f"Updated user '{args.email}': new password, roles {roles}")
        return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as e:
        print('Error:', e)
        sys.exit(1)
