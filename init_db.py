#!/usr/bin/env python3
"""
Create the library tables, optionally resetting and seeding them.
Usage:
  python init_db.py [--reset] [--seed] [--db-uri sqlite:///library.db]
"""
import argparse
import sys

from app import create_app
from models import db
from seed import seed_database


def main(argv=None):
    parser = argparse.ArgumentParser(description='Initialize the library database')
    parser.add_argument('--db-uri', help='optional DB URI to override app config')
    parser.add_argument('--reset', action='store_true', help='drop all tables first')
    parser.add_argument('--seed', action='store_true', help='insert the demo books and users')
    args = parser.parse_args(argv)

    config = {'SEED_DATA': False}
    if args.db_uri:
        config['SQLALCHEMY_DATABASE_URI'] = args.db_uri

    app = create_app(config)
    with app.app_context():
        if args.reset:
            db.drop_all()
            print('Dropped existing tables')
        db.create_all()
        print(f"Initialized database ({app.config['SQLALCHEMY_DATABASE_URI']})")
        if args.seed:
            print(f'Seeded {seed_database()} demo rows')
    return 0


if __name__ == '__main__':
    sys.exit(main())
