"""
seed_categories.py: initialise the database and the default category list.

Modes:
- python seed_categories.py           create missing tables, add missing default categories
- python seed_categories.py --reset   drop ALL tables and recreate them first (data is lost)
"""

import argparse

from app import create_app
from extensions import db
from modules.categories.models import DEFAULT_CATEGORIES, seed_default_categories


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create tables and seed default recipe categories")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables (data will be lost)")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.reset:
            print("Dropping tables ...")
            db.drop_all()
        db.create_all()
        added = seed_default_categories()
        print(f"Done: {added} of {len(DEFAULT_CATEGORIES)} default categories added.")


if __name__ == "__main__":
    main()
