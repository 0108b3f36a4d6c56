# reset_db.py
"""
Database reset utility - drops all tables and recreates them fresh.

Usage:
    python reset_db.py           # Reset only
    python reset_db.py --seed    # Reset + bootstrap a SuperAdmin
"""
import argparse
import os

from sqlalchemy import create_engine, inspect

from config import settings
from db_base import Base
from seed_database import DEFAULT_SUPERADMIN_EMAIL, DEFAULT_SUPERADMIN_USERNAME, get_sync_url, seed_database

# Import all models to register them with Base.metadata
import db_models  # noqa: F401


def reset_database() -> bool:
    """Drop all tables and recreate them."""
    sync_url = get_sync_url(settings.DATABASE_URL)

    print("=" * 60)
    print("DATABASE RESET UTILITY")
    print("=" * 60)
    print(f"\nConnecting to: {sync_url.split('@')[1] if '@' in sync_url else sync_url}")

    engine = create_engine(sync_url)
    try:
        tables = inspect(engine).get_table_names()
        if tables:
            print(f"\nFound {len(tables)} tables: {', '.join(tables)}")
            print("\nDropping all tables...")
            Base.metadata.drop_all(bind=engine)
        else:
            print("\nNo existing tables found.")

        print("\n" + "-" * 60)
        print("Creating fresh tables from SQLAlchemy models...")
        print("-" * 60)
        Base.metadata.create_all(bind=engine)

        inspector = inspect(engine)
        new_tables = sorted(inspector.get_table_names())
        print(f"\nCreated {len(new_tables)} tables:")
        for table in new_tables:
            print(f"\n  {table}:")
            for column in inspector.get_columns(table):
                print(f"    - {column['name']}: {column['type']}")

        print("\n" + "=" * 60)
        print("DATABASE RESET COMPLETE!")
        print("=" * 60)
        return True
    finally:
        engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Reset database - drop all tables and recreate fresh"
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Also create the SuperAdmin and demo accounts after reset"
    )
    args = parser.parse_args()

    success = reset_database()

    if success and args.seed:
        seed_database(
            username=os.environ.get("SUPERADMIN_USERNAME", DEFAULT_SUPERADMIN_USERNAME),
            email=os.environ.get("SUPERADMIN_EMAIL", DEFAULT_SUPERADMIN_EMAIL),
            password=os.environ.get("SUPERADMIN_PASSWORD", "ChangeMe123!"),
            demo_users=True,
        )
    elif success:
        print("\nTo bootstrap the first SuperAdmin, run:")
        print("  python seed_database.py")


if __name__ == "__main__":
    main()
