"""
DB bootstrap script for finhub.

- Reads FINHUB_DB_URL (or falls back to a local SQLite file).
- Creates the core tables. web_orders is left to migrate_web_orders.py.

Usage (from backend/):
  python init_db.py
"""

from finhub.db import engine
from finhub.store import create_tables


def main() -> None:
    created = create_tables(engine)
    if created:
        print(f"Created tables: {', '.join(created)}")
    else:
        print("finhub core tables already exist.")


if __name__ == "__main__":
    main()
