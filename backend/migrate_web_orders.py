#!/usr/bin/env python3
"""
Migration script: create the web_orders table.

Readers check for this table and report a "run the migration"
message until it exists. Safe to run more than once.

Usage (from backend/):
    python3 migrate_web_orders.py
"""
from sqlalchemy import inspect

from finhub.db import engine
from finhub.models import WebOrder


def migrate() -> None:
    print("Starting web_orders migration...")
    if WebOrder.__tablename__ in inspect(engine).get_table_names():
        print("  web_orders table already exists, skipping creation.")
    else:
        print("  Creating web_orders table...")
        WebOrder.__table__.create(engine, checkfirst=True)
    print("Migration complete.")


if __name__ == "__main__":
    migrate()
