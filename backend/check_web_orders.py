#!/usr/bin/env python3
"""
Report whether the web_orders table exists and how many rows it holds.

Exits with status 1 when the table is missing.

Usage (from backend/):
    python3 check_web_orders.py
"""
import sys

from finhub.store import RowStore, missing_table_message


def main() -> int:
    store = RowStore()
    if not store.table_exists("web_orders"):
        print(missing_table_message("web_orders"))
        return 1
    print(f"web_orders exists with {store.count('web_orders')} rows.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
