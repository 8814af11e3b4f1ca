"""
FastAPI dependencies: Row Store singleton and shared query parsing.
"""
from __future__ import annotations

import datetime as dt
from typing import Optional, Tuple

from fastapi import HTTPException, Query, status

from finhub.config import SCOPE_CURRENCIES, SCOPE_GLOBAL
from finhub.store import RowStore

# ---------------------------------------------------------------------------
# Row Store singleton (replaced by tests via dependency_overrides or set_store)
# ---------------------------------------------------------------------------
_store: RowStore | None = None


def set_store(store: RowStore | None) -> None:
    global _store
    _store = store


def get_store() -> RowStore:
    global _store
    if _store is None:
        _store = RowStore()
    return _store


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------

def _parse_date(value: Optional[str], name: str) -> Optional[dt.date]:
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid {name}: {value} (expected YYYY-MM-DD)")


def parse_date_range(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
) -> Tuple[Optional[dt.date], Optional[dt.date]]:
    start = _parse_date(start_date, "start_date")
    end = _parse_date(end_date, "end_date")
    if start and end and start > end:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "start_date must not be after end_date")
    return start, end


def parse_scope(scope: Optional[str] = Query(None, description="ES | US | GLOBAL")) -> Optional[str]:
    """Normalized scope, or None for GLOBAL / no scope (no filtering)."""
    if not scope:
        return None
    scope = scope.upper()
    if scope == SCOPE_GLOBAL:
        return None
    if scope not in SCOPE_CURRENCIES:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid scope: {scope}")
    return scope
