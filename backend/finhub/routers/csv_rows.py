from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from finhub.config import SCOPE_CURRENCIES
from finhub.dependencies import get_store, parse_date_range, parse_scope
from finhub.schemas import CsvRowOut, CsvRowsUpsert
from finhub.store import RowStore


logger = logging.getLogger(__name__)

router = APIRouter()


def scope_filters(scope: Optional[str]) -> Dict[str, Any]:
    """csv_rows carry no scope column; a scope maps to the currencies it books."""
    if scope is None:
        return {}
    return {"currency": SCOPE_CURRENCIES[scope]}


@router.get("", response_model=dict)
async def list_csv_rows(
    source: Optional[str] = Query(default=None, description="Source discriminator, e.g. braintree-api-revenue"),
    reconciled: Optional[bool] = Query(default=None),
    limit: int = Query(default=1000, ge=1, le=10000),
    date_range: Tuple[Optional[date], Optional[date]] = Depends(parse_date_range),
    scope: Optional[str] = Depends(parse_scope),
    store: RowStore = Depends(get_store),
) -> dict:
    """
    Return imported rows, newest first.

    An unknown ``source`` simply matches nothing and yields an empty list.
    """
    start, end = date_range
    eq: Dict[str, Any] = {}
    if source:
        eq["source"] = source
    if reconciled is not None:
        eq["reconciled"] = reconciled

    rows = store.select(
        "csv_rows",
        eq=eq,
        in_=scope_filters(scope),
        gte={"date": start} if start else None,
        lte={"date": end} if end else None,
        order_by="date",
        descending=True,
        limit=limit,
    )
    items = [CsvRowOut.model_validate(row) for row in rows]
    return {"success": True, "data": items, "count": len(items)}


@router.post("", response_model=dict)
async def upsert_csv_rows(payload: CsvRowsUpsert, store: RowStore = Depends(get_store)) -> dict:
    """Upsert already-normalized rows for one source, keyed by (source, external_id)."""
    rows = [{**row.model_dump(), "source": payload.source} for row in payload.rows]
    result = store.upsert("csv_rows", rows, on_conflict=("source", "external_id"))
    logger.info("Bulk upsert into %s: %s new, %s updated", payload.source, result.inserted, result.updated)
    return {
        "success": True,
        "data": {"source": payload.source, "inserted": result.inserted, "updated": result.updated},
    }
