from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from finhub.dependencies import get_store, parse_date_range, parse_scope
from finhub.schemas import ArInvoiceOut
from finhub.store import RowStore


router = APIRouter()


@router.get("", response_model=dict)
async def list_ar_invoices(
    source: Optional[str] = Query(default=None, description="e.g. craft-commerce"),
    status: Optional[str] = Query(default=None, description="paid | partial | pending | cancelled"),
    limit: int = Query(default=1000, ge=1, le=10000),
    date_range: Tuple[Optional[date], Optional[date]] = Depends(parse_date_range),
    scope: Optional[str] = Depends(parse_scope),
    store: RowStore = Depends(get_store),
) -> dict:
    """Receivable invoices, newest invoice date first; the date range applies to ``invoice_date``."""
    start, end = date_range
    eq: Dict[str, Any] = {}
    if source:
        eq["source"] = source
    if status:
        eq["status"] = status
    if scope:
        eq["scope"] = scope

    rows = store.select(
        "ar_invoices",
        eq=eq,
        gte={"invoice_date": start} if start else None,
        lte={"invoice_date": end} if end else None,
        order_by="invoice_date",
        descending=True,
        limit=limit,
    )
    items = [ArInvoiceOut.model_validate(row) for row in rows]
    return {"success": True, "data": items, "count": len(items)}
