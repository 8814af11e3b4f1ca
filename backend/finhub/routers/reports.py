from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from finhub.config import SOURCE_BRAINTREE_REVENUE
from finhub.dependencies import get_store, parse_date_range, parse_scope
from finhub.routers.csv_rows import scope_filters
from finhub.services.freshness import build_report
from finhub.store import RowStore


router = APIRouter()


def _bucket() -> Dict[str, Decimal | int]:
    return {"count": 0, "total": Decimal("0")}


@router.get("/reports/revenue-summary", response_model=dict)
async def revenue_summary(
    source: str = Query(default=SOURCE_BRAINTREE_REVENUE),
    date_range: Tuple[Optional[date], Optional[date]] = Depends(parse_date_range),
    scope: Optional[str] = Depends(parse_scope),
    store: RowStore = Depends(get_store),
) -> dict:
    """
    Count and total of csv_rows for one source, per currency and per month.

    Rows without an amount are counted but add nothing to the totals.
    """
    start, end = date_range
    rows = store.select(
        "csv_rows",
        columns=["date", "amount", "currency"],
        eq={"source": source},
        in_=scope_filters(scope),
        gte={"date": start} if start else None,
        lte={"date": end} if end else None,
    )

    by_currency: Dict[str, Dict] = defaultdict(_bucket)
    by_month: Dict[Tuple[str, str], Dict] = defaultdict(_bucket)
    for row in rows:
        amount = Decimal(str(row["amount"])) if row["amount"] is not None else Decimal("0")
        currency = row["currency"] or "EUR"
        month = row["date"].strftime("%Y-%m") if row["date"] else "unknown"
        for bucket in (by_currency[currency], by_month[(month, currency)]):
            bucket["count"] += 1
            bucket["total"] += amount

    return {
        "success": True,
        "data": {
            "source": source,
            "start_date": start,
            "end_date": end,
            "count": len(rows),
            "by_currency": [
                {"currency": currency, "count": bucket["count"], "total": float(bucket["total"])}
                for currency, bucket in sorted(by_currency.items())
            ],
            "by_month": [
                {"month": month, "currency": currency, "count": bucket["count"], "total": float(bucket["total"])}
                for (month, currency), bucket in sorted(by_month.items())
            ],
        },
    }


@router.get("/data-freshness", response_model=dict)
async def data_freshness(store: RowStore = Depends(get_store)) -> dict:
    """Fresh / stale / error / never status for every source the dashboard tracks."""
    report = build_report(store.select("sync_metadata"))
    return {"success": True, "data": report}
