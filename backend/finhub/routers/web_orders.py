from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from finhub.dependencies import get_store
from finhub.store import RowStore, missing_table_message


logger = logging.getLogger(__name__)

router = APIRouter()

TABLE = "web_orders"


@router.get("/status", response_model=dict)
async def web_orders_status(store: RowStore = Depends(get_store)) -> dict:
    """
    Report whether the ``web_orders`` table exists and how many rows it holds.

    The table is created by ``migrate_web_orders.py``; until then this returns
    ``exists: false`` with the instruction instead of an error.
    """
    if not store.table_exists(TABLE):
        message = missing_table_message(TABLE)
        logger.info("web_orders check: table missing")
        return {"success": True, "data": {"exists": False, "count": 0, "message": message}}

    count = store.count(TABLE)
    latest = store.select(
        TABLE,
        columns=["order_reference", "date_ordered"],
        order_by="date_ordered",
        descending=True,
        limit=1,
    )
    return {
        "success": True,
        "data": {
            "exists": True,
            "count": count,
            "latest_order": latest[0] if latest else None,
            "message": f"Table '{TABLE}' exists with {count} rows.",
        },
    }
