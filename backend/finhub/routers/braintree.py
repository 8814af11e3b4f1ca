from __future__ import annotations

from fastapi import APIRouter, Depends

from finhub.config import BRAINTREE_SOURCES, SOURCE_BRAINTREE_REVENUE
from finhub.dependencies import get_store
from finhub.store import RowStore


router = APIRouter()


@router.get("/sync-status", response_model=dict)
async def sync_status(store: RowStore = Depends(get_store)) -> dict:
    """
    Last update timestamps for the Braintree sources.

    ``automatic`` is the last scheduled API sync, ``safe`` the last incremental
    sync started by hand (kept in sync_config), ``force`` the last full re-sync.
    Sources that were never synced report nulls.
    """
    metadata = {row["source"]: row for row in store.select("sync_metadata", in_={"source": BRAINTREE_SOURCES})}

    sources = []
    for source in BRAINTREE_SOURCES:
        row = metadata.get(source, {})
        config = row.get("sync_config") or {}
        sources.append(
            {
                "source": source,
                "timestamps": {
                    "automatic": row.get("last_api_sync"),
                    "safe": config.get("last_safe_sync"),
                    "force": row.get("last_full_sync"),
                },
                "last_csv_upload": row.get("last_csv_upload"),
                "last_record_date": row.get("last_record_date"),
                "total_records": row.get("total_records") or 0,
                "last_sync_status": row.get("last_sync_status"),
                "last_sync_error": row.get("last_sync_error"),
            }
        )

    revenue = next(entry for entry in sources if entry["source"] == SOURCE_BRAINTREE_REVENUE)
    return {
        "success": True,
        "data": {
            "timestamps": revenue["timestamps"],
            "last_csv_upload": revenue["last_csv_upload"],
            "sources": sources,
        },
    }
