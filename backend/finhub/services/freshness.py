from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from finhub.config import DATA_SOURCES, FRESHNESS_THRESHOLDS


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_status(last_sync: Optional[datetime], source_type: str, now: Optional[datetime] = None) -> str:
    """
    Classify a source by the age of its last sync/upload.

    Returns "never" without a timestamp, then "fresh" / "stale" / "error" as the
    age crosses the per-type thresholds (hours).
    """
    if last_sync is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    age_hours = (_as_utc(now) - _as_utc(last_sync)).total_seconds() / 3600
    threshold = FRESHNESS_THRESHOLDS[source_type]
    if age_hours < threshold["stale"]:
        return "fresh"
    if age_hours < threshold["error"]:
        return "stale"
    return "error"


def build_report(metadata_rows: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Combine sync_metadata rows with the configured source list into the freshness report."""
    by_source = {row["source"]: row for row in metadata_rows}
    sources: List[Dict[str, Any]] = []

    for config in DATA_SOURCES:
        metadata = by_source.get(config["source"], {})
        if config["type"] == "auto":
            last_sync = metadata.get("last_api_sync") or metadata.get("last_full_sync")
        else:
            last_sync = metadata.get("last_csv_upload")

        sources.append(
            {
                "source": config["source"],
                "display_name": config["display_name"],
                "type": config["type"],
                "last_sync": last_sync,
                "last_record_date": metadata.get("last_record_date"),
                "status": calculate_status(last_sync, config["type"], now),
                "sync_status": metadata.get("last_sync_status") or "idle",
                "total_records": metadata.get("total_records") or 0,
                "upload_path": config.get("upload_path"),
            }
        )

    fresh = sum(1 for s in sources if s["status"] == "fresh")
    stale = sum(1 for s in sources if s["status"] == "stale")
    errors = sum(1 for s in sources if s["status"] in ("error", "never"))
    if errors:
        overall = "error"
    elif stale:
        overall = "stale"
    else:
        overall = "fresh"

    return {
        "sources": sources,
        "overall_status": overall,
        "has_errors": errors > 0,
        "fresh_count": fresh,
        "stale_count": stale,
        "error_count": errors,
    }
