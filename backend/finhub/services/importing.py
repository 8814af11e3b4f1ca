"""
Shared import flow: normalize a tabular file, upsert it, record sync metadata.

Each source module exposes ``normalize(table, file_name) -> NormalizedBatch``
(pure, no database access) and is run through ``run_import``.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import String, Table

from finhub.config import UPLOAD_DIR
from finhub.services.tabular import TabularFile
from finhub.store import RowStore


logger = logging.getLogger(__name__)


class MissingColumnError(ValueError):
    """Raised when a file lacks the columns that identify its export format."""


class NoValidRowsError(ValueError):
    """Raised when a file parsed fine but every row was skipped."""

    def __init__(self, skipped: Counter) -> None:
        reasons = ", ".join(f"{reason}={count}" for reason, count in sorted(skipped.items()))
        message = "No valid rows found in file."
        if reasons:
            message += f" Skipped: {reasons}."
        super().__init__(message)
        self.skipped = skipped


@dataclass
class NormalizedBatch:
    """Rows ready for the Row Store plus the per-file parse statistics."""

    source: str
    table: str
    on_conflict: tuple[str, ...]
    records: list[dict[str, Any]] = field(default_factory=list)
    # Rows derived from the primary ones (e.g. Braintree fee rows), written to the same table.
    related_source: str | None = None
    related_records: list[dict[str, Any]] = field(default_factory=list)
    processed: int = 0
    skipped: Counter = field(default_factory=Counter)
    extras: dict[str, Any] = field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped[reason] += 1


@dataclass
class ImportResult:
    source: str
    file_name: str
    processed: int
    inserted: int
    updated: int
    skipped: int
    skipped_reasons: dict[str, int]
    related: dict[str, Any] | None = None
    storage_path: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        payload = {
            "source": self.source,
            "file_name": self.file_name,
            "processed": self.processed,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "skipped_reasons": self.skipped_reasons,
            "storage_path": self.storage_path,
            **self.extras,
        }
        if self.related is not None:
            payload["related"] = self.related
        return payload


def _exceeds(value: Any, width: int | None) -> bool:
    return width is not None and isinstance(value, str) and len(value) > width


def fit_to_columns(
    table: Table,
    records: list[dict[str, Any]],
    key_columns: tuple[str, ...],
) -> tuple[list[dict[str, Any]], int]:
    """
    Make string values fit their VARCHAR width.

    Free text is clipped; a record whose key column is too long is dropped,
    since clipping a key could merge it with another row. Returns the kept
    records and the number dropped.
    """
    widths = {
        column.name: column.type.length
        for column in table.columns
        if isinstance(column.type, String) and column.type.length
    }
    kept = []
    for record in records:
        if any(_exceeds(record.get(column), widths.get(column)) for column in key_columns):
            continue
        for column, value in record.items():
            width = widths.get(column)
            if _exceeds(value, width):
                record[column] = value[:width]
        kept.append(record)
    return kept, len(records) - len(kept)


def archive_upload(source: str, file_name: str, raw_bytes: bytes) -> str | None:
    """Keep a copy of the raw upload under UPLOAD_DIR; failures are logged, never raised."""
    if UPLOAD_DIR is None:
        return None
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    safe_name = "".join(ch if ch.isalnum() or ch in "-_. " else "_" for ch in file_name)
    target = UPLOAD_DIR / source / f"{stamp}-{safe_name}"
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(raw_bytes)
    except OSError as exc:
        logger.warning("Could not archive upload %s: %s", file_name, exc)
        return None
    return str(target.relative_to(UPLOAD_DIR))


def record_csv_upload(store: RowStore, table: str, source: str, added: int, date_column: str) -> None:
    """Refresh the sync_metadata row for ``source`` after an upload."""
    now = datetime.now(timezone.utc)
    store.upsert(
        "sync_metadata",
        [
            {
                "source": source,
                "last_csv_upload": now,
                "last_record_date": store.max_value(table, date_column, eq={"source": source}),
                "total_records": store.count(table, eq={"source": source}),
                "records_added_last_sync": added,
                "last_sync_status": "success",
                "last_sync_error": None,
            }
        ],
        on_conflict=("source",),
    )


def run_import(
    store: RowStore,
    normalize: Callable[[TabularFile, str], NormalizedBatch],
    table: TabularFile,
    file_name: str,
    raw_bytes: bytes,
    *,
    date_column: str = "date",
) -> ImportResult:
    batch = normalize(table, file_name)
    target = store.table(batch.table)
    batch.records, dropped = fit_to_columns(target, batch.records, batch.on_conflict)
    if dropped:
        batch.skipped["identifier_too_long"] += dropped
    batch.related_records, _ = fit_to_columns(target, batch.related_records, batch.on_conflict)

    logger.info(
        "Normalized %s: %s rows processed, %s valid, %s skipped %s",
        file_name,
        batch.processed,
        len(batch.records),
        sum(batch.skipped.values()),
        dict(batch.skipped),
    )
    if not batch.records:
        raise NoValidRowsError(batch.skipped)

    result = store.upsert(batch.table, batch.records, on_conflict=batch.on_conflict)
    record_csv_upload(store, batch.table, batch.source, result.inserted, date_column)

    related = None
    if batch.related_source:
        related_result = store.upsert(batch.table, batch.related_records, on_conflict=batch.on_conflict)
        related = {
            "source": batch.related_source,
            "inserted": related_result.inserted,
            "updated": related_result.updated,
        }
        if batch.related_records:
            record_csv_upload(store, batch.table, batch.related_source, related_result.inserted, date_column)

    storage_path = archive_upload(batch.source, file_name, raw_bytes)

    return ImportResult(
        source=batch.source,
        file_name=file_name,
        processed=batch.processed,
        inserted=result.inserted,
        updated=result.updated,
        skipped=sum(batch.skipped.values()),
        skipped_reasons=dict(batch.skipped),
        related=related,
        storage_path=storage_path,
        extras=batch.extras,
    )
