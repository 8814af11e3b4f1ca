"""
Row Store: a small table client over SQLAlchemy.

Handlers and importers talk to named tables (``csv_rows``, ``ar_invoices``,
``web_orders``...) through ``select`` / ``insert`` / ``upsert`` / ``count``
instead of building statements themselves. Database failures are wrapped in
``RowStoreError``; a missing table is flagged on the error so callers can turn
it into a "run the migration" message.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import Table, func, inspect, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from finhub import models
from finhub.config import IMPORT_BATCH_SIZE
from finhub.db import get_session


logger = logging.getLogger(__name__)


TABLES: dict[str, Table] = {
    "csv_rows": models.CsvRow.__table__,
    "ar_invoices": models.ArInvoice.__table__,
    "web_orders": models.WebOrder.__table__,
    "sync_metadata": models.SyncMetadata.__table__,
    "ws_users": models.WsUser.__table__,
    "ws_tasks": models.WsTask.__table__,
    "ws_activity_log": models.WsActivity.__table__,
    "ws_comments": models.WsComment.__table__,
}

# Postgres "undefined_table" SQLSTATE and the message fragments drivers use for it.
MISSING_TABLE_CODE = "42P01"
MISSING_TABLE_MESSAGES = ("does not exist", "no such table")


# Script that creates each table; the core tables all come from init_db.py.
MIGRATION_SCRIPTS = {"web_orders": "migrate_web_orders.py"}
DEFAULT_MIGRATION_SCRIPT = "init_db.py"


def missing_table_message(table: str) -> str:
    script = MIGRATION_SCRIPTS.get(table, DEFAULT_MIGRATION_SCRIPT)
    return f"Table '{table}' does not exist. Run {script} to create it and retry."


class RowStoreError(Exception):
    """Raised when a Row Store operation fails."""

    def __init__(self, message: str, *, table: str | None = None, missing_table: bool = False) -> None:
        super().__init__(message)
        self.table = table
        self.missing_table = missing_table

    @property
    def user_message(self) -> str:
        if self.missing_table and self.table:
            return missing_table_message(self.table)
        return str(self)


def is_missing_table_error(exc: BaseException) -> bool:
    """True when a database error means the queried table has not been created."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        # SQLSTATE wins over the message: "column ... does not exist" is 42703.
        return code == MISSING_TABLE_CODE
    message = str(orig if orig is not None else exc).lower()
    return any(fragment in message for fragment in MISSING_TABLE_MESSAGES)


@dataclass(frozen=True)
class UpsertResult:
    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated


class RowStore:
    """Generic query/insert/upsert access to the named tables."""

    def __init__(self, session_factory=get_session, batch_size: int = IMPORT_BATCH_SIZE) -> None:
        self._session_factory = session_factory
        self.batch_size = batch_size

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def table(name: str) -> Table:
        try:
            return TABLES[name]
        except KeyError:
            raise RowStoreError(f"Unknown table: {name}", table=name) from None

    def _wrap(self, exc: SQLAlchemyError, table_name: str) -> RowStoreError:
        missing = is_missing_table_error(exc)
        if missing:
            logger.warning("Table %s is missing", table_name)
        else:
            logger.error("Row Store error on %s: %s", table_name, exc)
        message = f"Database error on '{table_name}': {getattr(exc, 'orig', None) or exc}"
        return RowStoreError(message, table=table_name, missing_table=missing)

    @staticmethod
    def _apply_filters(
        stmt,
        table: Table,
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Sequence[Any]] | None = None,
        gte: Mapping[str, Any] | None = None,
        lte: Mapping[str, Any] | None = None,
    ):
        for column, value in (eq or {}).items():
            stmt = stmt.where(table.c[column] == value)
        for column, values in (in_ or {}).items():
            stmt = stmt.where(table.c[column].in_(list(values)))
        for column, value in (gte or {}).items():
            stmt = stmt.where(table.c[column] >= value)
        for column, value in (lte or {}).items():
            stmt = stmt.where(table.c[column] <= value)
        return stmt

    def _insert_for(self, session, table: Table):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(table)
        if dialect == "sqlite":
            return sqlite_insert(table)
        raise RowStoreError(f"Upsert is not supported on dialect '{dialect}'", table=table.name)

    def _upsert_chunk(self, session, table: Table, chunk: list[tuple[tuple, dict[str, Any]]], on_conflict: Sequence[str]) -> int:
        """Write one chunk of same-shaped rows; returns how many keys already existed."""
        keys = [key for key, _ in chunk]
        rows = [row for _, row in chunk]

        key_columns = [table.c[column] for column in on_conflict]
        if len(key_columns) == 1:
            key_filter = key_columns[0].in_([key[0] for key in keys])
        else:
            key_filter = tuple_(*key_columns).in_(keys)
        existing = session.execute(select(*key_columns).where(key_filter)).all()

        stmt = self._insert_for(session, table).values(rows)
        update_columns = {
            column.name: stmt.excluded[column.name]
            for column in table.columns
            if column.name in rows[0]
            and column.name not in on_conflict
            and not column.primary_key
            and column.name != "created_at"
        }
        if "updated_at" in table.c and "updated_at" not in update_columns:
            update_columns["updated_at"] = func.now()

        if update_columns:
            stmt = stmt.on_conflict_do_update(index_elements=list(on_conflict), set_=update_columns)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(on_conflict))
        session.execute(stmt)
        return len(existing)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def select(
        self,
        table_name: str,
        *,
        columns: Sequence[str] | None = None,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Sequence[Any]] | None = None,
        gte: Mapping[str, Any] | None = None,
        lte: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching rows as plain dicts."""
        table = self.table(table_name)
        cols = [table.c[name] for name in columns] if columns else [table]
        stmt = self._apply_filters(select(*cols), table, eq=eq, in_=in_, gte=gte, lte=lte)
        if order_by:
            column = table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            with self._session_factory() as session:
                rows = session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise self._wrap(exc, table_name) from exc
        return [dict(row) for row in rows]

    def count(self, table_name: str, *, eq: Mapping[str, Any] | None = None) -> int:
        table = self.table(table_name)
        stmt = self._apply_filters(select(func.count()).select_from(table), table, eq=eq)
        try:
            with self._session_factory() as session:
                return int(session.execute(stmt).scalar() or 0)
        except SQLAlchemyError as exc:
            raise self._wrap(exc, table_name) from exc

    def max_value(self, table_name: str, column: str, *, eq: Mapping[str, Any] | None = None) -> Any:
        table = self.table(table_name)
        stmt = self._apply_filters(select(func.max(table.c[column])), table, eq=eq)
        try:
            with self._session_factory() as session:
                return session.execute(stmt).scalar()
        except SQLAlchemyError as exc:
            raise self._wrap(exc, table_name) from exc

    def table_exists(self, table_name: str) -> bool:
        """Check a table with a ``LIMIT 1`` select; False only when the table is missing."""
        try:
            self.select(table_name, limit=1)
        except RowStoreError as exc:
            if exc.missing_table:
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, table_name: str, rows: Iterable[Mapping[str, Any]]) -> int:
        table = self.table(table_name)
        payload = [dict(row) for row in rows]
        if not payload:
            return 0

        # executemany compiles from the first row, so rows are grouped by their key set.
        groups: dict[tuple, list[dict[str, Any]]] = {}
        for row in payload:
            groups.setdefault(tuple(sorted(row)), []).append(row)

        try:
            with self._session_factory() as session:
                for group in groups.values():
                    for start in range(0, len(group), self.batch_size):
                        session.execute(table.insert(), group[start : start + self.batch_size])
        except SQLAlchemyError as exc:
            raise self._wrap(exc, table_name) from exc
        return len(payload)

    def upsert(
        self,
        table_name: str,
        rows: Iterable[Mapping[str, Any]],
        *,
        on_conflict: Sequence[str],
    ) -> UpsertResult:
        """
        Insert-or-update rows keyed by the unique columns in ``on_conflict``.

        Existing keys are looked up before writing so the result can report how
        many rows were new and how many replaced an earlier import. Rows repeating
        a key inside the same call collapse to the last occurrence.
        """
        table = self.table(table_name)
        by_key: dict[tuple, dict[str, Any]] = {}
        for row in rows:
            by_key[tuple(row[column] for column in on_conflict)] = dict(row)
        if not by_key:
            return UpsertResult()

        # A multi-row VALUES needs one column list, so rows are grouped by their key set.
        groups: dict[tuple, list[tuple[tuple, dict[str, Any]]]] = {}
        for key, row in by_key.items():
            groups.setdefault(tuple(sorted(row)), []).append((key, row))

        inserted = updated = 0
        try:
            with self._session_factory() as session:
                for group in groups.values():
                    for start in range(0, len(group), self.batch_size):
                        chunk = group[start : start + self.batch_size]
                        existing = self._upsert_chunk(session, table, chunk, on_conflict)
                        updated += existing
                        inserted += len(chunk) - existing
        except SQLAlchemyError as exc:
            raise self._wrap(exc, table_name) from exc

        logger.info("Upserted %s rows into %s (%s new, %s updated)", len(by_key), table_name, inserted, updated)
        return UpsertResult(inserted=inserted, updated=updated)


def create_tables(engine: Engine, *, include_web_orders: bool = False) -> list[str]:
    """Create the core tables (and optionally ``web_orders``); returns the names created."""
    tables = list(models.CORE_TABLES)
    if include_web_orders:
        tables.append(models.WebOrder.__table__)
    existing = set(inspect(engine).get_table_names())
    models.Base.metadata.create_all(bind=engine, tables=tables)
    return [table.name for table in tables if table.name not in existing]


def session_factory_for(engine: Engine):
    """Build a ``get_session``-style context manager bound to another engine (scripts, tests)."""
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    @contextmanager
    def _session():
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _session
