from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from finhub import models
from finhub.store import RowStoreError, create_tables, is_missing_table_error, missing_table_message


def _row(external_id: str, amount: float, **extra):
    return {
        "source": "test-source",
        "external_id": external_id,
        "date": date(2025, 1, 1),
        "amount": amount,
        "currency": "EUR",
        "custom_data": {"n": external_id},
        **extra,
    }


def test_upsert_reports_inserted_and_updated_across_batches(store):
    result = store.upsert("csv_rows", [_row("a", 1), _row("b", 2), _row("c", 3)], on_conflict=("source", "external_id"))
    assert (result.inserted, result.updated) == (3, 0)

    result = store.upsert("csv_rows", [_row("c", 30), _row("d", 4)], on_conflict=("source", "external_id"))
    assert (result.inserted, result.updated) == (1, 1)
    assert result.total == 2

    [row] = store.select("csv_rows", eq={"external_id": "c"})
    assert float(row["amount"]) == 30.0
    assert store.count("csv_rows") == 4


def test_upsert_collapses_repeated_keys_to_last_row(store):
    result = store.upsert("csv_rows", [_row("x", 1), _row("x", 2)], on_conflict=("source", "external_id"))

    assert result.inserted == 1
    [row] = store.select("csv_rows")
    assert float(row["amount"]) == 2.0


def test_upsert_keeps_created_at_and_untouched_columns(store):
    store.upsert("csv_rows", [_row("k", 1)], on_conflict=("source", "external_id"))
    [before] = store.select("csv_rows")
    store.upsert("csv_rows", [_row("k", 5)], on_conflict=("source", "external_id"))
    [after] = store.select("csv_rows")

    assert after["id"] == before["id"]
    assert after["created_at"] == before["created_at"]
    assert after["reconciled"] is False


def test_select_filters_order_and_limit(store):
    store.upsert(
        "csv_rows",
        [
            _row("1", 10, date=date(2025, 1, 1)),
            _row("2", 20, date=date(2025, 2, 1), currency="USD"),
            _row("3", 30, date=date(2025, 3, 1)),
        ],
        on_conflict=("source", "external_id"),
    )

    rows = store.select("csv_rows", gte={"date": date(2025, 1, 15)}, order_by="date", descending=True)
    assert [row["external_id"] for row in rows] == ["3", "2"]

    rows = store.select("csv_rows", in_={"currency": ["USD"]})
    assert [row["external_id"] for row in rows] == ["2"]

    rows = store.select("csv_rows", columns=["external_id"], order_by="date", limit=1)
    assert rows == [{"external_id": "1"}]

    assert store.select("csv_rows", eq={"source": "does-not-exist"}) == []
    assert store.max_value("csv_rows", "date") == date(2025, 3, 1)


def test_unknown_table_name(store):
    with pytest.raises(RowStoreError):
        store.select("nope")


def test_missing_table_is_flagged(store, engine):
    models.WebOrder.__table__.drop(engine)

    with pytest.raises(RowStoreError) as excinfo:
        store.select("web_orders")

    assert excinfo.value.missing_table is True
    assert "migrate_web_orders.py" in excinfo.value.user_message
    assert store.table_exists("web_orders") is False
    assert store.table_exists("csv_rows") is True


def test_missing_core_table_points_at_init_db(store, engine):
    models.WsComment.__table__.drop(engine)

    with pytest.raises(RowStoreError) as excinfo:
        store.select("ws_comments")

    assert "init_db.py" in excinfo.value.user_message
    assert "migrate_" not in excinfo.value.user_message
    assert "migrate_web_orders.py" in missing_table_message("web_orders")


def test_create_tables_leaves_web_orders_to_its_migration(engine):
    models.WebOrder.__table__.drop(engine)

    assert create_tables(engine) == []
    assert create_tables(engine, include_web_orders=True) == ["web_orders"]


class _PgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


@pytest.mark.parametrize(
    "orig, expected",
    [
        (_PgError("relation web_orders", "42P01"), True),
        (_PgError('column "foo" does not exist', "42703"), False),
        (Exception('relation "web_orders" does not exist'), True),
        (Exception("no such table: web_orders"), True),
        (Exception("disk I/O error"), False),
    ],
)
def test_is_missing_table_error(orig, expected):
    exc = OperationalError("SELECT 1", {}, orig)

    assert is_missing_table_error(exc) is expected
