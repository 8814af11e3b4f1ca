from datetime import datetime, timedelta, timezone

import pytest

from finhub.services.freshness import build_report, calculate_status


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "age_hours, source_type, expected",
    [
        (1, "auto", "fresh"),
        (12, "auto", "stale"),
        (47, "auto", "stale"),
        (48, "auto", "error"),
        (95, "csv", "fresh"),
        (100, "csv", "stale"),
        (200, "csv", "error"),
    ],
)
def test_calculate_status_thresholds(age_hours, source_type, expected):
    assert calculate_status(NOW - timedelta(hours=age_hours), source_type, NOW) == expected


def test_never_synced():
    assert calculate_status(None, "csv", NOW) == "never"


def test_naive_timestamps_are_read_as_utc():
    naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)

    assert calculate_status(naive, "auto", NOW) == "fresh"


def test_auto_sources_use_api_sync_time():
    report = build_report(
        [{"source": "hubspot", "last_api_sync": NOW - timedelta(hours=1), "last_sync_status": "success", "total_records": 3}],
        NOW,
    )
    hubspot = next(entry for entry in report["sources"] if entry["source"] == "hubspot")

    assert hubspot["status"] == "fresh"
    assert hubspot["sync_status"] == "success"
    assert hubspot["total_records"] == 3
    assert report["fresh_count"] == 1
    assert report["error_count"] == len(report["sources"]) - 1
