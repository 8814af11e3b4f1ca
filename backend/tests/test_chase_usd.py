from datetime import date

import pytest

from finhub.services import chase_usd
from finhub.services.importing import MissingColumnError
from finhub.services.tabular import read_csv


CSV = (
    "Details,Posting Date,Description,Amount,Type,Balance,Check or Slip #\n"
    'CREDIT,01/15/2025,BRAINTREE DEPOSIT,"$1,500.00",ACH_CREDIT,"5,000.00",\n'
    "DEBIT,01/16/2025,WIRE FEE,-25.00,FEE_TRANSACTION,4975.00,\n"
    "DEBIT,01/16/2025,WIRE FEE,-25.00,FEE_TRANSACTION,4950.00,\n"
    "DEBIT,not-a-date,BROKEN,-1.00,MISC,,\n"
    "DEBIT,01/17/2025,NO AMOUNT,,MISC,,\n"
    "CHECK,01/18/2025,CHECK 1001,-300.00,CHECK_PAID,4650.00,1001\n"
)


def test_normalize_builds_composite_keys():
    batch = chase_usd.normalize(read_csv(CSV.encode()), "chase.csv")

    keys = [record["external_id"] for record in batch.records]
    assert keys == [
        "2025-01-15|BRAINTREE DEPOSIT|1500.00",
        "2025-01-16|WIRE FEE|-25.00",
        "2025-01-16|WIRE FEE|-25.00-1",
        "2025-01-18|CHECK 1001|-300.00",
    ]
    assert batch.skipped == {"invalid_date": 1, "invalid_amount": 1}

    deposit = batch.records[0]
    assert deposit["date"] == date(2025, 1, 15)
    assert deposit["amount"] == 1500.0
    assert deposit["currency"] == "USD"
    assert deposit["custom_data"]["credit"] == 1500.0
    assert deposit["custom_data"]["debit"] is None
    assert deposit["custom_data"]["balance"] == 5000.0

    check = batch.records[3]
    assert check["custom_data"]["check_number"] == "1001"
    assert check["custom_data"]["type"] == "CHECK_PAID"


def test_summary_extras():
    batch = chase_usd.normalize(read_csv(CSV.encode()), "chase.csv")

    assert batch.extras["summary"] == {
        "total_credits": 1500.0,
        "total_debits": -350.0,
        "final_balance": 4650.0,
    }


def test_required_columns():
    with pytest.raises(MissingColumnError):
        chase_usd.normalize(read_csv(b"Posting Date,Amount\n01/01/2025,1\n"), "bad.csv")


def test_overlapping_statements_do_not_duplicate(upload, store):
    upload("/api/csv/chase-usd", "january.csv", CSV)
    response = upload("/api/csv/chase-usd", "january-again.csv", CSV)

    assert response.status_code == 200
    assert response.json()["data"]["inserted"] == 0
    assert response.json()["data"]["updated"] == 4
    assert store.count("csv_rows", eq={"source": "chase-usd"}) == 4


def test_non_numeric_amount_is_skipped(upload):
    content = (
        "Details,Posting Date,Description,Amount,Type,Balance,Check or Slip #\n"
        "CREDIT,01/15/2025,DEPOSIT,100.00,ACH_CREDIT,100.00,\n"
        "DEBIT,01/16/2025,GARBLED,NaN,MISC,,\n"
    )

    data = upload("/api/csv/chase-usd", "chase.csv", content).json()["data"]

    assert data["inserted"] == 1
    assert data["skipped_reasons"] == {"invalid_amount": 1}
    assert data["summary"] == {"total_credits": 100.0, "total_debits": 0.0, "final_balance": 100.0}
