"""
Chase bank statement CSV (USD account) → csv_rows.

Rows are keyed by date, description and amount (see ``statements``).
"""

from __future__ import annotations

from typing import Dict

from finhub.config import SOURCE_CHASE_USD
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.statements import StatementKeys, StatementTotals
from finhub.services.tabular import AmountError, TabularFile, cell, parse_amount, parse_date, text


def locate_columns(table: TabularFile) -> Dict[str, int]:
    return {
        "details": table.find_where(lambda h: "DETAILS" in h),
        "posting_date": table.find_where(lambda h: "POSTING" in h and "DATE" in h),
        "description": table.find_exact("DESCRIPTION"),
        "amount": table.find_exact("AMOUNT"),
        "type": table.find_exact("TYPE"),
        "balance": table.find_exact("BALANCE"),
        "check_number": table.find_where(lambda h: "CHECK" in h or "SLIP" in h),
    }


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    idx = locate_columns(table)
    if -1 in (idx["posting_date"], idx["description"], idx["amount"]):
        raise MissingColumnError("Required columns not found (Posting Date, Description, Amount).")

    batch = NormalizedBatch(
        source=SOURCE_CHASE_USD,
        table="csv_rows",
        on_conflict=("source", "external_id"),
    )
    keys = StatementKeys()
    totals = StatementTotals()

    for position, row in enumerate(table.rows):
        batch.processed += 1

        posting_date_raw = text(row, idx["posting_date"])
        description = text(row, idx["description"]) or ""
        if not posting_date_raw and not description:
            batch.skip("empty_row")
            continue

        row_date = parse_date(posting_date_raw)
        if row_date is None:
            batch.skip("invalid_date")
            continue

        try:
            amount = parse_amount(cell(row, idx["amount"]))
        except AmountError:
            amount = None
        if amount is None:
            batch.skip("invalid_amount")
            continue

        try:
            balance = parse_amount(cell(row, idx["balance"]))
        except AmountError:
            balance = None
        totals.add(amount, balance)

        batch.records.append(
            {
                "source": SOURCE_CHASE_USD,
                "external_id": keys.next(row_date, description, amount),
                "file_name": file_name,
                "date": row_date,
                "description": description,
                "amount": amount,
                "currency": "USD",
                "custom_data": {
                    "post_date": posting_date_raw,
                    "post_date_iso": row_date.isoformat(),
                    "details": text(row, idx["details"]),
                    "type": text(row, idx["type"]),
                    "check_number": text(row, idx["check_number"]),
                    "debit": amount if amount < 0 else None,
                    "credit": amount if amount > 0 else None,
                    "balance": balance,
                    "row_index": position + 2,
                    "file_name": file_name,
                },
            }
        )

    batch.extras = {"summary": totals.summary()}
    return batch
