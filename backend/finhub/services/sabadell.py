"""
Banco Sabadell EUR statement CSV → csv_rows.

Spanish layout: ``;`` separated, DD/MM/YYYY dates and decimal-comma amounts
(Fecha, Concepto, Movimiento, Saldo).
"""

from __future__ import annotations

from typing import Dict

from finhub.config import SOURCE_SABADELL
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.statements import StatementKeys, StatementTotals
from finhub.services.tabular import AmountError, TabularFile, cell, parse_amount, parse_date, text


def locate_columns(table: TabularFile) -> Dict[str, int]:
    return {
        "date": table.find_where(lambda h: "FECHA" in h),
        "concept": table.find_where(lambda h: "CONCEPTO" in h or "DESCRIPCION" in h or "DESCRIPTION" in h),
        "movement": table.find_where(lambda h: "MOVIMIENTO" in h or "IMPORTE" in h or "AMOUNT" in h),
        "balance": table.find_where(lambda h: "SALDO" in h or "BALANCE" in h),
        "reference": table.find_where(lambda h: "REF" in h),
        "category": table.find_where(lambda h: "CATEGORIA" in h or "CATEGORY" in h),
    }


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    idx = locate_columns(table)
    if -1 in (idx["date"], idx["concept"], idx["movement"]):
        raise MissingColumnError("Required columns not found (Fecha, Concepto, Movimiento).")

    batch = NormalizedBatch(
        source=SOURCE_SABADELL,
        table="csv_rows",
        on_conflict=("source", "external_id"),
    )
    keys = StatementKeys()
    totals = StatementTotals()

    for position, row in enumerate(table.rows):
        batch.processed += 1

        date_raw = text(row, idx["date"])
        concept = text(row, idx["concept"]) or ""
        if not date_raw and not concept:
            batch.skip("empty_row")
            continue

        row_date = parse_date(date_raw, day_first=True)
        if row_date is None:
            batch.skip("invalid_date")
            continue

        try:
            amount = parse_amount(cell(row, idx["movement"]), decimal_comma=True)
        except AmountError:
            amount = None
        if amount is None:
            batch.skip("invalid_amount")
            continue

        try:
            balance = parse_amount(cell(row, idx["balance"]), decimal_comma=True)
        except AmountError:
            balance = None
        totals.add(amount, balance)

        category = text(row, idx["category"])
        batch.records.append(
            {
                "source": SOURCE_SABADELL,
                "external_id": keys.next(row_date, concept, amount),
                "file_name": file_name,
                "date": row_date,
                "description": concept,
                "amount": amount,
                "currency": "EUR",
                "custom_data": {
                    "fecha": date_raw,
                    "fecha_iso": row_date.isoformat(),
                    "concepto": concept,
                    "referencia": text(row, idx["reference"]),
                    "categoria": category or "Other",
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
