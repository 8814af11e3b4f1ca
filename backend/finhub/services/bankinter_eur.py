"""
Bankinter EUR account statement (XLSX) → csv_rows.

The workbook opens with a title block; the real header row is the first one
with a FECHA CONTABLE / FECHA VALOR column. Movements come either as a signed
IMPORTE or as separate DEBE / HABER columns. Statements list the newest
movement first, so the closing balance is the SALDO of the first row.
"""

from __future__ import annotations

from typing import Dict

from finhub.config import SOURCE_BANKINTER_EUR
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.statements import StatementKeys, StatementTotals
from finhub.services.tabular import AmountError, TabularFile, cell, parse_amount, parse_date, text


NO_DESCRIPTION = "Sin descripción"


def _is_header_row(headers: list[str]) -> bool:
    return any("FECHA" in header and ("CONTABLE" in header or "VALOR" in header) for header in headers)


def locate_columns(table: TabularFile) -> Dict[str, int]:
    return {
        "booking_date": table.find_where(lambda h: "FECHA" in h and "CONTABLE" in h),
        "value_date": table.find_where(lambda h: "FECHA" in h and "VALOR" in h),
        "description": table.find_where(lambda h: "DESCRIPCIÓN" in h or "DESCRIPCION" in h),
        "debit": table.find_exact("DEBE"),
        "credit": table.find_exact("HABER"),
        "amount": table.find_where(lambda h: "IMPORTE" in h),
        "balance": table.find_exact("SALDO"),
        "reference": table.find_exact("REFERENCIA"),
        "code": table.find_exact("CLAVE"),
        "category": table.find_where(lambda h: "CATEGOR" in h),
    }


def _amount(row, idx: int) -> float:
    """Blank → 0.0; statement cells use a decimal comma."""
    return parse_amount(cell(row, idx), decimal_comma=True) or 0.0


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    located = table.with_header_row(_is_header_row)
    if located is None:
        raise MissingColumnError("Header row not found (FECHA CONTABLE, FECHA VALOR...) in the first 15 rows.")
    table = located

    idx = locate_columns(table)
    if idx["value_date"] == -1 or idx["description"] == -1:
        raise MissingColumnError("Required columns not found (FECHA VALOR, DESCRIPCIÓN).")

    batch = NormalizedBatch(
        source=SOURCE_BANKINTER_EUR,
        table="csv_rows",
        on_conflict=("source", "external_id"),
    )
    keys = StatementKeys()
    totals = StatementTotals()

    for position, row in enumerate(table.rows):
        batch.processed += 1

        value_date_raw = cell(row, idx["value_date"])
        description = text(row, idx["description"]) or ""
        if value_date_raw is None and not description:
            batch.skip("empty_row")
            continue

        row_date = parse_date(value_date_raw, day_first=True)
        if row_date is None:
            batch.skip("invalid_date")
            continue

        try:
            debit = _amount(row, idx["debit"])
            credit = _amount(row, idx["credit"])
            signed = _amount(row, idx["amount"])
        except AmountError:
            batch.skip("invalid_amount")
            continue
        if debit == 0 and credit == 0 and signed == 0:
            batch.skip("no_amount")
            continue
        # Some exports sign DEBE, others do not.
        amount = signed if signed != 0 else credit - abs(debit)

        try:
            balance = parse_amount(cell(row, idx["balance"]), decimal_comma=True)
        except AmountError:
            balance = None
        totals.add(amount, balance)

        description = description or NO_DESCRIPTION
        category = text(row, idx["category"])
        booking_date = parse_date(cell(row, idx["booking_date"]), day_first=True)

        batch.records.append(
            {
                "source": SOURCE_BANKINTER_EUR,
                "external_id": keys.next(row_date, description, amount),
                "file_name": file_name,
                "date": row_date,
                "description": description,
                "amount": amount,
                "currency": "EUR",
                "custom_data": {
                    "debe": debit,
                    "haber": credit,
                    "importe": signed,
                    "saldo": balance,
                    "referencia": text(row, idx["reference"]),
                    "clave": text(row, idx["code"]),
                    "categoria": category or "Other",
                    "fecha_contable": booking_date.isoformat() if booking_date else None,
                    "fecha_valor": row_date.isoformat(),
                    "row_index": position + 1,
                    "file_name": file_name,
                },
            }
        )

    batch.extras = {"summary": totals.summary(newest_first=True)}
    return batch
