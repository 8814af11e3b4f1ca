"""
Invoice order spreadsheets (CSV or XLSX) → csv_rows.

Column layout is flexible: the identifier, date, amount and product columns
are located by name and every other column is carried into ``custom_data``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any

from finhub.config import SOURCE_INVOICE_ORDERS
from finhub.services import revenue_accounts
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.tabular import (
    AmountError,
    CurrencyError,
    TabularFile,
    cell,
    currency_code,
    parse_amount,
    parse_date,
    snake_key,
    text,
)


logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 500

OPTIONAL_COLUMNS = {
    "order": "ORDER",
    "currency": "CURRENCY",
    "company": "COMPANY",
    "client": "CLIENT",
    "email": "EMAIL",
    "country": "COUNTRY",
    "payment_method": "PAYMENT METHOD",
    "billing_entity": "BILLING ENTITY",
    "charged": "CHARGED",
}


def _exact_or_containing(table: TabularFile, exact: str, *fragments: str) -> int:
    idx = table.find_exact(exact)
    if idx != -1:
        return idx
    for position, header in enumerate(table.headers):
        upper = header.upper()
        if any(fragment in upper for fragment in fragments):
            return position
    return -1


def _json_value(value: Any) -> Any:
    """Spreadsheet cell → something the JSON column can hold."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def locate_columns(table: TabularFile) -> dict[str, int]:
    columns = {
        "id": table.find_exact("ID"),
        "number": table.find_exact("NUMBER"),
        "date": _exact_or_containing(table, "INVOICE DATE", "DATE", "FECHA"),
        "amount": _exact_or_containing(table, "TOTAL", "AMOUNT", "VALOR"),
        "description": _exact_or_containing(table, "PRODUCTS", "DESCRIPTION", "DESCRIPCION", "NAME"),
    }
    for name, header in OPTIONAL_COLUMNS.items():
        columns[name] = table.find_exact(header)
    return columns


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    idx = locate_columns(table)
    if idx["id"] == -1 and idx["number"] == -1:
        raise MissingColumnError('Required columns not found. The file must contain a "Number" or "ID" column.')
    if idx["date"] == -1:
        raise MissingColumnError('Required columns not found. The file must contain an "Invoice Date" column.')

    logger.debug("Invoice order column mapping for %s: %s", file_name, idx)
    batch = NormalizedBatch(
        source=SOURCE_INVOICE_ORDERS,
        table="csv_rows",
        on_conflict=("source", "external_id"),
    )
    unclassified = 0

    for position, row in enumerate(table.rows):
        batch.processed += 1
        row_index = position + 2  # header is line 1

        invoice_id = text(row, idx["id"])
        invoice_number = text(row, idx["number"]) or invoice_id
        if not invoice_number:
            batch.skip("no_identifier")
            continue

        row_date = parse_date(cell(row, idx["date"]), day_first=True)
        if row_date is None:
            batch.skip("invalid_date")
            continue

        try:
            amount = parse_amount(cell(row, idx["amount"]), decimal_comma=True) or 0.0
        except AmountError:
            batch.skip("invalid_amount")
            continue

        description = text(row, idx["description"]) or invoice_number
        order_number = text(row, idx["order"])
        try:
            currency = currency_code(text(row, idx["currency"]))
        except CurrencyError:
            batch.skip("invalid_currency")
            continue

        custom_data: dict[str, Any] = {
            "file_name": file_name,
            "row_index": row_index,
            "ID": invoice_id,
            "Number": invoice_number,
            "order_id": order_number,
            "order_number": order_number,
            "currency": currency,
        }
        for column, header in enumerate(table.headers):
            value = cell(row, column)
            if header and value is not None:
                custom_data[snake_key(header)] = _json_value(value)

        account = revenue_accounts.classify(description, invoice_number)
        if account.code is None:
            unclassified += 1
        custom_data["financial_account_code"] = account.code
        custom_data["financial_account_name"] = account.name

        batch.records.append(
            {
                "source": SOURCE_INVOICE_ORDERS,
                "external_id": invoice_number,
                "file_name": file_name,
                "date": row_date,
                "description": description[:DESCRIPTION_MAX_LENGTH],
                "amount": amount,
                "currency": currency,
                "customer_email": text(row, idx["email"]),
                "customer_name": text(row, idx["client"]) or text(row, idx["company"]),
                "custom_data": custom_data,
            }
        )

    batch.extras = {
        "headers": table.headers,
        "unclassified": unclassified,
    }
    return batch
