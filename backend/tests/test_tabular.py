from datetime import date, datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from finhub.services.tabular import (
    AmountError,
    CurrencyError,
    TabularFile,
    TabularFileError,
    currency_code,
    parse_amount,
    parse_date,
    read_csv,
    read_table,
    snake_key,
)


def _xlsx_bytes(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_read_csv_detects_semicolon_separator_and_strips_bom():
    table = read_csv("\ufeffNumber;Total\nINV-1;12,50\n\nINV-2;3\n".encode("utf-8"))

    assert table.headers == ["Number", "Total"]
    assert table.rows == [["INV-1", "12,50"], ["INV-2", "3"]]


def test_read_csv_falls_back_to_latin1():
    table = read_csv("Descripción,Importe\nCafé,1.00\n".encode("latin-1"))

    assert table.headers[0] == "Descripción"
    assert table.rows[0][0] == "Café"


def test_read_csv_rejects_header_only_file():
    with pytest.raises(TabularFileError):
        read_csv(b"Number,Total\n")


def test_read_table_rejects_unknown_extension():
    with pytest.raises(TabularFileError) as excinfo:
        read_table("report.pdf", b"irrelevant", allowed=(".csv",))

    assert ".csv" in str(excinfo.value)


def test_read_table_reads_first_xlsx_sheet_with_native_types():
    raw = _xlsx_bytes([["Number", "Invoice Date", "Total"], ["INV-1", datetime(2025, 3, 1), 99.5], [None, None, None]])

    table = read_table("orders.xlsx", raw, allowed=(".xlsx",))

    assert table.headers == ["Number", "Invoice Date", "Total"]
    assert len(table.rows) == 1
    assert table.rows[0][1] == datetime(2025, 3, 1)
    assert table.rows[0][2] == 99.5


def test_read_table_rejects_corrupt_workbook():
    with pytest.raises(TabularFileError):
        read_table("broken.xlsx", b"not a zip file", allowed=(".xlsx",))


def test_find_col_prefers_exact_match_over_substring():
    table = TabularFile(headers=["Order ID", "ID", "Customer Email"])

    assert table.find_col("id") == 1
    assert table.find_col("email") == 2
    assert table.find_col("missing") == -1


@pytest.mark.parametrize(
    "value, day_first, expected",
    [
        ("2025-01-19 15:38:51", False, date(2025, 1, 19)),
        ("01/02/2025", False, date(2025, 1, 2)),
        ("01/02/2025", True, date(2025, 2, 1)),
        ("05-03-2025", True, date(2025, 3, 5)),
        ("03/15/2025 10:00:00 UTC", False, date(2025, 3, 15)),
        (45658, False, date(2025, 1, 1)),
        (datetime(2025, 5, 6, 7, 8), False, date(2025, 5, 6)),
        ("", False, None),
        ("-", False, None),
        ("13/45/2025", False, None),
        ("next tuesday", False, None),
    ],
)
def test_parse_date(value, day_first, expected):
    assert parse_date(value, day_first=day_first) == expected


def test_parse_amount_handles_symbols_and_separators():
    assert parse_amount("$1,234.56") == 1234.56
    assert parse_amount("-$20.00") == -20.0
    assert parse_amount("(15.00)") == -15.0
    assert parse_amount("12,50", decimal_comma=True) == 12.5
    assert parse_amount(7) == 7.0
    assert parse_amount(" ") is None


def test_parse_amount_raises_on_garbage():
    with pytest.raises(AmountError):
        parse_amount("twelve")


@pytest.mark.parametrize("value", ["NaN", "nan", "inf", "-Infinity", "1e400", float("nan"), float("inf")])
def test_parse_amount_rejects_non_finite_values(value):
    with pytest.raises(AmountError):
        parse_amount(value)


def test_currency_code():
    assert currency_code(" usd ") == "USD"
    assert currency_code(None) == "EUR"
    assert currency_code("", default="USD") == "USD"
    with pytest.raises(CurrencyError):
        currency_code("Euro")
    with pytest.raises(CurrencyError):
        currency_code("€")


def test_snake_key():
    assert snake_key("Payment Method") == "Payment_Method"
    assert snake_key(" Invoice Date (UTC) ") == "Invoice_Date_UTC"


def test_with_header_row_skips_title_block():
    table = read_table(
        "statement.xlsx",
        _xlsx_bytes(
            [
                ["Movimientos de cuenta"],
                ["Cuenta", "ES00 0128 0000"],
                ["FECHA CONTABLE", "FECHA VALOR", "DESCRIPCIÓN", "IMPORTE"],
                ["02/01/2025", "02/01/2025", "TRANSFERENCIA", "100,00"],
            ]
        ),
        allowed=(".xlsx",),
    )

    located = table.with_header_row(lambda headers: "FECHA VALOR" in headers)

    assert located.headers == ["FECHA CONTABLE", "FECHA VALOR", "DESCRIPCIÓN", "IMPORTE"]
    assert located.rows == [["02/01/2025", "02/01/2025", "TRANSFERENCIA", "100,00"]]
    assert located.find_where(lambda h: "DESCRIPCI" in h) == 2
    assert table.with_header_row(lambda headers: "SALDO" in headers) is None


def test_with_header_row_keeps_table_when_first_row_matches():
    table = read_csv(b"Fecha,Concepto\n01/01/2025,Cuota\n")

    assert table.with_header_row(lambda headers: "FECHA" in headers) is table
