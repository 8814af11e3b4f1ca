"""
Tabular file reading for the import endpoints.

Turns an uploaded CSV (any of ``,`` ``;`` or tab separated) or XLSX workbook
into a header row plus data rows, and provides the value parsers the
normalizers share.
"""

from __future__ import annotations

import csv
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any, Callable, Sequence

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel


CSV_EXTENSIONS = (".csv", ".txt")
XLSX_EXTENSIONS = (".xlsx",)
EMPTY_MARKERS = ("", "-", "N/A")


class TabularFileError(ValueError):
    """Raised when an uploaded file cannot be read as a table."""


@dataclass
class TabularFile:
    headers: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def find_col(self, *alternatives: str) -> int:
        """
        Case-insensitive column lookup.

        Exact header matches win over partial ones; alternatives are tried in order
        within each pass. Returns -1 when nothing matches.
        """
        lowered = [header.lower().strip() for header in self.headers]
        for alt in alternatives:
            alt = alt.lower()
            if alt in lowered:
                return lowered.index(alt)
        for alt in alternatives:
            alt = alt.lower()
            for idx, header in enumerate(lowered):
                if alt in header:
                    return idx
        return -1

    def find_exact(self, *alternatives: str) -> int:
        lowered = [header.lower().strip() for header in self.headers]
        for alt in alternatives:
            if alt.lower() in lowered:
                return lowered.index(alt.lower())
        return -1

    def find_where(self, predicate: Callable[[str], bool]) -> int:
        """First column whose upper-cased header satisfies ``predicate``, or -1."""
        for idx, header in enumerate(self.headers):
            if predicate(header.upper()):
                return idx
        return -1

    def with_header_row(self, matches: Callable[[list[str]], bool], *, search_rows: int = 15) -> TabularFile | None:
        """
        The same table re-read with the first row that ``matches`` as its header.

        Bank exports put a title block above the real header row. The first
        ``search_rows`` rows, current header included, are tried with their
        values upper-cased. Returns None when none of them matches.
        """
        candidates = [self.headers] + [[_clean_header(value) for value in row] for row in self.rows[: search_rows - 1]]
        for position, headers in enumerate(candidates):
            if matches([header.upper() for header in headers]):
                if position == 0:
                    return self
                return TabularFile(headers=headers, rows=self.rows[position:])
        return None


def cell(row: Sequence[Any], idx: int) -> Any:
    """Value at ``idx`` or None when the column is missing/blank."""
    if idx < 0 or idx >= len(row):
        return None
    value = row[idx]
    if isinstance(value, str):
        value = value.strip()
        if value in EMPTY_MARKERS:
            return None
    return value


def text(row: Sequence[Any], idx: int) -> str | None:
    value = cell(row, idx)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def detect_separator(first_line: str) -> str:
    counts = {sep: first_line.count(sep) for sep in (",", ";", "\t")}
    return max(counts, key=lambda sep: counts[sep])


def _decode(raw_bytes: bytes) -> str:
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return raw_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise TabularFileError("File must be UTF-8 or Latin-1 encoded.")


def _clean_header(value: Any) -> str:
    return str(value if value is not None else "").strip().strip("\"'").lstrip("\ufeff").strip()


def _is_blank(values: Sequence[Any]) -> bool:
    return all(value is None or (isinstance(value, str) and not value.strip()) for value in values)


def read_csv(raw_bytes: bytes) -> TabularFile:
    content = _decode(raw_bytes)
    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        raise TabularFileError("File is empty or has no data rows.")

    separator = detect_separator(lines[0])
    reader = csv.reader(StringIO("\n".join(lines)), delimiter=separator)
    all_rows = list(reader)
    headers = [_clean_header(value) for value in all_rows[0]]
    rows = [row for row in all_rows[1:] if not _is_blank(row)]
    return TabularFile(headers=headers, rows=rows)


def read_xlsx(raw_bytes: bytes) -> TabularFile:
    """Read the first worksheet; cell values keep their native types (dates, numbers)."""
    try:
        workbook = load_workbook(BytesIO(raw_bytes), read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises several unrelated types for corrupt files
        raise TabularFileError(f"Could not open workbook: {exc}") from exc

    try:
        sheet = workbook.worksheets[0]
        all_rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    all_rows = [row for row in all_rows if not _is_blank(row)]
    if len(all_rows) < 2:
        raise TabularFileError("File is empty or has no data rows.")
    headers = [_clean_header(value) for value in all_rows[0]]
    return TabularFile(headers=headers, rows=all_rows[1:])


def read_table(file_name: str, raw_bytes: bytes, *, allowed: Sequence[str]) -> TabularFile:
    """Dispatch on file extension, rejecting anything not in ``allowed``."""
    lower = (file_name or "").lower()
    if not any(lower.endswith(ext) for ext in allowed):
        raise TabularFileError(f"Invalid format. Accepted extensions: {', '.join(allowed)}")
    if lower.endswith(XLSX_EXTENSIONS):
        return read_xlsx(raw_bytes)
    return read_csv(raw_bytes)


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_SLASH_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})")


def parse_date(value: Any, *, day_first: bool = False) -> date | None:
    """
    Parse spreadsheet/CSV dates to ``date``.

    Accepts date/datetime objects, Excel serial numbers, ISO strings (with or
    without a time part) and slash dates, read as MM/DD/YYYY unless ``day_first``.
    Returns None for blanks and anything unparsable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_excel(value).date()
        except (ValueError, OverflowError, TypeError):
            return None

    raw = str(value).replace("\t", "").strip().strip('"')
    if raw in EMPTY_MARKERS:
        return None

    try:
        match = _ISO_DATE.match(raw)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = _SLASH_DATE.match(raw)
        if match:
            first, second, year = (int(part) for part in match.groups())
            month, day = (second, first) if day_first else (first, second)
            return date(year, month, day)
    except ValueError:
        return None
    return None


class AmountError(ValueError):
    """Raised when an amount cell holds something that is not a number."""


def parse_amount(value: Any, *, decimal_comma: bool = False) -> float | None:
    """
    Parse an amount cell. Blank → None; unparsable → ``AmountError``.

    Strips currency symbols, quotes, whitespace and thousands separators. With
    ``decimal_comma`` a trailing comma is the decimal separator ("12,50",
    "1.234,50").
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise AmountError(f"Not an amount: {value!r}")
    if isinstance(value, (int, float)):
        amount = float(value)
        if not math.isfinite(amount):
            raise AmountError(f"Not an amount: {value!r}")
        return amount

    raw = re.sub(r"[\s\"'$€£\t]", "", str(value))
    if raw in EMPTY_MARKERS:
        return None
    negative = raw.startswith("(") and raw.endswith(")")
    raw = raw.strip("()")
    if decimal_comma and "," in raw and raw.rfind(",") > raw.rfind("."):
        raw = raw.replace(".", "").replace(",", ".")
    else:
        raw = raw.replace(",", "")
    try:
        amount = float(raw)
    except ValueError:
        raise AmountError(f"Not an amount: {value!r}") from None
    # float() also accepts "nan" and "inf".
    if not math.isfinite(amount):
        raise AmountError(f"Not an amount: {value!r}")
    return -amount if negative else amount


class CurrencyError(ValueError):
    """Raised when a currency cell is not a three-letter code."""


_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def currency_code(value: Any, default: str = "EUR") -> str:
    """Upper-cased three-letter currency code. Blank → ``default``; anything else → ``CurrencyError``."""
    if value is None:
        return default
    code = str(value).strip().upper()
    if not code:
        return default
    if not _CURRENCY_CODE.match(code):
        raise CurrencyError(f"Not a currency code: {value!r}")
    return code


def snake_key(header: str) -> str:
    """Normalize a header into a custom_data key ("Payment Method" → "Payment_Method")."""
    return re.sub(r"[^\w]", "", re.sub(r"\s+", "_", header.strip()))


def amount_or_zero(value: Any) -> float:
    """Lenient variant for optional totals: blank or garbage reads as 0."""
    try:
        return parse_amount(value) or 0.0
    except AmountError:
        return 0.0
