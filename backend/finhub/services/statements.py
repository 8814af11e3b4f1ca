"""
Helpers shared by the bank statement importers (Chase, Bankinter, Sabadell).

Statement exports carry no transaction id. Rows are keyed by
"{YYYY-MM-DD}|{description}|{amount}", and a key repeated inside one file gets
a "-N" suffix so identical same-day movements stay separate rows.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional


class StatementKeys:
    """Composite business keys for one file."""

    def __init__(self) -> None:
        self._seen: Dict[str, int] = {}

    def next(self, row_date: date, description: str, amount: float) -> str:
        base_key = f"{row_date.isoformat()}|{description}|{amount:.2f}"
        count = self._seen.get(base_key, 0)
        self._seen[base_key] = count + 1
        return base_key if count == 0 else f"{base_key}-{count}"


class StatementTotals:
    """Running credit/debit totals and the balances seen, for the upload summary."""

    def __init__(self) -> None:
        self.credits = 0.0
        self.debits = 0.0
        self.first_balance: Optional[float] = None
        self.last_balance: Optional[float] = None

    def add(self, amount: float, balance: Optional[float] = None) -> None:
        if amount > 0:
            self.credits += amount
        else:
            self.debits += amount
        if balance is not None:
            if self.first_balance is None:
                self.first_balance = balance
            self.last_balance = balance

    def summary(self, *, newest_first: bool = False) -> Dict[str, Any]:
        # Newest-first statements carry the closing balance on their first row.
        return {
            "total_credits": round(self.credits, 2),
            "total_debits": round(self.debits, 2),
            "final_balance": self.first_balance if newest_first else self.last_balance,
        }
