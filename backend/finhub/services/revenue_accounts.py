"""Product text → revenue financial account (chart-of-accounts 1xx codes)."""

from __future__ import annotations

from typing import NamedTuple


class FinancialAccount(NamedTuple):
    code: str | None
    name: str | None


UNCLASSIFIED = FinancialAccount(None, None)

# First matching rule wins, so the more specific keywords come first.
ACCOUNT_RULES: list[tuple[FinancialAccount, tuple[str, ...]]] = [
    (
        FinancialAccount("101.1", "DSD Courses"),
        (
            "dsd provider",
            "designing smiles",
            "dsd course",
            "increase case acceptance",
            "case acceptance mastery",
            "ios festival",
            "intraoral scanner",
            "kois & coachman",
            "dsd aligners",
            "dsd clinical",
            "wtd meeting",
            "smile to success",
            "implement and learn",
            "mastering dsd",
        ),
    ),
    (FinancialAccount("101.3", "Mastership"), ("mastership", "master ship", "residency")),
    (
        FinancialAccount("101.4", "PC Membership"),
        ("provider annual membership", "provider membership", "pc membership", "planning center membership"),
    ),
    (FinancialAccount("101.5", "Partnerships"), ("sponsorship", "partnership", "sponsor", "exhibit space")),
    (
        FinancialAccount("102.5", "Consultancies"),
        ("dsd clinic transformation", "clinic transformation", "dsd clinic -", "consultancy", "consulting"),
    ),
    (FinancialAccount("102.6", "Marketing Coaching"), ("fractional cmo", "marketing coaching", "growth hub onboarding")),
    (FinancialAccount("103.0", "Planning Center"), ("planning center", "prep guide", "smile design", "planning service")),
    (
        FinancialAccount("104.0", "LAB"),
        ("natural restoration", "lab ", "prosthesis", "crown", "veneer", "surgical guide", "abutment"),
    ),
    (
        FinancialAccount("105.1", "Level 1 Subscriptions"),
        ("dsd growth hub", "growth hub", "monthly subscription", "subscription"),
    ),
    (FinancialAccount("105.4", "Other Marketing Revenues"), ("cancellation fee", "reschedule fee", "late fee")),
]


def classify(product_name: str | None, description: str | None = None) -> FinancialAccount:
    search_text = f"{product_name or ''} {description or ''}".lower()
    for account, keywords in ACCOUNT_RULES:
        if any(keyword in search_text for keyword in keywords):
            return account
    return UNCLASSIFIED
