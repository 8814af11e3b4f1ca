"""
Braintree "Transaction Search" CSV export → csv_rows.

Each settled transaction becomes a ``braintree-api-revenue`` row keyed by its
transaction id; a positive service fee adds a ``braintree-api-fees`` row with
the negated fee amount. Declined, amountless and dateless rows are skipped.
"""

from __future__ import annotations

from datetime import datetime, timezone

from finhub.config import SOURCE_BRAINTREE_FEES, SOURCE_BRAINTREE_REVENUE
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.tabular import (
    AmountError,
    CurrencyError,
    TabularFile,
    amount_or_zero,
    cell,
    currency_code,
    parse_amount,
    parse_date,
    text,
)


DECLINED_STATUSES = {"voided", "failed", "gateway_rejected", "processor_declined"}
REQUIRED_HEADER = "transaction id"

COLUMNS = {
    "transaction_id": ("transaction id",),
    "subscription_id": ("subscription id",),
    "transaction_type": ("transaction type",),
    "transaction_status": ("transaction status",),
    "created_datetime": ("created datetime",),
    "settlement_date": ("settlement date",),
    "disbursement_date": ("disbursement date",),
    "merchant_account": ("merchant account",),
    "currency_iso_code": ("currency iso code",),
    "amount_authorized": ("amount authorized",),
    "amount_submitted": ("amount submitted for settlement",),
    "service_fee": ("service fee",),
    "order_id": ("order id",),
    "card_type": ("card type",),
    "payment_instrument_type": ("payment instrument type",),
    "cardholder_name": ("cardholder name",),
    "customer_first_name": ("customer first name",),
    "customer_last_name": ("customer last name",),
    "customer_company": ("customer company",),
    "customer_email": ("customer email",),
    "settlement_amount": ("settlement amount",),
    "settlement_currency": ("settlement currency iso code",),
    "settlement_exchange_rate": ("settlement currency exchange rate",),
    "settlement_batch_id": ("settlement batch id",),
    "country_of_issuance": ("country of issuance",),
    "issuing_bank": ("issuing bank",),
    "billing_company": ("billing company",),
}


def detect_currency(merchant_account: str | None, currency_iso: str | None) -> str:
    """ISO code column when filled (``CurrencyError`` if malformed), else a guess from the merchant account."""
    if currency_iso:
        return currency_code(currency_iso)
    account = (merchant_account or "").lower()
    for code in ("eur", "usd", "gbp", "aud"):
        if code in account:
            return code.upper()
    return "EUR"


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    if table.find_col(REQUIRED_HEADER) == -1:
        raise MissingColumnError(
            'Unrecognized format. The CSV must contain a "Transaction ID" column '
            "(export it from Braintree > Transaction Search)."
        )

    idx = {name: table.find_col(*aliases) for name, aliases in COLUMNS.items()}
    batch = NormalizedBatch(
        source=SOURCE_BRAINTREE_REVENUE,
        table="csv_rows",
        on_conflict=("source", "external_id"),
        related_source=SOURCE_BRAINTREE_FEES,
    )
    imported_at = datetime.now(timezone.utc).isoformat()
    by_currency: dict[str, dict[str, float]] = {}

    for row in table.rows:
        batch.processed += 1

        transaction_id = text(row, idx["transaction_id"])
        if not transaction_id:
            batch.skip("no_transaction_id")
            continue

        status = (text(row, idx["transaction_status"]) or "").lower()
        if status in DECLINED_STATUSES:
            batch.skip("declined")
            continue

        raw_amount = cell(row, idx["amount_submitted"]) or cell(row, idx["amount_authorized"])
        try:
            amount = parse_amount(raw_amount)
        except AmountError:
            amount = None
        if not amount or amount <= 0:
            batch.skip("no_amount")
            continue

        settlement_date = parse_date(cell(row, idx["settlement_date"]))
        created_date = parse_date(cell(row, idx["created_datetime"]))
        disbursement_date = parse_date(cell(row, idx["disbursement_date"]))
        row_date = settlement_date or created_date
        if row_date is None:
            batch.skip("no_date")
            continue

        merchant_account = text(row, idx["merchant_account"]) or "unknown"
        try:
            currency = detect_currency(merchant_account, text(row, idx["currency_iso_code"]))
        except CurrencyError:
            batch.skip("invalid_currency")
            continue

        first_name = text(row, idx["customer_first_name"]) or ""
        last_name = text(row, idx["customer_last_name"]) or ""
        cardholder_name = text(row, idx["cardholder_name"])
        customer_name = f"{first_name} {last_name}".strip() or cardholder_name or "Braintree Customer"
        customer_email = text(row, idx["customer_email"])
        company = text(row, idx["customer_company"]) or text(row, idx["billing_company"])

        card_type = text(row, idx["card_type"])
        payment_method = text(row, idx["payment_instrument_type"]) or card_type or "Unknown"

        settlement_amount = amount_or_zero(cell(row, idx["settlement_amount"])) or amount
        settlement_currency = text(row, idx["settlement_currency"]) or currency
        exchange_rate = amount_or_zero(cell(row, idx["settlement_exchange_rate"])) or (
            1.0 if settlement_currency == currency else None
        )
        settlement_batch_id = text(row, idx["settlement_batch_id"])
        order_id = text(row, idx["order_id"])
        service_fee = amount_or_zero(cell(row, idx["service_fee"]))

        totals = by_currency.setdefault(currency, {"count": 0, "total": 0.0})
        totals["count"] += 1
        totals["total"] = round(totals["total"] + amount, 2)

        batch.records.append(
            {
                "source": SOURCE_BRAINTREE_REVENUE,
                "external_id": transaction_id,
                "file_name": f"braintree-csv-{file_name}",
                "date": row_date,
                "description": f"{customer_name} - {payment_method}",
                "amount": amount,
                "currency": currency,
                "customer_email": customer_email,
                "customer_name": customer_name,
                "custom_data": {
                    "transaction_id": transaction_id,
                    "subscription_id": text(row, idx["subscription_id"]),
                    "order_id": order_id,
                    "status": status or "settled",
                    "type": (text(row, idx["transaction_type"]) or "sale").lower(),
                    "currency": currency,
                    "customer_name": customer_name,
                    "customer_email": customer_email,
                    "billing_name": cardholder_name or customer_name,
                    "company_name": company,
                    "payment_method": payment_method,
                    "card_type": card_type,
                    "merchant_account_id": merchant_account,
                    "created_at": created_date.isoformat() if created_date else None,
                    "disbursement_date": disbursement_date.isoformat() if disbursement_date else None,
                    "settlement_amount": settlement_amount,
                    "settlement_currency": settlement_currency,
                    "settlement_currency_exchange_rate": exchange_rate,
                    "settlement_date": settlement_date.isoformat() if settlement_date else None,
                    "settlement_batch_id": settlement_batch_id,
                    "disbursement_id": settlement_batch_id,
                    "country_of_issuance": text(row, idx["country_of_issuance"]),
                    "issuing_bank": text(row, idx["issuing_bank"]),
                    "_imported": True,
                    "_import_source": file_name,
                    "_import_date": imported_at,
                    "_import_method": "csv-upload",
                },
            }
        )

        if service_fee > 0:
            batch.related_records.append(
                {
                    "source": SOURCE_BRAINTREE_FEES,
                    "external_id": transaction_id,
                    "file_name": f"braintree-csv-{file_name}",
                    "date": row_date,
                    "description": f"Fee Braintree - {transaction_id}",
                    "amount": -service_fee,
                    "currency": currency,
                    "custom_data": {
                        "transaction_id": transaction_id,
                        "related_revenue_amount": amount,
                        "fee_type": "service_fee",
                        "currency": currency,
                        "_imported": True,
                        "_import_source": file_name,
                    },
                }
            )

    with_order_id = sum(1 for record in batch.records if record["custom_data"]["order_id"])
    with_disbursement = sum(1 for record in batch.records if record["custom_data"]["disbursement_date"])
    batch.extras = {
        "by_currency": [
            {"currency": currency, "count": int(totals["count"]), "total": totals["total"]}
            for currency, totals in sorted(by_currency.items())
        ],
        "with_order_id": with_order_id,
        "without_order_id": len(batch.records) - with_order_id,
        "with_disbursement": with_disbursement,
        "without_disbursement": len(batch.records) - with_disbursement,
        "fee_rows": len(batch.related_records),
    }
    return batch
