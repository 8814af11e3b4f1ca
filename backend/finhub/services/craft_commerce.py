"""
Craft Commerce order export → ar_invoices.

The export carries ~200 columns; only the order header fields are mapped.
Orders are keyed by ``CC-{reference}`` within their scope (USD orders are
booked by the US entity, everything else by the Spanish one).
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone

from finhub.config import SOURCE_CRAFT_COMMERCE
from finhub.services.importing import MissingColumnError, NormalizedBatch
from finhub.services.tabular import CurrencyError, TabularFile, amount_or_zero, cell, currency_code, parse_date, text


ORDER_STATUS_LABELS = {
    "5": "Completed",
    "7": "Refunded",
    "9": "Expired",
    "10": "Pending Payment",
    "12": "Processing",
}
CANCELLED_STATUS_IDS = {"7", "9"}
GATEWAY_NAMES = {"1": "Manual", "2": "Braintree", "3": "Stripe"}

US_ENTITY = {"billing_entity": "DSD US LLC", "country_code": "US", "scope": "US"}
ES_ENTITY = {"billing_entity": "Planning Center SL.", "country_code": "ES", "scope": "ES"}

COLUMNS = {
    "id": ("id",),
    "reference": ("reference",),
    "number": ("number",),
    "uid": ("uid",),
    "date_ordered": ("dateordered",),
    "date_paid": ("datepaid",),
    "date_created": ("datecreated",),
    "date_updated": ("dateupdated",),
    "currency": ("currency",),
    "payment_currency": ("paymentcurrency",),
    "email": ("ordercompletedemail",),
    "total_price": ("storedtotalprice",),
    "total_paid": ("storedtotalpaid",),
    "item_total": ("storeditemtotal",),
    "item_subtotal": ("storeditemsubtotal",),
    "total_discount": ("storedtotaldiscount",),
    "total_qty": ("storedtotalqty",),
    "total_shipping": ("storedtotalshippingcost",),
    "total_tax": ("storedtotaltax",),
    "total_tax_included": ("storedtotaltaxincluded",),
    "coupon_code": ("couponcode",),
    "order_status_id": ("orderstatusid",),
    "customer_id": ("customerid",),
    "gateway_id": ("gatewayid",),
    "order_type": ("field_ordertype",),
    "hubspot_company_id": ("field_hubspotcompanyid",),
    "last_ip": ("lastip",),
    "origin": ("origin",),
    "payment_source_id": ("paymentsourceid",),
}


def order_status_label(status_id: str | None) -> str | None:
    if not status_id:
        return None
    return ORDER_STATUS_LABELS.get(status_id, f"Status {status_id}")


def deal_status(order_type: str | None, total_paid: float, coupon_code: str | None) -> str:
    if order_type == "Credit":
        return "Credit Order"
    if order_type == "subscriptionPayment":
        return "Subscription Payment"
    if order_type == "freeProduct":
        return "Free Product"
    if coupon_code and total_paid == 0:
        return "Coupon Order"
    return "Web Order"


def payment_status(total_paid: float, total_price: float, status_id: str | None) -> str:
    """paid / partial / pending / cancelled from the stored totals."""
    if status_id in CANCELLED_STATUS_IDS:
        return "cancelled"
    if total_paid <= 0 and total_price <= 0:
        # free or fully discounted
        return "paid"
    if total_paid <= 0:
        return "pending"
    if abs(total_paid - total_price) < 0.01:
        return "paid"
    if total_paid < total_price:
        return "partial"
    return "paid"


def gateway_name(gateway_id: str | None) -> str | None:
    if not gateway_id:
        return None
    return GATEWAY_NAMES.get(gateway_id, f"Gateway {gateway_id}")


def normalize(table: TabularFile, file_name: str) -> NormalizedBatch:
    if table.find_col("reference") == -1 or table.find_col("dateordered") == -1:
        raise MissingColumnError('Required columns not found. The CSV must contain at least "reference" and "dateOrdered".')

    idx = {name: table.find_col(*aliases) for name, aliases in COLUMNS.items()}
    batch = NormalizedBatch(
        source=SOURCE_CRAFT_COMMERCE,
        table="ar_invoices",
        on_conflict=("invoice_number", "scope"),
    )
    imported_at = datetime.now(timezone.utc).isoformat()
    stats: Counter = Counter()

    for row in table.rows:
        batch.processed += 1

        craft_id = text(row, idx["id"])
        reference = text(row, idx["reference"])
        if not reference and not craft_id:
            batch.skip("no_reference")
            continue

        date_ordered = parse_date(cell(row, idx["date_ordered"]))
        date_created = parse_date(cell(row, idx["date_created"]))
        invoice_date = date_ordered or date_created
        if invoice_date is None:
            batch.skip("no_date")
            continue

        try:
            currency = currency_code(text(row, idx["currency"]))
        except CurrencyError:
            batch.skip("invalid_currency")
            continue
        entity = US_ENTITY if currency == "USD" else ES_ENTITY

        total_price = amount_or_zero(cell(row, idx["total_price"]))
        total_paid = amount_or_zero(cell(row, idx["total_paid"]))
        item_subtotal = amount_or_zero(cell(row, idx["item_subtotal"]))
        coupon_code = text(row, idx["coupon_code"])
        status_id = text(row, idx["order_status_id"])
        order_type = text(row, idx["order_type"])
        gateway_id = text(row, idx["gateway_id"])
        email = text(row, idx["email"])

        deal = deal_status(order_type, total_paid, coupon_code)
        status = payment_status(total_paid, total_price, status_id)

        stats[currency.lower() if currency in ("EUR", "USD") else "other"] += 1
        stats["paid" if status == "paid" else "unpaid"] += 1
        if deal == "Credit Order":
            stats["credit"] += 1
        elif deal == "Subscription Payment":
            stats["subscription"] += 1
        elif deal == "Free Product":
            stats["free_product"] += 1
        elif deal == "Coupon Order":
            stats["coupon"] += 1

        order_ref = reference or craft_id
        batch.records.append(
            {
                "invoice_number": f"CC-{order_ref}",
                "order_id": order_ref,
                "order_date": date_created,
                "order_status": order_status_label(status_id),
                "deal_status": deal,
                "invoice_date": invoice_date,
                "email": email,
                "total_amount": item_subtotal if item_subtotal > 0 else total_price,
                "currency": currency,
                "charged_amount": total_paid,
                "payment_method": gateway_name(gateway_id),
                "discount_code": coupon_code,
                "status": status,
                "payment_date": parse_date(cell(row, idx["date_paid"])),
                **entity,
                "source": SOURCE_CRAFT_COMMERCE,
                "source_id": craft_id,
                "source_data": {
                    "craft_id": craft_id,
                    "uid": text(row, idx["uid"]),
                    "order_number": text(row, idx["number"]),
                    "reference": reference,
                    "coupon_code": coupon_code,
                    "order_status_id": status_id,
                    "order_type": order_type,
                    "date_created": text(row, idx["date_created"]),
                    "date_ordered": text(row, idx["date_ordered"]),
                    "date_paid": text(row, idx["date_paid"]),
                    "date_updated": text(row, idx["date_updated"]),
                    "stored_total_price": total_price,
                    "stored_total_paid": total_paid,
                    "stored_item_total": amount_or_zero(cell(row, idx["item_total"])),
                    "stored_item_subtotal": item_subtotal,
                    "stored_total_discount": amount_or_zero(cell(row, idx["total_discount"])),
                    "stored_total_shipping": amount_or_zero(cell(row, idx["total_shipping"])),
                    "stored_total_tax": amount_or_zero(cell(row, idx["total_tax"])),
                    "stored_total_tax_included": amount_or_zero(cell(row, idx["total_tax_included"])),
                    "stored_total_qty": amount_or_zero(cell(row, idx["total_qty"])),
                    "customer_id": text(row, idx["customer_id"]),
                    "customer_email": email,
                    "gateway_id": gateway_id,
                    "gateway_name": gateway_name(gateway_id),
                    "hubspot_company_id": text(row, idx["hubspot_company_id"]),
                    "payment_currency": text(row, idx["payment_currency"]),
                    "last_ip": text(row, idx["last_ip"]),
                    "origin": text(row, idx["origin"]),
                    "payment_source_id": text(row, idx["payment_source_id"]),
                    "_imported": True,
                    "_import_source": file_name,
                    "_import_date": imported_at,
                    "_import_method": "csv-upload",
                },
            }
        )

    batch.extras = {
        "stats": {
            "total": len(batch.records),
            "eur": stats["eur"],
            "usd": stats["usd"],
            "other": stats["other"],
            "paid": stats["paid"],
            "unpaid": stats["unpaid"],
            "coupon": stats["coupon"],
            "credit": stats["credit"],
            "subscription": stats["subscription"],
            "free_product": stats["free_product"],
        }
    }
    return batch
