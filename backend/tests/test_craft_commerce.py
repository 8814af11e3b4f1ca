from datetime import date

import pytest

from finhub.services import craft_commerce
from finhub.services.importing import MissingColumnError
from finhub.services.tabular import read_csv


HEADER = (
    "id,reference,number,dateOrdered,dateCreated,datePaid,currency,orderCompletedEmail,"
    "storedTotalPrice,storedTotalPaid,storedItemSubtotal,couponCode,orderStatusId,gatewayId,field_orderType\n"
)

CSV = HEADER + (
    "101,ab12cd,n1,2025-01-19 15:38:51,2025-01-19 15:30:00,2025-01-19 15:39:00,EUR,ana@example.com,120.00,120.00,100.00,,5,2,\n"
    "102,ef34gh,n2,2025-02-01 10:00:00,2025-02-01 09:00:00,,USD,bob@example.com,300.00,100.00,0,,12,3,\n"
    "103,ij56kl,n3,,2025-03-05 08:00:00,,EUR,eve@example.com,0,0,0,WELCOME,5,1,\n"
    "104,mn78op,n4,2025-03-10 08:00:00,,,EUR,zed@example.com,50.00,50.00,50.00,,7,2,Credit\n"
    ",,n5,2025-03-11 08:00:00,,,EUR,none@example.com,10,10,10,,5,2,\n"
    "106,qr90st,n6,,,,EUR,late@example.com,10,10,10,,5,2,\n"
)


def _batch():
    return craft_commerce.normalize(read_csv(CSV.encode()), "orders.csv")


def test_normalize_builds_invoices_keyed_by_reference():
    batch = _batch()

    assert [record["invoice_number"] for record in batch.records] == ["CC-ab12cd", "CC-ef34gh", "CC-ij56kl", "CC-mn78op"]
    assert batch.skipped == {"no_reference": 1, "no_date": 1}

    first = batch.records[0]
    assert first["order_id"] == "ab12cd"
    assert first["invoice_date"] == date(2025, 1, 19)
    assert first["payment_date"] == date(2025, 1, 19)
    assert first["order_status"] == "Completed"
    assert first["deal_status"] == "Web Order"
    assert first["status"] == "paid"
    assert first["total_amount"] == 100.0  # item subtotal wins when positive
    assert first["charged_amount"] == 120.0
    assert first["payment_method"] == "Braintree"
    assert first["scope"] == "ES"
    assert first["billing_entity"] == "Planning Center SL."
    assert first["source_id"] == "101"
    assert first["source_data"]["craft_id"] == "101"


def test_usd_orders_are_booked_by_the_us_entity():
    second = _batch().records[1]

    assert second["scope"] == "US"
    assert second["country_code"] == "US"
    assert second["billing_entity"] == "DSD US LLC"
    assert second["status"] == "partial"
    assert second["total_amount"] == 300.0
    assert second["order_status"] == "Processing"
    assert second["payment_method"] == "Stripe"


def test_coupon_and_credit_orders():
    batch = _batch()
    coupon, credit = batch.records[2], batch.records[3]

    assert coupon["invoice_date"] == date(2025, 3, 5)  # falls back to dateCreated
    assert coupon["deal_status"] == "Coupon Order"
    assert coupon["status"] == "paid"
    assert coupon["discount_code"] == "WELCOME"

    assert credit["deal_status"] == "Credit Order"
    assert credit["status"] == "cancelled"
    assert credit["order_status"] == "Refunded"

    assert batch.extras["stats"] == {
        "total": 4,
        "eur": 3,
        "usd": 1,
        "other": 0,
        "paid": 2,
        "unpaid": 2,
        "coupon": 1,
        "credit": 1,
        "subscription": 0,
        "free_product": 0,
    }


@pytest.mark.parametrize(
    "paid, price, status_id, expected",
    [
        (0, 0, "5", "paid"),
        (0, 10, "10", "pending"),
        (10, 10.005, "5", "paid"),
        (5, 10, "5", "partial"),
        (15, 10, "5", "paid"),
        (10, 10, "9", "cancelled"),
    ],
)
def test_payment_status(paid, price, status_id, expected):
    assert craft_commerce.payment_status(paid, price, status_id) == expected


def test_deal_status_types():
    assert craft_commerce.deal_status("subscriptionPayment", 10, None) == "Subscription Payment"
    assert craft_commerce.deal_status("freeProduct", 0, None) == "Free Product"
    assert craft_commerce.deal_status(None, 10, "CODE") == "Web Order"


def test_unknown_status_and_gateway_labels():
    assert craft_commerce.order_status_label("42") == "Status 42"
    assert craft_commerce.gateway_name("8") == "Gateway 8"
    assert craft_commerce.gateway_name(None) is None


def test_required_columns():
    with pytest.raises(MissingColumnError):
        craft_commerce.normalize(read_csv(b"id,currency\n1,EUR\n"), "bad.csv")


def test_malformed_currency_is_skipped():
    content = HEADER + "201,uv12wx,n7,2025-04-01 08:00:00,,,Euro,x@example.com,10,10,10,,5,2,\n"

    batch = craft_commerce.normalize(read_csv(content.encode()), "orders.csv")

    assert batch.records == []
    assert batch.skipped == {"invalid_currency": 1}


def test_upload_upserts_by_invoice_number_and_scope(upload, store):
    first = upload("/api/csv/craft-commerce", "orders.csv", CSV)
    assert first.status_code == 200
    assert first.json()["data"]["inserted"] == 4
    assert first.json()["data"]["stats"]["usd"] == 1

    second = upload("/api/csv/craft-commerce", "orders.csv", CSV)
    assert second.json()["data"]["inserted"] == 0
    assert second.json()["data"]["updated"] == 4

    assert store.count("ar_invoices") == 4
    [metadata] = store.select("sync_metadata", eq={"source": "craft-commerce"})
    assert metadata["last_record_date"] == date(2025, 3, 10)
