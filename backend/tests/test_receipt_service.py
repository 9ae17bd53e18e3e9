"""Receipt projection and plain-text rendering."""

from datetime import datetime

from tillbook.services import receipt_service, reversal_service, sales_service
from tillbook.services.sales_service import CartItem


WHEN = datetime(2024, 12, 10, 15, 30)


def test_receipt_fields(db_session, store, cashier, customer, product_a, stock_a):
    txn = sales_service.checkout(
        [CartItem(product_a.id, 2)], "cash", cashier.id, store_id=store.id, customer_profile_id=customer.id, now=WHEN,
    )

    receipt = receipt_service.to_receipt(txn)

    assert receipt.invoice_number == txn.invoice_number
    assert receipt.transaction_date == "2024-12-10T15:30:00Z"
    assert receipt.cashier_name == "Casey Till"
    assert receipt.location_name == "Main Street"
    assert receipt.customer_name == "Dana Reyes"
    assert receipt.subtotal_cents == 2000
    assert receipt.tax_cents == 200
    assert receipt.total_cents == 2200
    assert [(l.product_name, l.quantity, l.unit_price_cents, l.line_total_cents) for l in receipt.lines] == [
        ("Dog Food 5kg", 2, 1000, 2000),
    ]


def test_projection_is_idempotent(db_session, store, cashier, product_a, stock_a):
    txn = sales_service.checkout([CartItem(product_a.id, 1)], "card", cashier.id, store_id=store.id, now=WHEN)

    first = receipt_service.to_receipt(txn)
    reloaded = sales_service.get_transaction(txn.id)
    assert receipt_service.to_receipt(reloaded) == first
    assert receipt_service.to_receipt(reloaded).to_dict() == first.to_dict()


def test_dc_receipt_uses_label(db_session, cashier, product_a, new_stock, dc_location):
    new_stock(product_a, dc_location, 5)
    txn = sales_service.checkout([CartItem(product_a.id, 1)], "cash", cashier.id, transaction_type="DC_SALE")

    assert receipt_service.to_receipt(txn).location_name == "Distribution Center"
    assert receipt_service.to_receipt(txn, dc_label="Warehouse 1").location_name == "Warehouse 1"


def test_cashier_without_display_name_uses_username(db_session, store, manager, product_a, stock_a):
    txn = sales_service.checkout([CartItem(product_a.id, 1)], "cash", manager.id, store_id=store.id)
    assert receipt_service.to_receipt(txn).cashier_name == "manager1"


def test_formatting_helpers():
    assert receipt_service.format_cents(123456) == "1,234.56"
    assert receipt_service.format_cents(5) == "0.05"
    assert receipt_service.format_rate(1000) == "10%"
    assert receipt_service.format_rate(825) == "8.25%"
    assert receipt_service.format_rate(750) == "7.5%"


def test_render_text(db_session, store, cashier, product_a, stock_a):
    txn = sales_service.checkout([CartItem(product_a.id, 2)], "cash", cashier.id, store_id=store.id, now=WHEN)

    text = receipt_service.render_text(receipt_service.to_receipt(txn))
    lines = text.splitlines()

    assert f"Invoice: {txn.invoice_number}" in lines
    assert "Cashier: Casey Till" in lines
    assert any(l.startswith("Tax (10%):") and l.endswith("2.00") for l in lines)
    assert any(l.startswith("TOTAL:") and l.endswith("22.00") for l in lines)
    assert all(len(l) <= receipt_service.RECEIPT_WIDTH for l in lines)


def test_render_text_marks_refund(db_session, store, cashier, manager, product_a, stock_a):
    txn = sales_service.checkout([CartItem(product_a.id, 1)], "cash", cashier.id, store_id=store.id)
    reversal_service.refund(txn.id, manager.id, refund_amount_cents=500)

    text = receipt_service.render_text(receipt_service.to_receipt(sales_service.get_transaction(txn.id)))
    assert "*** REFUNDED ***" in text
    assert "5.00" in text
