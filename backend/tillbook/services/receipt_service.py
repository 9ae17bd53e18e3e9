"""
Receipt projection.

to_receipt() is a pure function of an already-loaded transaction graph:
no writes, no clock, no config reads. The live checkout receipt and a
reprint months later come out identical.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..models import SalesTransaction
from tillbook.time_utils import to_utc_z
from .locations import DC_LABEL

RECEIPT_WIDTH = 40


@dataclass(frozen=True)
class ReceiptLine:
    product_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int


@dataclass(frozen=True)
class ReceiptView:
    invoice_number: str
    transaction_date: str | None
    cashier_name: str
    location_name: str
    transaction_type: str
    lines: tuple[ReceiptLine, ...]
    subtotal_cents: int
    tax_rate_bps: int
    tax_cents: int
    total_cents: int
    payment_method: str
    status: str
    refunded_amount_cents: int | None = None
    customer_name: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["lines"] = [asdict(line) for line in self.lines]
        return data


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole:,}.{frac:02d}"


def format_rate(tax_rate_bps: int) -> str:
    whole, frac = divmod(tax_rate_bps, 100)
    if frac == 0:
        return f"{whole}%"
    return f"{whole}.{frac:02d}".rstrip("0") + "%"


def to_receipt(transaction: SalesTransaction, *, dc_label: str = DC_LABEL) -> ReceiptView:
    if transaction.store is not None:
        location_name = transaction.store.name
    else:
        location_name = dc_label

    lines = tuple(
        ReceiptLine(
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            line_total_cents=item.line_total_cents,
        )
        for item in transaction.items
    )

    return ReceiptView(
        invoice_number=transaction.invoice_number,
        transaction_date=to_utc_z(transaction.transaction_date),
        cashier_name=transaction.cashier.name if transaction.cashier else "",
        location_name=location_name,
        transaction_type=transaction.transaction_type,
        lines=lines,
        subtotal_cents=transaction.subtotal_cents,
        tax_rate_bps=transaction.tax_rate_bps,
        tax_cents=transaction.tax_cents,
        total_cents=transaction.total_amount_cents,
        payment_method=transaction.payment_method,
        status=transaction.status,
        refunded_amount_cents=transaction.refunded_amount_cents,
        customer_name=transaction.customer_profile.name if transaction.customer_profile else None,
    )


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    gap = max(width - len(left) - len(right), 1)
    return f"{left}{' ' * gap}{right}"


def render_text(receipt: ReceiptView, width: int = RECEIPT_WIDTH) -> str:
    """Plain-text receipt for download and thermal printing."""
    rule = "-" * width
    out = [
        receipt.location_name.center(width).rstrip(),
        "Point of Sale Receipt".center(width).rstrip(),
        rule,
        f"Invoice: {receipt.invoice_number}",
        f"Date: {receipt.transaction_date or ''}",
        f"Cashier: {receipt.cashier_name}",
    ]
    if receipt.customer_name:
        out.append(f"Customer: {receipt.customer_name}")
    out.append(f"Payment: {receipt.payment_method.upper()}")
    out.append(rule)

    for line in receipt.lines:
        out.append(line.product_name[:width])
        out.append(
            _row(
                f"  {line.quantity} x {format_cents(line.unit_price_cents)}",
                format_cents(line.line_total_cents),
                width,
            )
        )

    out.append(rule)
    out.append(_row("Subtotal:", format_cents(receipt.subtotal_cents), width))
    out.append(_row(f"Tax ({format_rate(receipt.tax_rate_bps)}):", format_cents(receipt.tax_cents), width))
    out.append(_row("TOTAL:", format_cents(receipt.total_cents), width))

    if receipt.status != "completed":
        out.append(rule)
        out.append(f"*** {receipt.status.upper()} ***".center(width).rstrip())
        if receipt.refunded_amount_cents:
            out.append(_row("Refunded:", format_cents(receipt.refunded_amount_cents), width))

    out.append(rule)
    out.append("Thank you for your purchase!".center(width).rstrip())
    out.append("Keep this receipt for your records".center(width).rstrip())
    return "\n".join(out) + "\n"
