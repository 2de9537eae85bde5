"""
Builds InvoiceData from an order snapshot.

The order's subtotal is what the customer was charged and, with GST on, it
already contains the tax. The builder only splits it into base + tax; it
never adds tax on top, so the invoice total stays what the customer paid.
"""

from datetime import date

from core.models import (
    CompanySettings,
    InvoiceData,
    InvoiceLineItem,
    OrderLineItem,
    OrderSnapshot,
    TaxConfig,
)
from core.tax import extract_inclusive_tax, round_minor
from utils.timezone import local_date


def describe_line(item: OrderLineItem) -> str:
    """
    Product name plus its variant descriptors.

    "Silk Saree (Size: Free, Color: Red, Material: Silk)"; descriptors are
    always listed size, color, material and the parenthetical is omitted
    when none are set.
    """
    variants = [
        f"{label}: {value.strip()}"
        for label, value in (
            ("Size", item.variant_size),
            ("Color", item.variant_color),
            ("Material", item.variant_material),
        )
        if value and value.strip()
    ]
    if not variants:
        return item.product_name
    return f"{item.product_name} ({', '.join(variants)})"


def split_inclusive_subtotal(subtotal: int, tax: TaxConfig) -> tuple[int, int]:
    """
    Split a GST-inclusive subtotal into (subtotal_before_tax, tax_amount).

    The two parts always sum back to `subtotal` exactly.
    """
    if not tax.enabled:
        return subtotal, 0
    tax_amount = round_minor(extract_inclusive_tax(subtotal, tax.rate))
    return subtotal - tax_amount, tax_amount


def recompute_grand_total(snapshot: OrderSnapshot) -> int:
    """What the customer should have paid: subtotal + shipping - discount."""
    return snapshot.subtotal + snapshot.shipping_amount - snapshot.discount_amount


class InvoiceDocumentBuilder:
    """Pure transform: snapshot + settings + number -> InvoiceData."""

    def __init__(self, display_timezone: str = "Asia/Kolkata"):
        self.display_timezone = display_timezone

    def build(
        self,
        snapshot: OrderSnapshot,
        company: CompanySettings,
        tax: TaxConfig,
        invoice_number: str,
        invoice_date: date,
    ) -> InvoiceData:
        """
        Assemble the printable invoice.

        Args:
            snapshot: Order to invoice
            company: Seller identity to embed
            tax: GST switch and rate
            invoice_number: Already-minted invoice number
            invoice_date: Date to print as the invoice date

        Returns:
            InvoiceData. total_discrepancy is non-zero if the order's stored
            total does not reconcile; deciding what to do about it is the
            caller's job.
        """
        subtotal_before_tax, tax_amount = split_inclusive_subtotal(snapshot.subtotal, tax)
        grand_total = recompute_grand_total(snapshot)

        items = tuple(
            InvoiceLineItem(
                description=describe_line(item),
                sku=item.product_sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                amount=item.total_price,
            )
            for item in snapshot.items
        )

        billing = snapshot.billing
        shipping = snapshot.shipping

        return InvoiceData(
            invoice_number=invoice_number,
            order_number=snapshot.order_number,
            invoice_date=invoice_date,
            order_date=local_date(snapshot.created_at, self.display_timezone),
            company=company,
            customer_name=billing.full_name,
            customer_email=billing.email,
            customer_phone=billing.phone,
            billing_address=billing.address_block(),
            shipping_address=shipping.address_block(),
            shipping_name=shipping.full_name or billing.full_name,
            shipping_phone=shipping.phone,
            items=items,
            subtotal=snapshot.subtotal,
            subtotal_before_tax=subtotal_before_tax,
            tax_enabled=tax.enabled,
            tax_rate=tax.rate if tax.enabled else 0,
            tax_amount=tax_amount,
            shipping_amount=snapshot.shipping_amount,
            discount_amount=snapshot.discount_amount,
            grand_total=grand_total,
            order_total=snapshot.total_amount,
        )
