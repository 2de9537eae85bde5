"""Invoice domain models.

All amounts are stored in minor units (integer paise) to avoid floating point
issues. Rs. 10.00 = 1000. Tax rate is a percentage (18 = 18%).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.settings import CompanySettings


class InvoiceStatus(str, Enum):
    """
    Invoice lifecycle status.

    generated -> raised -> downloaded. No skips, no reversals.
    """

    GENERATED = "generated"
    RAISED = "raised"
    DOWNLOADED = "downloaded"


# Customer-visible states
ISSUED_STATUSES = (InvoiceStatus.RAISED, InvoiceStatus.DOWNLOADED)


class InvoiceLineItem(BaseModel):
    """A printed invoice line."""

    description: str
    sku: str = ""
    quantity: int
    unit_price: int
    amount: int

    model_config = {"frozen": True}


class InvoiceData(BaseModel):
    """
    Everything printed on an invoice, frozen at generation time.

    Persisted alongside the rendered document so the PDF can be rebuilt
    without re-reading the order or live settings.

    Invariant: grand_total == subtotal_before_tax + tax_amount + shipping_amount - discount_amount
    """

    invoice_number: str
    order_number: str
    invoice_date: date
    order_date: date
    company: CompanySettings
    customer_name: str
    customer_email: str = ""
    customer_phone: str = ""
    billing_address: str = ""
    shipping_address: str = ""
    shipping_name: str = ""
    shipping_phone: str = ""
    items: tuple[InvoiceLineItem, ...] = ()
    subtotal: int  # GST-inclusive, as charged
    subtotal_before_tax: int
    tax_enabled: bool
    tax_rate: Decimal
    tax_amount: int
    shipping_amount: int = 0
    discount_amount: int = 0
    grand_total: int
    order_total: int  # total_amount as stored on the order
    # Branding images captured at generation as data URIs; "" = none, None = not captured
    header_image: str | None = None
    footer_image: str | None = None

    model_config = {"frozen": True}

    @property
    def total_discrepancy(self) -> int:
        """Recomputed total minus stored order total. Zero when they reconcile."""
        return self.grand_total - self.order_total


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: int
    order_id: UUID
    invoice_number: str
    status: InvoiceStatus
    order_number: str
    customer_name: str
    grand_total: int
    tax_amount: int
    pdf_data_uri: str
    invoice_data: InvoiceData
    created_at: datetime
    raised_at: datetime | None = None
    downloaded_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def is_issued(self) -> bool:
        """Whether the customer can see this invoice."""
        return self.status in ISSUED_STATUSES

    @property
    def is_deletable(self) -> bool:
        """Only invoices that were never raised may be deleted."""
        return self.status == InvoiceStatus.GENERATED

    def summary(self) -> "InvoiceSummary":
        return InvoiceSummary.model_validate(self.model_dump(exclude={"pdf_data_uri", "invoice_data"}))


class InvoiceSummary(BaseModel):
    """Listing projection: no document, no embedded data."""

    id: int
    order_id: UUID
    invoice_number: str
    status: InvoiceStatus
    order_number: str
    customer_name: str
    grand_total: int
    tax_amount: int
    created_at: datetime
    raised_at: datetime | None = None
    downloaded_at: datetime | None = None
    deleted_at: datetime | None = Field(None, exclude=True)

    model_config = {"from_attributes": True}
