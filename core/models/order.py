"""Order snapshot models.

Read-only view of a fulfilled order as the invoice core needs it. Amounts are
integer minor units (paise) converted from the order store's numeric columns.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    """Payment states reported by the order store."""

    PENDING = "pending"
    COMPLETED = "completed"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Only these allow an invoice to be generated
INVOICEABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.COMPLETED.value, PaymentStatus.PAID.value})


class OrderParty(BaseModel):
    """Billing or shipping party on an order."""

    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_line_1: str = ""
    address_line_2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""
    email: str = ""

    model_config = {"frozen": True}

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def address_block(self) -> str:
        """
        Printable multi-line address.

        Street lines, then "City, State Postal", then country. Blank lines are dropped.
        """
        locality = f"{self.city}, {self.state} {self.postal_code}".strip(" ,")
        lines = [
            self.address_line_1,
            self.address_line_2,
            locality,
            self.country,
        ]
        return "\n".join(line for line in lines if line and line.strip())


class OrderLineItem(BaseModel):
    """One ordered product line."""

    product_name: str
    product_sku: str = ""
    variant_size: str = ""
    variant_color: str = ""
    variant_material: str = ""
    unit_price: int
    quantity: int = Field(..., ge=0)
    total_price: int

    model_config = {"frozen": True}


class OrderSnapshot(BaseModel):
    """Immutable snapshot of an order, taken once per invoice build."""

    id: UUID
    order_number: str
    status: str
    payment_status: str
    subtotal: int
    shipping_amount: int = 0
    discount_amount: int = 0
    total_amount: int
    billing: OrderParty
    shipping: OrderParty
    items: tuple[OrderLineItem, ...] = ()
    created_at: datetime

    model_config = {"frozen": True}

    @property
    def is_payment_complete(self) -> bool:
        return self.payment_status in INVOICEABLE_PAYMENT_STATUSES


class EligibleOrder(BaseModel):
    """Listing row for orders that are delivered but have no invoice yet."""

    id: UUID
    order_number: str
    customer_name: str
    total_amount: int
    payment_status: str
    status: str
    created_at: datetime
