"""Loads order snapshots for invoicing."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from core.models import OrderLineItem, OrderParty, OrderSnapshot
from core.stores.order_store import OrderStore
from utils.money import to_minor_units
from utils.timezone import parse_iso, to_utc

logger = logging.getLogger(__name__)

_PARTY_FIELDS = (
    "first_name", "last_name", "company",
    "address_line_1", "address_line_2",
    "city", "state", "postal_code", "country",
    "phone", "email",
)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _party(row: dict[str, Any], prefix: str) -> OrderParty:
    return OrderParty(**{field: _text(row.get(f"{prefix}_{field}")) for field in _PARTY_FIELDS})


def _timestamp(value: datetime | str) -> datetime:
    if isinstance(value, str):
        return parse_iso(value)
    return to_utc(value)


class OrderSnapshotReader:
    """Reads an order and its items into an immutable OrderSnapshot."""

    def __init__(self, store: OrderStore):
        self.store = store

    def load(self, order_id: UUID) -> OrderSnapshot | None:
        """
        Snapshot an order.

        Does not check payment status; eligibility is the caller's decision.

        Returns:
            OrderSnapshot, or None if the order does not exist.

        Raises:
            UpstreamUnavailableError: Order store unreachable
        """
        row = self.store.get_order(order_id)
        if row is None:
            return None

        items = [
            OrderLineItem(
                product_name=_text(item.get("product_name")),
                product_sku=_text(item.get("product_sku")),
                variant_size=_text(item.get("variant_size")),
                variant_color=_text(item.get("variant_color")),
                variant_material=_text(item.get("variant_material")),
                unit_price=to_minor_units(item.get("unit_price")),
                quantity=int(item.get("quantity") or 0),
                total_price=to_minor_units(item.get("total_price")),
            )
            for item in self.store.get_order_items(order_id)
        ]

        billing = _party(row, "billing")
        shipping = _party(row, "shipping")
        # Checkout only collects one email, on the billing side
        if not shipping.email and billing.email:
            shipping = shipping.model_copy(update={"email": billing.email})

        return OrderSnapshot(
            id=row["id"],
            order_number=_text(row.get("order_number")),
            status=_text(row.get("status")),
            payment_status=_text(row.get("payment_status")),
            subtotal=to_minor_units(row.get("subtotal")),
            shipping_amount=to_minor_units(row.get("shipping_amount")),
            discount_amount=to_minor_units(row.get("discount_amount")),
            total_amount=to_minor_units(row.get("total_amount")),
            billing=billing,
            shipping=shipping,
            items=tuple(items),
            created_at=_timestamp(row["created_at"]),
        )
