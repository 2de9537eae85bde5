"""Read-only access to orders and their line items."""

from typing import Any
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.stores import upstream


class OrderStore:
    """Orders are owned by checkout; invoicing only ever reads them."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_order(self, order_id: UUID) -> dict[str, Any] | None:
        with upstream("Order store"):
            return self.postgres.execute_single(
                "SELECT * FROM orders WHERE id = %s",
                (order_id,)
            )

    def get_order_items(self, order_id: UUID) -> list[dict[str, Any]]:
        with upstream("Order store"):
            return self.postgres.execute(
                """
                SELECT product_name, product_sku, variant_size, variant_color, variant_material,
                       unit_price, quantity, total_price
                FROM order_items
                WHERE order_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (order_id,)
            )
