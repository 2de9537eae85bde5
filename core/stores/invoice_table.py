"""
Invoice rows.

Every state change is a single conditional statement filtered on the expected
prior status, so two concurrent callers can never both transition the same
row. The partial unique index invoices_one_live_per_order (order_id WHERE
deleted_at IS NULL) is what actually keeps generation idempotent; the
existence check the lifecycle does first is only a shortcut.
"""

from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.models import InvoiceData, InvoiceStatus
from core.stores import upstream

_SUMMARY_COLUMNS = """
    id, order_id, invoice_number, status, order_number, customer_name,
    grand_total, tax_amount, created_at, raised_at, downloaded_at
"""


class InvoiceTable:
    """Row-level access to the invoices table."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def insert_if_absent(
        self,
        order_id: UUID,
        data: InvoiceData,
        pdf_data_uri: str,
        created_at: datetime,
    ) -> dict[str, Any] | None:
        """
        Insert a generated invoice unless the order already has a live one.

        Returns the new row, or None when another invoice won the race.
        """
        with upstream("Invoice table"):
            rows = self.postgres.execute_returning(
                """
                INSERT INTO invoices (
                    order_id, invoice_number, status,
                    order_number, customer_name, grand_total, tax_amount,
                    pdf_data_uri, invoice_data, created_at
                ) VALUES (
                    %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s
                )
                ON CONFLICT (order_id) WHERE deleted_at IS NULL DO NOTHING
                RETURNING *
                """,
                (
                    order_id, data.invoice_number, InvoiceStatus.GENERATED.value,
                    data.order_number, data.customer_name, data.grand_total, data.tax_amount,
                    pdf_data_uri, Json(data.model_dump(mode="json")), created_at,
                )
            )
        return rows[0] if rows else None

    def get(self, invoice_id: int) -> dict[str, Any] | None:
        with upstream("Invoice table"):
            return self.postgres.execute_single(
                "SELECT * FROM invoices WHERE id = %s AND deleted_at IS NULL",
                (invoice_id,)
            )

    def get_for_order(
        self,
        order_id: UUID,
        statuses: Iterable[InvoiceStatus] | None = None,
    ) -> dict[str, Any] | None:
        """The order's live invoice, optionally only if it is in one of `statuses`."""
        query = "SELECT * FROM invoices WHERE order_id = %s AND deleted_at IS NULL"
        params: list[Any] = [order_id]
        if statuses is not None:
            query += " AND status = ANY(%s)"
            params.append([s.value for s in statuses])

        with upstream("Invoice table"):
            return self.postgres.execute_single(query, tuple(params))

    def transition(
        self,
        invoice_id: int,
        from_status: InvoiceStatus,
        to_status: InvoiceStatus,
        timestamp_column: str,
        at: datetime,
    ) -> dict[str, Any] | None:
        """
        Move one row from `from_status` to `to_status`, stamping `timestamp_column`.

        Returns the updated row, or None if the row is missing or not in `from_status`.
        """
        _check_timestamp_column(timestamp_column)
        with upstream("Invoice table"):
            rows = self.postgres.execute_returning(
                f"""
                UPDATE invoices
                SET status = %s, {timestamp_column} = %s
                WHERE id = %s AND status = %s AND deleted_at IS NULL
                RETURNING *
                """,
                (to_status.value, at, invoice_id, from_status.value)
            )
        return rows[0] if rows else None

    def transition_many(
        self,
        invoice_ids: list[int],
        from_status: InvoiceStatus,
        to_status: InvoiceStatus,
        timestamp_column: str,
        at: datetime,
    ) -> list[dict[str, Any]]:
        """Bulk form of transition(). Rows not in `from_status` are skipped."""
        _check_timestamp_column(timestamp_column)
        if not invoice_ids:
            return []

        with upstream("Invoice table"):
            return self.postgres.execute_returning(
                f"""
                UPDATE invoices
                SET status = %s, {timestamp_column} = %s
                WHERE id = ANY(%s) AND status = %s AND deleted_at IS NULL
                RETURNING *
                """,
                (to_status.value, at, list(invoice_ids), from_status.value)
            )

    def soft_delete(self, invoice_id: int, required_status: InvoiceStatus, at: datetime) -> dict[str, Any] | None:
        """Mark a row deleted only if it is still in `required_status`."""
        with upstream("Invoice table"):
            rows = self.postgres.execute_returning(
                """
                UPDATE invoices
                SET deleted_at = %s
                WHERE id = %s AND status = %s AND deleted_at IS NULL
                RETURNING *
                """,
                (at, invoice_id, required_status.value)
            )
        return rows[0] if rows else None

    def list_by_status(
        self,
        statuses: Iterable[InvoiceStatus],
        order_by: str = "created_at",
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Summary rows (no document) for the given statuses, newest first."""
        if order_by not in ("created_at", "raised_at"):
            raise ValueError(f"Cannot order invoices by '{order_by}'")

        with upstream("Invoice table"):
            return self.postgres.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM invoices
                WHERE status = ANY(%s) AND deleted_at IS NULL
                ORDER BY {order_by} DESC NULLS LAST, id DESC
                LIMIT %s
                """,
                ([s.value for s in statuses], limit)
            )

    def list_uninvoiced_orders(self, order_status: str, limit: int = 50) -> list[dict[str, Any]]:
        """Orders in `order_status` with no live invoice, newest first."""
        with upstream("Invoice table"):
            return self.postgres.execute(
                """
                SELECT o.id, o.order_number,
                       TRIM(CONCAT(o.billing_first_name, ' ', o.billing_last_name)) AS customer_name,
                       o.total_amount, o.payment_status, o.status, o.created_at
                FROM orders o
                WHERE o.status = %s
                  AND NOT EXISTS (
                      SELECT 1 FROM invoices i
                      WHERE i.order_id = o.id AND i.deleted_at IS NULL
                  )
                ORDER BY o.created_at DESC
                LIMIT %s
                """,
                (order_status, limit)
            )


def _check_timestamp_column(column: str) -> None:
    # Interpolated into SQL, so only known columns pass
    if column not in ("raised_at", "downloaded_at"):
        raise ValueError(f"Not a transition timestamp column: {column}")
