"""Read side of invoicing: lookups, listing tabs and preview."""

import logging
from uuid import UUID

from core.config import InvoiceConfig
from core.exceptions import NotFoundError
from core.models import EligibleOrder, Invoice, InvoiceStatus, InvoiceSummary, ISSUED_STATUSES
from core.services.invoice_renderer import InvoiceRenderer
from core.stores.invoice_table import InvoiceTable
from utils.money import to_minor_units

logger = logging.getLogger(__name__)


class InvoiceQueryFacade:
    """
    Read projections over the invoices table. Nothing here changes state.
    """

    def __init__(self, table: InvoiceTable, renderer: InvoiceRenderer, config: InvoiceConfig):
        self.table = table
        self.renderer = renderer
        self.config = config

    def get(self, invoice_id: int) -> Invoice | None:
        """Live invoice by id, any status."""
        row = self.table.get(invoice_id)
        if row is None:
            return None
        return Invoice.model_validate(row)

    def find_by_order(self, order_id: UUID) -> InvoiceSummary | None:
        """
        The order's customer-visible invoice.

        A merely generated invoice is not visible yet, so this only returns
        raised or downloaded invoices.
        """
        row = self.table.get_for_order(order_id, statuses=ISSUED_STATUSES)
        if row is None:
            return None
        return InvoiceSummary.model_validate(row)

    def list_eligible_orders(self, limit: int = 50) -> list[EligibleOrder]:
        """Orders in the eligible fulfillment status with no invoice yet, newest first."""
        rows = self.table.list_uninvoiced_orders(self.config.eligible_order_status, limit)
        return [
            EligibleOrder(
                id=row["id"],
                order_number=row["order_number"] or "",
                customer_name=(row.get("customer_name") or "").strip(),
                total_amount=to_minor_units(row.get("total_amount")),
                payment_status=row.get("payment_status") or "",
                status=row.get("status") or "",
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def list_generated(self, limit: int = 50) -> list[InvoiceSummary]:
        """Invoices awaiting raise, newest first."""
        rows = self.table.list_by_status([InvoiceStatus.GENERATED], order_by="created_at", limit=limit)
        return [InvoiceSummary.model_validate(row) for row in rows]

    def list_issued(self, limit: int = 50) -> list[InvoiceSummary]:
        """Raised or downloaded invoices, most recently raised first."""
        rows = self.table.list_by_status(ISSUED_STATUSES, order_by="raised_at", limit=limit)
        return [InvoiceSummary.model_validate(row) for row in rows]

    def preview(self, invoice_id: int) -> tuple[Invoice, str]:
        """
        Re-render an invoice from its stored data.

        Uses only the company details captured when the invoice was
        generated; live settings are never consulted. Status and timestamps
        are untouched.

        Returns:
            (invoice, pdf data URI)

        Raises:
            NotFoundError: Missing or deleted
            RenderError: PDF could not be built
        """
        invoice = self.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice, self.renderer.render(invoice.invoice_data)
