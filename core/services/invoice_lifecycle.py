"""
Invoice lifecycle: generated -> raised -> downloaded.

Persists invoice rows and enforces the state machine. No transition skips a
state and none reverses; only generated invoices can be deleted. Every
transition is a conditional update in InvoiceTable, so concurrent callers
race on the database, not here.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from core.audit import AuditAction, AuditLogger
from core.config import InvoiceConfig
from core.event_bus import EventBus
from core.events import InvoiceDeleted, InvoiceDownloaded, InvoiceGenerated, InvoiceRaised
from core.exceptions import (
    IntegrityMismatchError,
    InvoicingError,
    NotFoundError,
    PreconditionFailedError,
)
from core.models import BulkGenerateItem, Invoice, InvoiceStatus
from core.services.invoice_builder import InvoiceDocumentBuilder, recompute_grand_total
from core.services.invoice_number_issuer import InvoiceNumberIssuer
from core.services.invoice_renderer import InvoiceRenderer
from core.services.order_reader import OrderSnapshotReader
from core.services.settings_resolver import SettingsResolver
from core.stores import upstream
from core.stores.invoice_table import InvoiceTable
from utils.timezone import local_date, now_utc

logger = logging.getLogger(__name__)


class GenerationOutcome(BaseModel):
    """Result of generate(): the invoice and whether this call created it."""

    invoice: Invoice
    created: bool
    warnings: list[str] = Field(default_factory=list)


class InvoiceLifecycleStore:
    """Creates invoices and moves them through their lifecycle."""

    def __init__(
        self,
        table: InvoiceTable,
        orders: OrderSnapshotReader,
        settings: SettingsResolver,
        issuer: InvoiceNumberIssuer,
        builder: InvoiceDocumentBuilder,
        renderer: InvoiceRenderer,
        audit: AuditLogger,
        event_bus: EventBus,
        config: InvoiceConfig,
    ):
        self.table = table
        self.orders = orders
        self.settings = settings
        self.issuer = issuer
        self.builder = builder
        self.renderer = renderer
        self.audit = audit
        self.event_bus = event_bus
        self.config = config

    def _audit(self, invoice: Invoice, action: AuditAction, changes: dict[str, Any]) -> None:
        with upstream("Audit log"):
            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice.id,
                action=action,
                changes=changes,
            )

    # -------------------------------------------------------------------------
    # Generate
    # -------------------------------------------------------------------------

    def generate(self, order_id: UUID) -> GenerationOutcome:
        """
        Generate the invoice for an order, or return the one it already has.

        Args:
            order_id: Order to invoice

        Returns:
            GenerationOutcome; created is False when the order already had a
            live invoice (including one inserted concurrently by another call).

        Raises:
            NotFoundError: Order does not exist
            PreconditionFailedError: Payment not completed
            IntegrityMismatchError: Totals do not reconcile and strict_totals is on
            InvoiceNumberError: No number could be minted
            RenderError: PDF could not be built
            UpstreamUnavailableError: Order or invoice store unreachable
        """
        snapshot = self.orders.load(order_id)
        if snapshot is None:
            raise NotFoundError("Order not found")

        if not snapshot.is_payment_complete:
            raise PreconditionFailedError("Invoice can only be generated for completed payments")

        existing = self.table.get_for_order(order_id)
        if existing is not None:
            return GenerationOutcome(invoice=Invoice.model_validate(existing), created=False)

        warnings: list[str] = []

        resolution = self.settings.resolve()
        if resolution.degraded:
            warnings.append(resolution.reason or "Store settings unavailable; defaults used")

        # Checked before minting so a strict failure doesn't burn a number
        grand_total = recompute_grand_total(snapshot)
        if abs(grand_total - snapshot.total_amount) > self.config.total_tolerance_minor:
            mismatch = IntegrityMismatchError(snapshot.order_number, snapshot.total_amount, grand_total)
            if self.config.strict_totals:
                raise mismatch
            logger.warning(f"{mismatch}; generating with recomputed total")
            warnings.append(str(mismatch))

        now = now_utc()
        invoice_date = local_date(now, self.config.display_timezone)
        invoice_number = self.issuer.issue(invoice_date)
        data = self.builder.build(snapshot, resolution.company, resolution.tax, invoice_number, invoice_date)
        # Images are frozen with the invoice; preview never goes back to the CDN
        data = data.model_copy(update=self.renderer.capture_branding(data.company))
        pdf_data_uri = self.renderer.render(data)

        row = self.table.insert_if_absent(order_id, data, pdf_data_uri, now)
        if row is None:
            winner = self.table.get_for_order(order_id)
            if winner is None:
                raise PreconditionFailedError("Invoice for this order changed while generating; try again")
            logger.info(f"Order {snapshot.order_number} invoiced concurrently, discarding {invoice_number}")
            return GenerationOutcome(invoice=Invoice.model_validate(winner), created=False)

        invoice = Invoice.model_validate(row)

        self._audit(invoice, AuditAction.GENERATE, {
            "created": {
                "order_id": str(order_id),
                "invoice_number": invoice.invoice_number,
                "grand_total": invoice.grand_total,
                "tax_amount": invoice.tax_amount,
            },
            "warnings": warnings,
        })
        self.event_bus.publish(InvoiceGenerated.create(invoice=invoice, warnings=tuple(warnings)))

        logger.info(f"Generated invoice {invoice.invoice_number} for order {snapshot.order_number}")
        return GenerationOutcome(invoice=invoice, created=True, warnings=warnings)

    def _generate_bounded(self, order_id: UUID) -> BulkGenerateItem:
        """Run generate() on a worker thread, giving up after render_timeout_seconds."""
        timeout = self.config.render_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="invoice-generate")
        # Worker threads don't inherit context vars (acting admin)
        context = contextvars.copy_context()
        try:
            future = executor.submit(context.run, self.generate, order_id)
            outcome = future.result(timeout=timeout)
        except FuturesTimeoutError:
            # The worker keeps running; if it finishes, its invoice stands
            logger.error(f"Invoice generation for order {order_id} timed out after {timeout}s")
            return BulkGenerateItem(
                order_id=order_id,
                success=False,
                message=f"Invoice generation timed out after {timeout} seconds",
                error_code="TIMEOUT",
            )
        except InvoicingError as e:
            logger.warning(f"Invoice generation for order {order_id} failed: {e}")
            return BulkGenerateItem(order_id=order_id, success=False, message=str(e), error_code=e.code)
        except Exception:
            logger.exception(f"Unexpected error generating invoice for order {order_id}")
            return BulkGenerateItem(
                order_id=order_id,
                success=False,
                message="Unexpected error while generating invoice",
                error_code="INTERNAL_ERROR",
            )
        finally:
            executor.shutdown(wait=False)

        return BulkGenerateItem(
            order_id=order_id,
            success=True,
            message="Invoice generated successfully" if outcome.created else "Invoice already exists",
            invoice_id=outcome.invoice.id,
            invoice_number=outcome.invoice.invoice_number,
        )

    def bulk_generate(self, order_ids: list[UUID]) -> list[BulkGenerateItem]:
        """
        Generate invoices one order at a time.

        A failure or timeout is recorded against its order and the batch
        moves on.
        """
        return [self._generate_bounded(order_id) for order_id in order_ids]

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def raise_invoice(self, invoice_id: int) -> bool:
        """
        Make a generated invoice visible to the customer.

        Returns:
            True if this call moved it to raised; False if the invoice does
            not exist or is not in generated status.
        """
        row = self.table.transition(
            invoice_id, InvoiceStatus.GENERATED, InvoiceStatus.RAISED, "raised_at", now_utc()
        )
        if row is None:
            return False

        invoice = Invoice.model_validate(row)
        self._raised(invoice)
        return True

    def bulk_raise(self, invoice_ids: list[int]) -> int:
        """
        Raise every listed invoice that is still generated, in one statement.

        Returns:
            Number of invoices actually transitioned. Others are skipped.
        """
        rows = self.table.transition_many(
            list(dict.fromkeys(invoice_ids)),
            InvoiceStatus.GENERATED,
            InvoiceStatus.RAISED,
            "raised_at",
            now_utc(),
        )
        for row in rows:
            self._raised(Invoice.model_validate(row))
        return len(rows)

    def _raised(self, invoice: Invoice) -> None:
        self._audit(invoice, AuditAction.RAISE, {
            "status": {"old": InvoiceStatus.GENERATED.value, "new": InvoiceStatus.RAISED.value},
            "raised_at": {"old": None, "new": invoice.raised_at.isoformat() if invoice.raised_at else None},
        })
        self.event_bus.publish(InvoiceRaised.create(invoice=invoice))
        logger.info(f"Raised invoice {invoice.invoice_number}")

    def download(self, invoice_id: int, order_id: UUID | None = None) -> Invoice:
        """
        Hand out an issued invoice, marking the first download.

        Args:
            invoice_id: Invoice to download
            order_id: When given, the invoice must belong to this order

        Returns:
            The invoice; its status is downloaded afterwards.

        Raises:
            NotFoundError: Missing, deleted or belongs to another order
            PreconditionFailedError: Invoice has not been raised
        """
        row = self.table.get(invoice_id)
        if row is None:
            raise NotFoundError("Invoice not found")

        invoice = Invoice.model_validate(row)
        if order_id is not None and invoice.order_id != order_id:
            raise NotFoundError("Invoice not found")

        if invoice.status == InvoiceStatus.GENERATED:
            raise PreconditionFailedError("Invoice has not been raised yet")

        if invoice.status == InvoiceStatus.DOWNLOADED:
            return invoice

        updated = self.table.transition(
            invoice_id, InvoiceStatus.RAISED, InvoiceStatus.DOWNLOADED, "downloaded_at", now_utc()
        )
        if updated is None:
            # A concurrent download got there first
            row = self.table.get(invoice_id)
            if row is None:
                raise NotFoundError("Invoice not found")
            return Invoice.model_validate(row)

        invoice = Invoice.model_validate(updated)
        self._audit(invoice, AuditAction.DOWNLOAD, {
            "status": {"old": InvoiceStatus.RAISED.value, "new": InvoiceStatus.DOWNLOADED.value},
            "downloaded_at": {"old": None, "new": invoice.downloaded_at.isoformat() if invoice.downloaded_at else None},
        })
        self.event_bus.publish(InvoiceDownloaded.create(invoice=invoice))
        logger.info(f"Invoice {invoice.invoice_number} downloaded")
        return invoice

    def delete(self, invoice_id: int) -> Invoice:
        """
        Soft-delete a generated invoice. The order becomes eligible again; the
        invoice number is not reused.

        Returns:
            The deleted invoice.

        Raises:
            NotFoundError: Missing or already deleted
            PreconditionFailedError: Invoice was raised or downloaded
        """
        row = self.table.soft_delete(invoice_id, InvoiceStatus.GENERATED, now_utc())
        if row is None:
            current = self.table.get(invoice_id)
            if current is None:
                raise NotFoundError("Invoice not found")
            raise PreconditionFailedError(
                f"Invoice {current['invoice_number']} is {current['status']} and cannot be deleted"
            )

        invoice = Invoice.model_validate(row)
        self._audit(invoice, AuditAction.DELETE, {
            "deleted": invoice.summary().model_dump(mode="json"),
        })
        self.event_bus.publish(InvoiceDeleted.create(invoice=invoice))
        logger.info(f"Deleted invoice {invoice.invoice_number}")
        return invoice
