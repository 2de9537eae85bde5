"""
Caller-facing invoice operations.

This is the boundary the admin UI and automation talk to. Nothing raises
across it: every outcome, including failures, comes back as a result model
with a message suitable for direct display and, on failure, the error code
of the InvoicingError that caused it.
"""

import functools
import logging
from typing import Callable, TypeVar
from uuid import UUID

from core.exceptions import InvoicingError, NotFoundError, PreconditionFailedError
from core.models import (
    BulkGenerateResult,
    BulkRaiseResult,
    DeleteResult,
    DocumentResult,
    EligibleOrderListResult,
    GenerateResult,
    InvoiceListResult,
    InvoiceLookupResult,
    OperationResult,
    RaiseResult,
)
from core.services.invoice_lifecycle import InvoiceLifecycleStore
from core.services.invoice_queries import InvoiceQueryFacade
from core.services.settings_resolver import SettingsResolver

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OperationResult)

INTERNAL_ERROR = "INTERNAL_ERROR"


def returns_result(result_cls: type[R], action: str) -> Callable:
    """
    Convert anything a service method raises into a failed `result_cls`.

    InvoicingError keeps its message and code. Anything else is logged with
    its traceback and reported as INTERNAL_ERROR.
    """

    def decorator(method: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs) -> R:
            try:
                return method(self, *args, **kwargs)
            except InvoicingError as e:
                logger.warning(f"Failed to {action}: {e}")
                return result_cls(success=False, message=str(e), error_code=e.code)
            except Exception:
                logger.exception(f"Unexpected error trying to {action}")
                return result_cls(
                    success=False,
                    message=f"Failed to {action}",
                    error_code=INTERNAL_ERROR,
                )

        return wrapper

    return decorator


class InvoiceService:
    """Invoice operations for the admin UI and automation."""

    def __init__(
        self,
        lifecycle: InvoiceLifecycleStore,
        queries: InvoiceQueryFacade,
        settings: SettingsResolver,
    ):
        self.lifecycle = lifecycle
        self.queries = queries
        self.settings = settings

    @returns_result(GenerateResult, "generate invoice")
    def generate_invoice(self, order_id: UUID) -> GenerateResult:
        """Generate the invoice for one order. An existing invoice counts as success."""
        outcome = self.lifecycle.generate(order_id)
        return GenerateResult(
            success=True,
            message="Invoice generated successfully" if outcome.created else "Invoice already exists",
            warnings=outcome.warnings,
            invoice_id=outcome.invoice.id,
            invoice_number=outcome.invoice.invoice_number,
            already_existed=not outcome.created,
        )

    @returns_result(BulkGenerateResult, "generate invoices")
    def bulk_generate_invoices(self, order_ids: list[UUID]) -> BulkGenerateResult:
        """
        Generate invoices for several orders, one at a time.

        Succeeds when at least one order was invoiced; per-order outcomes are
        in `results`.
        """
        results = self.lifecycle.bulk_generate(order_ids)
        succeeded = sum(1 for item in results if item.success)
        return BulkGenerateResult(
            success=succeeded > 0,
            message=f"{succeeded} of {len(results)} invoices generated successfully",
            count=succeeded,
            results=results,
        )

    @returns_result(RaiseResult, "raise invoice")
    def raise_invoice(self, invoice_id: int) -> RaiseResult:
        if self.lifecycle.raise_invoice(invoice_id):
            return RaiseResult(success=True, message="Invoice raised successfully", invoice_id=invoice_id)

        # Explain why nothing moved
        current = self.queries.get(invoice_id)
        if current is None:
            raise NotFoundError("Invoice not found")
        raise PreconditionFailedError(
            f"Invoice {current.invoice_number} is already {current.status.value} and cannot be raised"
        )

    @returns_result(BulkRaiseResult, "raise invoices")
    def bulk_raise_invoices(self, invoice_ids: list[int]) -> BulkRaiseResult:
        """Raise all listed invoices still in generated status; the rest are skipped."""
        count = self.lifecycle.bulk_raise(invoice_ids)
        return BulkRaiseResult(
            success=True,
            message=f"{count} invoice{'' if count == 1 else 's'} raised successfully",
            count=count,
        )

    @returns_result(DocumentResult, "preview invoice")
    def preview_invoice(self, invoice_id: int) -> DocumentResult:
        invoice, pdf = self.queries.preview(invoice_id)
        return DocumentResult(
            success=True,
            message="Invoice preview generated",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            pdf=pdf,
        )

    @returns_result(DocumentResult, "download invoice")
    def download_invoice(self, invoice_id: int, order_id: UUID | None = None) -> DocumentResult:
        """Stored document of a raised invoice; the first download marks it downloaded."""
        invoice = self.lifecycle.download(invoice_id, order_id)
        return DocumentResult(
            success=True,
            message="Invoice downloaded successfully",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            pdf=invoice.pdf_data_uri,
        )

    @returns_result(InvoiceLookupResult, "look up invoice")
    def get_invoice_by_order_id(self, order_id: UUID) -> InvoiceLookupResult:
        summary = self.queries.find_by_order(order_id)
        if summary is None:
            raise NotFoundError("No invoice available for this order")
        return InvoiceLookupResult(success=True, message="Invoice found", invoice=summary)

    @returns_result(DeleteResult, "delete invoice")
    def delete_invoice(self, invoice_id: int) -> DeleteResult:
        invoice = self.lifecycle.delete(invoice_id)
        return DeleteResult(
            success=True,
            message=f"Invoice {invoice.invoice_number} deleted",
            invoice_id=invoice.id,
        )

    # -------------------------------------------------------------------------
    # Listing tabs
    # -------------------------------------------------------------------------

    @returns_result(EligibleOrderListResult, "list eligible orders")
    def list_eligible_orders(self, limit: int = 50) -> EligibleOrderListResult:
        orders = self.queries.list_eligible_orders(limit)
        return EligibleOrderListResult(
            success=True, message=f"{len(orders)} orders ready to invoice", orders=orders
        )

    @returns_result(InvoiceListResult, "list generated invoices")
    def list_generated_invoices(self, limit: int = 50) -> InvoiceListResult:
        invoices = self.queries.list_generated(limit)
        return InvoiceListResult(
            success=True, message=f"{len(invoices)} generated invoices", invoices=invoices
        )

    @returns_result(InvoiceListResult, "list issued invoices")
    def list_issued_invoices(self, limit: int = 50) -> InvoiceListResult:
        invoices = self.queries.list_issued(limit)
        return InvoiceListResult(
            success=True, message=f"{len(invoices)} issued invoices", invoices=invoices
        )

    @returns_result(OperationResult, "refresh store settings")
    def refresh_settings(self) -> OperationResult:
        """Drop cached store settings so the next invoice reads them fresh."""
        self.settings.invalidate()
        return OperationResult(success=True, message="Store settings will be reloaded")
