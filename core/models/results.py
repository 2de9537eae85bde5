"""Result objects returned by the caller-facing invoice operations.

Nothing raises across that boundary: every outcome, including failures, is
one of these, with a message suitable for direct display.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from core.models.invoice import InvoiceSummary
from core.models.order import EligibleOrder


class OperationResult(BaseModel):
    """Common shape for every caller-facing operation."""

    success: bool
    message: str
    error_code: str | None = None
    warnings: list[str] = Field(default_factory=list)


class GenerateResult(OperationResult):
    invoice_id: int | None = None
    invoice_number: str | None = None
    already_existed: bool = False


class BulkGenerateItem(BaseModel):
    """Per-order outcome inside a bulk generation batch."""

    order_id: UUID
    success: bool
    message: str
    invoice_id: int | None = None
    invoice_number: str | None = None
    error_code: str | None = None


class BulkGenerateResult(OperationResult):
    count: int = 0
    results: list[BulkGenerateItem] = Field(default_factory=list)


class RaiseResult(OperationResult):
    invoice_id: int | None = None


class BulkRaiseResult(OperationResult):
    count: int = 0


class DocumentResult(OperationResult):
    """Preview or download. `pdf` is a base64 data URI."""

    invoice_id: int | None = None
    invoice_number: str | None = None
    pdf: str | None = None


class InvoiceLookupResult(OperationResult):
    invoice: InvoiceSummary | None = None


class DeleteResult(OperationResult):
    invoice_id: int | None = None


class EligibleOrderListResult(OperationResult):
    orders: list[EligibleOrder] = Field(default_factory=list)


class InvoiceListResult(OperationResult):
    invoices: list[InvoiceSummary] = Field(default_factory=list)
