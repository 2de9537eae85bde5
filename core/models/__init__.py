"""Core domain models."""

from core.models.order import (
    OrderParty, OrderLineItem, OrderSnapshot, EligibleOrder,
    PaymentStatus, INVOICEABLE_PAYMENT_STATUSES,
)
from core.models.settings import CompanySettings, TaxConfig, SettingsResolution
from core.models.invoice import (
    Invoice, InvoiceData, InvoiceLineItem, InvoiceStatus, InvoiceSummary, ISSUED_STATUSES,
)
from core.models.results import (
    OperationResult, GenerateResult, BulkGenerateItem, BulkGenerateResult,
    RaiseResult, BulkRaiseResult, DocumentResult, InvoiceLookupResult, DeleteResult,
    EligibleOrderListResult, InvoiceListResult,
)

__all__ = [
    # Order
    "OrderParty", "OrderLineItem", "OrderSnapshot", "EligibleOrder",
    "PaymentStatus", "INVOICEABLE_PAYMENT_STATUSES",
    # Settings
    "CompanySettings", "TaxConfig", "SettingsResolution",
    # Invoice
    "Invoice", "InvoiceData", "InvoiceLineItem", "InvoiceStatus", "InvoiceSummary",
    "ISSUED_STATUSES",
    # Results
    "OperationResult", "GenerateResult", "BulkGenerateItem", "BulkGenerateResult",
    "RaiseResult", "BulkRaiseResult", "DocumentResult", "InvoiceLookupResult", "DeleteResult",
    "EligibleOrderListResult", "InvoiceListResult",
]
