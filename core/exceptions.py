"""Typed exceptions for invoicing failures.

Raised inside the core and converted to failed results at the caller-facing
boundary (InvoiceService). Each class carries a machine-readable code that
ends up in OperationResult.error_code.
"""


class InvoicingError(Exception):
    """Base class for invoicing errors."""

    code = "INVOICING_ERROR"


class NotFoundError(InvoicingError):
    """Referenced order or invoice does not exist (or is deleted)."""

    code = "NOT_FOUND"


class PreconditionFailedError(InvoicingError):
    """
    The entity exists but is in the wrong state for the operation.

    Payment not completed, illegal status transition, deleting an issued invoice.
    The caller may re-check state and retry manually.
    """

    code = "PRECONDITION_FAILED"


class IntegrityMismatchError(InvoicingError):
    """Recomputed grand total disagrees with the order's stored total."""

    code = "INTEGRITY_MISMATCH"

    def __init__(self, order_number: str, expected: int, actual: int):
        self.order_number = order_number
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Order {order_number}: invoice total {actual} does not match "
            f"order total {expected} (minor units)"
        )


class UpstreamUnavailableError(InvoicingError):
    """A store the core depends on could not be reached."""

    code = "UPSTREAM_UNAVAILABLE"


class InvoiceNumberError(UpstreamUnavailableError):
    """The sequence could not mint an invoice number. Not retried."""

    code = "INVOICE_NUMBER_UNAVAILABLE"


class RenderError(InvoicingError):
    """Document construction failed. Nothing was persisted."""

    code = "RENDER_FAILED"
