"""Mints invoice numbers."""

import logging
from datetime import date

from core.exceptions import InvoiceNumberError, UpstreamUnavailableError
from core.stores.invoice_sequence import InvoiceSequence
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class InvoiceNumberIssuer:
    """
    Issues invoice numbers of the form PREFIX-YYYYMM-NNNNNN.

    Uniqueness comes entirely from the database sequence: the date part is
    cosmetic, the counter never resets and is never recycled after a delete.
    """

    def __init__(self, sequence: InvoiceSequence, prefix: str = "INV"):
        self.sequence = sequence
        self.prefix = prefix

    def issue(self, invoice_date: date | None = None) -> str:
        """
        Mint the next invoice number.

        Args:
            invoice_date: Date printed on the invoice; its month goes into the
                number. Defaults to today in UTC.

        Raises:
            InvoiceNumberError: Sequence unreachable or returned nothing
        """
        try:
            value = self.sequence.next_value()
        except UpstreamUnavailableError as e:
            logger.error(f"Could not mint invoice number: {e}")
            raise InvoiceNumberError("Failed to generate invoice number") from e

        if value is None:
            raise InvoiceNumberError("Failed to generate invoice number")

        invoice_date = invoice_date or now_utc().date()
        return f"{self.prefix}-{invoice_date:%Y%m}-{int(value):06d}"
