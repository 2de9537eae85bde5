"""
Handler for InvoiceRaised events.

Once an invoice is raised, lets the customer know it can be downloaded.
"""

import logging
from typing import Callable

from clients.email_client import EmailGatewayClient
from core.events import InvoiceRaised

logger = logging.getLogger(__name__)


def handle_invoice_raised(email_client: EmailGatewayClient) -> Callable:
    """
    Factory that returns an InvoiceRaised handler.

    Args:
        email_client: Gateway used to send the notification

    Returns:
        Handler callable that emails the customer. Send failures propagate
        to the event bus, which logs them; the raise itself already committed.
    """

    def handler(event: InvoiceRaised):
        invoice = event.invoice
        data = invoice.invoice_data

        if not data.customer_email:
            logger.info(f"Invoice {invoice.invoice_number} raised; no customer email to notify")
            return

        email_client.send_invoice_ready(
            to=data.customer_email,
            customer_name=data.customer_name,
            invoice_number=invoice.invoice_number,
            order_number=data.order_number,
            store_name=data.company.store_name,
        )
        logger.info(f"Notified {data.customer_email} about invoice {invoice.invoice_number}")

    return handler
