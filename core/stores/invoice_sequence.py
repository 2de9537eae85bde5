"""Atomic invoice number sequence."""

from clients.postgres_client import PostgresClient
from core.stores import upstream


class InvoiceSequence:
    """
    Wraps the invoice_number_seq PostgreSQL sequence.

    nextval() is atomic across connections and never hands out a value twice,
    even if the transaction that drew it rolls back.
    """

    def __init__(self, postgres: PostgresClient, sequence_name: str = "invoice_number_seq"):
        self.postgres = postgres
        self.sequence_name = sequence_name

    def next_value(self) -> int | None:
        with upstream("Invoice number sequence"):
            return self.postgres.execute_scalar(
                "SELECT nextval(%s::regclass)",
                (self.sequence_name,)
            )
