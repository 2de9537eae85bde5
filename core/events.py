"""
Domain events for invoicing.

Immutable event objects that represent invoice state changes. A service
publishes what happened, and handlers react without the publisher knowing
who's listening.

Events carry the full Invoice so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class InvoicingEvent:
    """Base class for all invoicing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    invoice: Any = None  # Invoice; Any avoids importing models here

    @classmethod
    def create(cls, invoice: Any):
        return cls(invoice=invoice)


@dataclass(frozen=True, kw_only=True)
class InvoiceGenerated(InvoicingEvent):
    """An invoice was generated for an order (status generated)."""
    warnings: tuple[str, ...] = ()

    @classmethod
    def create(cls, invoice: Any, warnings: tuple[str, ...] = ()) -> "InvoiceGenerated":
        return cls(invoice=invoice, warnings=tuple(warnings))


@dataclass(frozen=True, kw_only=True)
class InvoiceRaised(InvoicingEvent):
    """An invoice became visible to the customer."""


@dataclass(frozen=True, kw_only=True)
class InvoiceDownloaded(InvoicingEvent):
    """A raised invoice was downloaded for the first time."""


@dataclass(frozen=True, kw_only=True)
class InvoiceDeleted(InvoicingEvent):
    """A generated, never-raised invoice was deleted."""
