"""Propagate the acting admin's identity through the call stack using contextvars.

Authentication happens upstream of this service. The API middleware binds
whatever identity the upstream proxy forwarded so audit entries can be
attributed; code running outside a request (scripts, bulk jobs) is attributed
to SYSTEM_ACTOR.
"""

from contextlib import contextmanager
from contextvars import ContextVar

SYSTEM_ACTOR = "system"

_current_actor: ContextVar[str | None] = ContextVar("current_actor", default=None)


def get_current_actor() -> str:
    """Current actor, or SYSTEM_ACTOR when nothing is bound."""
    return _current_actor.get() or SYSTEM_ACTOR


def set_current_actor(actor: str) -> None:
    """Bind an actor for the rest of this context."""
    _current_actor.set(actor)


def clear_current_actor() -> None:
    """
    Clear the bound actor.

    Must be called in a finally block by whoever set it.
    """
    _current_actor.set(None)


@contextmanager
def actor_context(actor: str):
    """
    Temporarily act as `actor`.

    Example:
        with actor_context("ops@store.example"):
            invoice_service.bulk_raise_invoices(ids)
    """
    token = _current_actor.set(actor)
    try:
        yield
    finally:
        _current_actor.reset(token)
