"""SQL-backed stores at the boundary between the invoice core and PostgreSQL."""

from contextlib import contextmanager

from clients.postgres_client import DatabaseUnavailableError
from core.exceptions import UpstreamUnavailableError


@contextmanager
def upstream(store_name: str):
    """Translate database connectivity failures into UpstreamUnavailableError."""
    try:
        yield
    except DatabaseUnavailableError as e:
        raise UpstreamUnavailableError(f"{store_name} unavailable: {e}") from e
