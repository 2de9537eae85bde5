"""API test fixtures: TestClient over the in-memory invoice services."""

import pytest
from starlette.testclient import TestClient

from app import create_app

ADMIN = "admin@store.example"


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def services(invoice_service):
    return {"invoice": invoice_service}


@pytest.fixture
def app(services):
    """The production app factory wired to fake stores."""
    return create_app(services)


@pytest.fixture
def client(app):
    """Client acting as the test admin."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["X-Admin-User"] = ADMIN
    return c


@pytest.fixture
def act(client):
    """POST an invoice action and return the response."""

    def post(action: str, **data):
        return client.post("/api/actions", json={"domain": "invoice", "action": action, "data": data})

    return post
