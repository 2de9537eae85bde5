"""Shared test fixtures for the invoicing test suite."""

import os
from io import BytesIO
from pathlib import Path
from unittest.mock import Mock

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.event_bus import EventBus
from core.services.invoice_builder import InvoiceDocumentBuilder
from core.services.invoice_lifecycle import InvoiceLifecycleStore
from core.services.invoice_number_issuer import InvoiceNumberIssuer
from core.services.invoice_queries import InvoiceQueryFacade
from core.services.invoice_renderer import InvoiceRenderer
from core.services.invoice_service import InvoiceService
from core.services.order_reader import OrderSnapshotReader
from core.services.settings_resolver import SettingsResolver
from utils.actor_context import clear_current_actor
from fakes import (
    FakeInvoiceSequence,
    FakeInvoiceTable,
    FakeOrderStore,
    FakeSettingsStore,
    make_item_row,
    make_order_row,
)

TEST_ACTOR = "admin@store.example"

SHOP_SETTINGS = {
    "store_name": "Nirchal Textiles",
    "store_address": "45 Commercial Street\nBengaluru 560001",
    "store_phone": "+91 80 4000 0000",
    "store_email": "support@nirchal.example",
}

BILLING_SETTINGS = {
    "gst_number": "29ABCDE1234F1Z5",
    "pan_number": "ABCDE1234F",
    "enable_gst": "true",
    "tax_rate": "18",
}


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure a clean actor context before and after each test."""
    clear_current_actor()
    yield
    clear_current_actor()


# =============================================================================
# STORE FAKES
# =============================================================================


@pytest.fixture
def config() -> InvoiceConfig:
    return InvoiceConfig()


@pytest.fixture
def order_store() -> FakeOrderStore:
    return FakeOrderStore()


@pytest.fixture
def settings_store() -> FakeSettingsStore:
    return FakeSettingsStore(shop=SHOP_SETTINGS, billing=BILLING_SETTINGS)


@pytest.fixture
def sequence() -> FakeInvoiceSequence:
    return FakeInvoiceSequence(start=1)


@pytest.fixture
def invoice_table(order_store) -> FakeInvoiceTable:
    return FakeInvoiceTable(order_store)


@pytest.fixture
def paid_order(order_store):
    """A delivered, paid order: subtotal 1180.00 incl. 18% GST, no shipping or discount."""
    return order_store.add(make_order_row(), [make_item_row()])


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def settings_resolver(settings_store, config):
    return SettingsResolver(settings_store, config)


@pytest.fixture
def renderer():
    return InvoiceRenderer()


@pytest.fixture
def lifecycle(invoice_table, order_store, settings_resolver, sequence, renderer, audit, event_bus, config):
    return InvoiceLifecycleStore(
        table=invoice_table,
        orders=OrderSnapshotReader(order_store),
        settings=settings_resolver,
        issuer=InvoiceNumberIssuer(sequence, prefix=config.invoice_number_prefix),
        builder=InvoiceDocumentBuilder(display_timezone=config.display_timezone),
        renderer=renderer,
        audit=audit,
        event_bus=event_bus,
        config=config,
    )


@pytest.fixture
def queries(invoice_table, renderer, config):
    return InvoiceQueryFacade(invoice_table, renderer, config)


@pytest.fixture
def invoice_service(lifecycle, queries, settings_resolver):
    return InvoiceService(lifecycle, queries, settings_resolver)


# =============================================================================
# IMAGES
# =============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG."""
    from PIL import Image

    buffer = BytesIO()
    Image.new("RGB", (200, 60), (79, 70, 229)).save(buffer, format="PNG")
    return buffer.getvalue()


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """
    Session-scoped PostgresClient for SQL-level tests.

    Skipped unless INVOICING_TEST_DATABASE_URL points at a disposable database.
    """
    database_url = os.getenv("INVOICING_TEST_DATABASE_URL")
    if not database_url:
        pytest.skip("INVOICING_TEST_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient

    client = PostgresClient(database_url)
    yield client
    client.close()
