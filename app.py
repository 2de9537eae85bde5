"""
Composition root.

Wires clients into the invoice core and mounts the HTTP surface. Nothing in
core/ constructs its own collaborators; everything is built here once per
process and passed down.

    uvicorn app:create_app_from_vault --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from clients.asset_client import AssetClient
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_email_config, get_valkey_url
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.event_bus import EventBus
from core.handlers.invoice_raised_handler import handle_invoice_raised
from core.services.invoice_builder import InvoiceDocumentBuilder
from core.services.invoice_lifecycle import InvoiceLifecycleStore
from core.services.invoice_number_issuer import InvoiceNumberIssuer
from core.services.invoice_queries import InvoiceQueryFacade
from core.services.invoice_renderer import InvoiceRenderer
from core.services.invoice_service import InvoiceService
from core.services.order_reader import OrderSnapshotReader
from core.services.settings_resolver import SettingsCache, SettingsResolver
from core.stores.invoice_sequence import InvoiceSequence
from core.stores.invoice_table import InvoiceTable
from core.stores.order_store import OrderStore
from core.stores.settings_store import SettingsStore

logger = logging.getLogger(__name__)


def build_services(
    postgres: PostgresClient,
    valkey: ValkeyClient | None = None,
    email_client: EmailGatewayClient | None = None,
    config: InvoiceConfig | None = None,
    asset_client: AssetClient | None = None,
) -> dict:
    """
    Build the invoice service graph.

    Args:
        postgres: Database client shared by every store
        valkey: Settings cache backend; settings are read uncached without it
        email_client: Customer notifications on raise; skipped without it
        config: Invoicing policy (defaults if omitted)
        asset_client: Branding image fetcher; one is created if omitted

    Returns:
        Services dict as expected by the API routers.
    """
    config = config or InvoiceConfig()

    event_bus = EventBus()
    if email_client is not None:
        event_bus.subscribe("InvoiceRaised", handle_invoice_raised(email_client))

    cache = SettingsCache(valkey, config.settings_cache_ttl_seconds) if valkey is not None else None
    settings = SettingsResolver(SettingsStore(postgres), config, cache)

    table = InvoiceTable(postgres)
    if asset_client is None:
        asset_client = AssetClient(timeout_seconds=config.image_fetch_timeout_seconds)
    renderer = InvoiceRenderer(
        asset_client=asset_client,
        currency_label=config.currency_label,
    )

    lifecycle = InvoiceLifecycleStore(
        table=table,
        orders=OrderSnapshotReader(OrderStore(postgres)),
        settings=settings,
        issuer=InvoiceNumberIssuer(InvoiceSequence(postgres), prefix=config.invoice_number_prefix),
        builder=InvoiceDocumentBuilder(display_timezone=config.display_timezone),
        renderer=renderer,
        audit=AuditLogger(postgres),
        event_bus=event_bus,
        config=config,
    )
    queries = InvoiceQueryFacade(table, renderer, config)

    return {
        "invoice": InvoiceService(lifecycle, queries, settings),
    }


def create_app(services: dict, lifespan=None) -> FastAPI:
    """FastAPI app with request middleware, error handlers, and data/actions routes."""
    app = FastAPI(title="Storefront Invoicing", lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app


def create_app_from_vault() -> FastAPI:
    """Production entry point: secrets from Vault, fail fast if any are missing."""
    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    email_config = get_email_config()
    config = InvoiceConfig()
    asset_client = AssetClient(timeout_seconds=config.image_fetch_timeout_seconds)
    email_client = EmailGatewayClient(
        gateway_url=email_config["gateway_url"],
        api_key=email_config["api_key"],
        hmac_secret=email_config["hmac_secret"],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        postgres.close()
        valkey.close()
        asset_client.close()

    services = build_services(postgres, valkey, email_client, config=config, asset_client=asset_client)
    app = create_app(services, lifespan=lifespan)

    logger.info("Invoicing app initialized")
    return app
