"""
Settings resolution for invoice builds.

Reads the shop and billing categories from the settings table and maps the
loose key/value pairs into CompanySettings and TaxConfig. Results are cached
through a SettingsCache owned by the composition root, so the cache lifecycle
is explicit and can be invalidated when an admin saves settings.

If the settings store is unreachable, resolve() returns safe defaults (tax off,
brand name) flagged as degraded: invoice generation degrades instead of failing.
"""

import logging
from decimal import Decimal, InvalidOperation

import redis
from pydantic import ValidationError

from clients.valkey_client import ValkeyClient
from core.config import InvoiceConfig
from core.exceptions import UpstreamUnavailableError
from core.models import CompanySettings, SettingsResolution, TaxConfig
from core.stores.settings_store import SettingsStore

logger = logging.getLogger(__name__)

SHOP_KEYS = ["store_name", "store_address", "store_phone", "store_email"]
BILLING_KEYS = [
    "gst_number",
    "pan_number",
    "enable_gst",
    "tax_rate",
    "invoice_header_image_url",
    "invoice_footer_image_url",
]


class SettingsCache:
    """
    Valkey-backed cache for resolved settings.

    Cache errors are logged and behave like a miss; the settings table stays
    the source of truth.
    """

    KEY = "invoicing:settings:v1"

    def __init__(self, valkey: ValkeyClient, ttl_seconds: int):
        self.valkey = valkey
        self.ttl_seconds = ttl_seconds

    def get(self) -> SettingsResolution | None:
        try:
            cached = self.valkey.get_json(self.KEY)
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Settings cache read failed: {e}")
            return None

        if cached is None:
            return None

        try:
            return SettingsResolution.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cached settings: {e}")
            return None

    def put(self, resolution: SettingsResolution) -> None:
        try:
            self.valkey.set_json(self.KEY, resolution.model_dump(mode="json"), self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning(f"Settings cache write failed: {e}")

    def invalidate(self) -> None:
        try:
            self.valkey.delete(self.KEY)
        except redis.RedisError as e:
            logger.warning(f"Settings cache invalidation failed: {e}")


def map_company_settings(shop: dict[str, str], billing: dict[str, str], brand_name: str) -> CompanySettings:
    """Typed company identity from raw shop/billing settings. Missing keys become ""."""
    return CompanySettings(
        store_name=shop.get("store_name", "").strip() or brand_name,
        store_address=shop.get("store_address", ""),
        store_phone=shop.get("store_phone", ""),
        store_email=shop.get("store_email", ""),
        gst_number=billing.get("gst_number", ""),
        pan_number=billing.get("pan_number", ""),
        header_image_url=billing.get("invoice_header_image_url", "").strip(),
        footer_image_url=billing.get("invoice_footer_image_url", "").strip(),
    )


def map_tax_config(billing: dict[str, str], default_rate: Decimal) -> TaxConfig:
    """
    Typed tax switch from raw billing settings.

    GST is on only when enable_gst is exactly "true". When it is off the rate
    is forced to 0 whatever tax_rate says, so a stale rate can never reach
    the arithmetic.
    """
    if billing.get("enable_gst") != "true":
        return TaxConfig(enabled=False, rate=Decimal("0"))

    raw_rate = billing.get("tax_rate", "").strip()
    if not raw_rate:
        return TaxConfig(enabled=True, rate=default_rate)

    try:
        rate = Decimal(raw_rate)
    except InvalidOperation:
        logger.warning(f"Invalid tax_rate setting {raw_rate!r}, using {default_rate}")
        return TaxConfig(enabled=True, rate=default_rate)

    if not rate.is_finite() or rate < 0 or rate > 100:
        logger.warning(f"Out of range tax_rate setting {raw_rate!r}, using {default_rate}")
        return TaxConfig(enabled=True, rate=default_rate)

    return TaxConfig(enabled=True, rate=rate)


class SettingsResolver:
    """Resolves CompanySettings and TaxConfig for invoice builds."""

    def __init__(self, store: SettingsStore, config: InvoiceConfig, cache: SettingsCache | None = None):
        self.store = store
        self.config = config
        self.cache = cache

    def load_company_settings(self) -> CompanySettings:
        """
        Company identity straight from the store (no cache).

        Raises:
            UpstreamUnavailableError: Settings store unreachable
        """
        shop = self.store.get_settings("shop", SHOP_KEYS)
        billing = self.store.get_settings("billing", BILLING_KEYS)
        return map_company_settings(shop, billing, self.config.brand_name)

    def load_tax_config(self) -> TaxConfig:
        """
        Tax switch straight from the store (no cache).

        Raises:
            UpstreamUnavailableError: Settings store unreachable
        """
        billing = self.store.get_settings("billing", BILLING_KEYS)
        return map_tax_config(billing, self.config.default_gst_rate)

    def defaults(self, reason: str) -> SettingsResolution:
        """Safe fallback: brand name only, tax disabled."""
        return SettingsResolution(
            company=CompanySettings(store_name=self.config.brand_name),
            tax=TaxConfig(enabled=False, rate=Decimal("0")),
            degraded=True,
            reason=reason,
        )

    def resolve(self) -> SettingsResolution:
        """
        Settings for one invoice build. Never raises for store unavailability.

        Returns:
            Cached or freshly read settings; degraded defaults if the store is down.
        """
        if self.cache is not None:
            cached = self.cache.get()
            if cached is not None:
                return cached

        try:
            shop = self.store.get_settings("shop", SHOP_KEYS)
            billing = self.store.get_settings("billing", BILLING_KEYS)
        except UpstreamUnavailableError as e:
            logger.warning(f"Settings unavailable, using defaults: {e}")
            return self.defaults(f"Store settings unavailable ({e}); invoice uses default company details and no GST")

        resolution = SettingsResolution(
            company=map_company_settings(shop, billing, self.config.brand_name),
            tax=map_tax_config(billing, self.config.default_gst_rate),
        )

        if self.cache is not None:
            self.cache.put(resolution)

        return resolution

    def invalidate(self) -> None:
        """Drop cached settings, e.g. after an admin edits them."""
        if self.cache is not None:
            self.cache.invalidate()
