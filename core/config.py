"""Invoicing configuration."""

from decimal import Decimal

from pydantic import BaseModel, Field


class InvoiceConfig(BaseModel):
    """
    Invoicing configuration.

    Store identity and tax rates live in the settings table and are resolved
    per invoice; this holds process-level policy and fallbacks.
    """

    # Identity fallbacks
    brand_name: str = Field(
        default="Nirchal",
        description="Store name used when the settings table has none",
        min_length=1,
    )
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefix for minted invoice numbers",
        min_length=1,
        max_length=10,
    )

    # Tax
    default_gst_rate: Decimal = Field(
        default=Decimal("18"),
        description="GST percentage used when GST is enabled but no valid rate is configured",
        ge=0,
        le=100,
    )

    # Presentation
    display_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone for dates printed on invoices",
    )
    currency_label: str = Field(
        default="Rs.",
        description="Currency label printed before amounts",
    )

    # Settings cache
    settings_cache_ttl_seconds: int = Field(
        default=300,
        description="How long resolved settings stay cached",
        ge=1,
        le=86400,
    )

    # Timeouts
    render_timeout_seconds: int = Field(
        default=30,
        description="Upper bound for one invoice in a bulk generation batch",
        ge=1,
        le=600,
    )
    image_fetch_timeout_seconds: int = Field(
        default=10,
        description="Timeout for fetching header/footer branding images",
        ge=1,
        le=60,
    )

    # Integrity
    strict_totals: bool = Field(
        default=False,
        description="Fail generation when the recomputed total disagrees with the order total",
    )
    total_tolerance_minor: int = Field(
        default=1,
        description="Allowed difference between recomputed and stored totals, in minor units",
        ge=0,
    )

    # Eligibility
    eligible_order_status: str = Field(
        default="delivered",
        description="Fulfillment status that makes an order show up as ready to invoice",
    )
