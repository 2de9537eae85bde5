"""Typed store settings used when building invoices."""

from decimal import Decimal

from pydantic import BaseModel, Field


class CompanySettings(BaseModel):
    """
    Seller identity printed on the invoice.

    Every field is optional in the settings table and defaults to "".
    A snapshot of this is embedded in every invoice, so historical documents
    never change when the store's details do.
    """

    store_name: str
    store_address: str = ""
    store_phone: str = ""
    store_email: str = ""
    gst_number: str = ""
    pan_number: str = ""
    header_image_url: str = ""
    footer_image_url: str = ""

    model_config = {"frozen": True}


class TaxConfig(BaseModel):
    """GST switch and inclusive rate (percentage). Disabled always means rate 0."""

    enabled: bool = False
    rate: Decimal = Field(Decimal("0"), ge=0, le=100)

    model_config = {"frozen": True}


class SettingsResolution(BaseModel):
    """
    Settings as resolved for one invoice build.

    degraded is True when the settings store was unreachable and safe defaults
    were substituted; callers surface `reason` to the operator.
    """

    company: CompanySettings
    tax: TaxConfig
    degraded: bool = False
    reason: str | None = None
