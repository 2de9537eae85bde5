"""
Key/value settings table reader.

Rows look like (category, key, value, data_type). Values are stored as text
and tagged with how the admin UI wrote them; everything is handed back as a
string here and typed by SettingsResolver's mapping functions.
"""

import json
import logging
from typing import Any

from clients.postgres_client import PostgresClient
from core.stores import upstream

logger = logging.getLogger(__name__)

VALID_CATEGORIES = {"shop", "billing"}


def coerce_setting(value: Any, data_type: str | None) -> str:
    """
    Normalize a stored setting value to its canonical string form.

    Real booleans -> "true"/"false"; boolean-tagged text is passed through
    untouched so the resolver's exact match sees what the admin stored.
    number -> plain numeric text, json -> compact JSON, anything else ->
    str(value). None becomes "".
    """
    if value is None:
        return ""

    if data_type == "boolean":
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if data_type == "number":
        return str(value).strip()

    if data_type == "json" and not isinstance(value, str):
        return json.dumps(value, separators=(",", ":"))

    return str(value)


class SettingsStore:
    """Reads settings by category."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_settings(self, category: str, keys: list[str]) -> dict[str, str]:
        """
        Fetch the requested keys from one category.

        Missing keys are simply absent from the result.

        Raises:
            ValueError: Unknown category
            UpstreamUnavailableError: Database unreachable
        """
        if category not in VALID_CATEGORIES:
            raise ValueError(f"Unknown settings category '{category}'")

        with upstream("Settings store"):
            rows = self.postgres.execute(
                """
                SELECT key, value, data_type
                FROM settings
                WHERE category = %s AND key = ANY(%s)
                """,
                (category, list(keys))
            )

        return {row["key"]: coerce_setting(row["value"], row.get("data_type")) for row in rows}
