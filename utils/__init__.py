"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, local_date, format_display_date, parse_iso
from utils.money import to_minor_units, to_major_units, format_money, format_rate
from utils.actor_context import (
    SYSTEM_ACTOR,
    get_current_actor,
    set_current_actor,
    clear_current_actor,
    actor_context,
)
