"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, local_date
from utils.money import CENTS_PER_UNIT, round_cents, format_cents
from utils.user_context import (
    get_current_actor_id,
    set_current_actor_id,
    clear_current_actor_id,
    actor_context,
)
