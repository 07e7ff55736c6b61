"""
Handler for BookingCompleted events.

On completion, applies the loyalty reward that was recorded with the
status change. Reconciliation flags the booking once the credit lands, so
it is never rewarded twice; a credit that fails here stays pending in the
outbox. Guests have no wallet and are never owed a reward.
"""

import logging
from typing import Callable

from core.events import BookingCompleted
from core.models import OutboxPurpose, OutboxStatus

logger = logging.getLogger(__name__)


def handle_booking_completed(reconciliation, outbox) -> Callable:
    """
    Factory that returns a BookingCompleted handler.

    Dependencies are captured at wiring time via closure.

    Args:
        reconciliation: ReconciliationService instance
        outbox: LedgerOutboxRepository instance

    Returns:
        Handler callable that credits the loyalty reward
    """

    def handler(event: BookingCompleted):
        booking = event.booking

        if booking.points_awarded:
            return

        reward = outbox.get_for_booking(booking.id, OutboxPurpose.REWARD)
        if reward is None:
            logger.debug(f"Booking {booking.booking_reference} owes no loyalty reward")
            return

        if reward.status == OutboxStatus.PENDING:
            reconciliation.apply(reward)

    return handler
