"""
Handler for BookingCancelled events.

On cancellation, closes a wallet payment that never landed, so
reconciliation will not charge for a booking that no longer exists, and
applies the refund that was recorded with the cancellation. A refund that
fails here stays pending in the outbox for reconciliation.
"""

import logging
from typing import Callable

from core.events import BookingCancelled
from core.models import OutboxPurpose, OutboxStatus

logger = logging.getLogger(__name__)


def handle_booking_cancelled(reconciliation, outbox) -> Callable:
    """
    Factory that returns a BookingCancelled handler.

    Args:
        reconciliation: ReconciliationService instance
        outbox: LedgerOutboxRepository instance

    Returns:
        Handler callable that refunds the wallet portion of the booking
    """

    def handler(event: BookingCancelled):
        booking = event.booking

        if booking.allocation.wallet_cents <= 0:
            return

        payment = outbox.get_for_booking(booking.id)
        if payment is not None and payment.status in (OutboxStatus.PENDING, OutboxStatus.NEEDS_REVIEW):
            outbox.resolve(payment.id, "Booking cancelled before the wallet debit was applied")
            logger.info(f"Closed pending payment for cancelled booking {booking.booking_reference}")

        refund = outbox.get_for_booking(booking.id, OutboxPurpose.REFUND)
        if refund is None or refund.status != OutboxStatus.PENDING:
            return

        outcome = reconciliation.apply(refund)
        logger.info(f"Refund for cancelled booking {booking.booking_reference}: {outcome}")

    return handler
