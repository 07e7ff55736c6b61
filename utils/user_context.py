"""Propagate the acting staff member's identity through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_actor_id: ContextVar[UUID | None] = ContextVar("current_actor_id", default=None)


def get_current_actor_id() -> UUID | None:
    """
    Get the staff member (or system job) acting in this context.

    Returns None for unattributed work such as customer self-checkout;
    audit entries then carry a NULL actor.
    """
    return _current_actor_id.get()


def set_current_actor_id(actor_id: UUID) -> None:
    """Set the acting staff member. Called by the API layer per request."""
    _current_actor_id.set(actor_id)


def clear_current_actor_id() -> None:
    """
    Clear actor context.

    Must be called in a finally block to prevent context leakage between requests.
    """
    _current_actor_id.set(None)


@contextmanager
def actor_context(actor_id: UUID):
    """
    Context manager for temporarily attributing work to an actor.

    Example:
        with actor_context(front_desk_staff_id):
            booking_service.change_status(booking_id, BookingStatus.CONFIRMED)
    """
    previous = _current_actor_id.get()
    set_current_actor_id(actor_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_actor_id()
        else:
            set_current_actor_id(previous)
