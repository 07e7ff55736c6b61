"""Tests for EventBus."""

import logging

import pytest

from core.event_bus import EventBus
from core.events import BookingCreated, BookingCompleted, WalletCredited

from tests.builders import make_booking


@pytest.fixture
def _booking():
    return make_booking()


# =============================================================================
# SUBSCRIBE AND PUBLISH
# =============================================================================


class TestSubscribeAndPublish:

    def test_single_handler_receives_the_exact_event_object(self, _booking):
        bus = EventBus()
        received = []
        bus.subscribe("BookingCreated", received.append)

        event = BookingCreated.create(_booking)
        bus.publish(event)

        assert len(received) == 1
        assert received[0] is event

    def test_handler_can_read_payload_fields(self, _booking):
        bus = EventBus()
        references = []
        bus.subscribe("BookingCreated", lambda e: references.append(e.booking.booking_reference))

        bus.publish(BookingCreated.create(_booking))

        assert references == [_booking.booking_reference]

    def test_multiple_handlers_called_in_subscription_order(self, _booking):
        bus = EventBus()
        order = []
        bus.subscribe("BookingCompleted", lambda e: order.append("reward"))
        bus.subscribe("BookingCompleted", lambda e: order.append("notify"))
        bus.subscribe("BookingCompleted", lambda e: order.append("report"))

        bus.publish(BookingCompleted.create(_booking))

        assert order == ["reward", "notify", "report"]

    def test_type_isolation_only_matching_subscribers_called(self, _booking):
        bus = EventBus()
        booking_calls = []
        wallet_calls = []
        bus.subscribe("BookingCreated", booking_calls.append)
        bus.subscribe("WalletCredited", wallet_calls.append)

        bus.publish(BookingCreated.create(_booking))

        assert len(booking_calls) == 1
        assert wallet_calls == []

    def test_subclass_name_not_matched_by_parent(self, _booking):
        bus = EventBus()
        calls = []
        bus.subscribe("BookingEvent", calls.append)

        bus.publish(BookingCreated.create(_booking))

        assert calls == []

    def test_no_subscribers_does_not_raise(self, _booking):
        bus = EventBus()
        bus.publish(BookingCreated.create(_booking))


# =============================================================================
# HANDLER ERROR ISOLATION
# =============================================================================


class TestHandlerErrorIsolation:

    def test_handler_exception_does_not_propagate(self, _booking):
        bus = EventBus()
        bus.subscribe("BookingCreated", lambda e: (_ for _ in ()).throw(RuntimeError("boom")))

        # Must not raise
        bus.publish(BookingCreated.create(_booking))

    def test_handler_exception_is_logged_with_event_type_and_event_id(self, _booking, caplog):
        bus = EventBus()

        def failing_handler(event):
            raise ValueError("reward credit failed")

        bus.subscribe("BookingCompleted", failing_handler)

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            event = BookingCompleted.create(_booking)
            bus.publish(event)

        assert "reward credit failed" in caplog.text
        assert "BookingCompleted" in caplog.text
        assert "failing_handler" in caplog.text
        assert event.event_id in caplog.text

    def test_all_handlers_run_even_if_some_fail(self, _booking):
        bus = EventBus()
        results = []

        bus.subscribe("BookingCompleted", lambda e: (_ for _ in ()).throw(RuntimeError("fail 1")))
        bus.subscribe("BookingCompleted", lambda e: results.append("survived_1"))
        bus.subscribe("BookingCompleted", lambda e: (_ for _ in ()).throw(RuntimeError("fail 2")))
        bus.subscribe("BookingCompleted", lambda e: results.append("survived_2"))

        bus.publish(BookingCompleted.create(_booking))

        assert results == ["survived_1", "survived_2"]

    def test_wallet_events_use_same_bus(self):
        bus = EventBus()
        received = []
        bus.subscribe("WalletCredited", received.append)

        bus.publish(WalletCredited.create(transaction=None))

        assert len(received) == 1
