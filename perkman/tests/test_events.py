"""Tests for the outbox and signal relay."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.test import override_settings
from django.utils import timezone

from perkman import signals
from perkman.models import EventType, OutboxEvent
from perkman.services.events import EventService

pytestmark = pytest.mark.django_db


@pytest.fixture
def received():
    """Collect payloads of points_earned receivers."""
    calls = []

    def receiver(sender, event, payload, **kwargs):
        calls.append(payload)

    signals.points_earned.connect(receiver, weak=False)
    yield calls
    signals.points_earned.disconnect(receiver)


@pytest.fixture
def failing_receiver():
    def receiver(sender, **kwargs):
        raise RuntimeError("notification service down")

    signals.points_earned.connect(receiver, weak=False)
    yield receiver
    signals.points_earned.disconnect(receiver)


class TestPublish:
    """Tests for EventService.publish()."""

    def test_creates_pending_event(self):
        event = EventService.publish(EventType.POINTS_EARNED, customer="CUST-001", points=73)

        assert event.dispatched_at is None
        assert event.attempts == 0
        assert event.payload == {"customer": "CUST-001", "points": 73}


class TestDispatchPending:
    """Tests for EventService.dispatch_pending()."""

    def test_relays_to_receivers(self, received):
        EventService.publish(EventType.POINTS_EARNED, customer="CUST-001", points=73)

        assert EventService.dispatch_pending() == 1

        assert received == [{"customer": "CUST-001", "points": 73}]
        event = OutboxEvent.objects.get()
        assert event.dispatched_at is not None
        assert event.attempts == 1

    def test_dispatched_events_not_resent(self, received):
        EventService.publish(EventType.POINTS_EARNED, customer="CUST-001", points=1)
        EventService.dispatch_pending()

        assert EventService.dispatch_pending() == 0
        assert len(received) == 1

    def test_failing_receiver_leaves_event_pending(self, failing_receiver):
        EventService.publish(EventType.POINTS_EARNED, customer="CUST-001", points=1)

        assert EventService.dispatch_pending() == 0

        event = OutboxEvent.objects.get()
        assert event.dispatched_at is None
        assert event.attempts == 1
        assert "notification service down" in event.last_error

    def test_gives_up_after_max_attempts(self, failing_receiver):
        EventService.publish(EventType.POINTS_EARNED, customer="CUST-001", points=1)

        with override_settings(PERKMAN={"EVENT_MAX_ATTEMPTS": 2}):
            for _ in range(4):
                EventService.dispatch_pending()

        assert OutboxEvent.objects.get().attempts == 2

    def test_limit(self):
        for i in range(3):
            EventService.publish(EventType.SEGMENT_RECOMPUTE, customer=f"C{i}")

        assert EventService.dispatch_pending(limit=2) == 2
        assert OutboxEvent.objects.filter(dispatched_at__isnull=True).count() == 1


class TestDispatchOnCommit:
    """Tests for EventService.dispatch_on_commit()."""

    def test_disabled(self):
        with patch("perkman.services.events.transaction.on_commit") as on_commit:
            EventService.dispatch_on_commit()

        on_commit.assert_not_called()

    def test_enabled(self):
        with override_settings(PERKMAN={"DISPATCH_EVENTS_ON_COMMIT": True}):
            with patch("perkman.services.events.transaction.on_commit") as on_commit:
                EventService.dispatch_on_commit()

        on_commit.assert_called_once_with(EventService.dispatch_pending)


class TestCleanup:
    """Tests for OutboxEvent.cleanup_dispatched()."""

    def test_removes_old_dispatched_only(self):
        old = EventService.publish(EventType.SEGMENT_RECOMPUTE, customer="A")
        EventService.publish(EventType.SEGMENT_RECOMPUTE, customer="B")
        OutboxEvent.objects.filter(pk=old.pk).update(
            dispatched_at=timezone.now() - timedelta(days=40)
        )

        deleted, _ = OutboxEvent.cleanup_dispatched()

        assert deleted == 1
        assert OutboxEvent.objects.get().payload == {"customer": "B"}
