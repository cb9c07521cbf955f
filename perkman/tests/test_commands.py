"""Tests for management commands."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from perkman.models import EntryType, EventType, OutboxEvent, PointLedgerEntry, Reservation
from perkman.services.events import EventService
from perkman.services.reservations import ReservationStore

pytestmark = pytest.mark.django_db


def run(name, *args):
    out = StringIO()
    call_command(name, *args, stdout=out)
    return out.getvalue()


class TestCleanupCommand:
    """perkman_cleanup"""

    def test_purges_reservations_and_events(self, customer):
        ReservationStore.create(customer, {}, now=timezone.now() - timedelta(days=2))
        ReservationStore.create(customer, {})
        event = EventService.publish(EventType.SEGMENT_RECOMPUTE, customer="CUST-001")
        OutboxEvent.objects.filter(pk=event.pk).update(
            dispatched_at=timezone.now() - timedelta(days=3)
        )

        output = run("perkman_cleanup", "--event-days", "1")

        assert "Deleted 1 reservations and 1 dispatched events." in output
        assert Reservation.objects.count() == 1
        assert not OutboxEvent.objects.exists()


class TestExpirePointsCommand:
    """perkman_expire_points"""

    def test_expires_due_points(self, customer, customer_b, grant_points):
        past = timezone.now() - timedelta(days=1)
        grant_points(customer, 40, expires_at=past)
        grant_points(customer_b, 60, expires_at=timezone.now() + timedelta(days=10))

        output = run("perkman_expire_points")

        assert "Expired 40 points for 1 customers." in output
        customer.refresh_from_db()
        customer_b.refresh_from_db()
        assert (customer.points, customer_b.points) == (0, 60)
        assert PointLedgerEntry.objects.filter(entry_type=EntryType.EXPIRED).count() == 1

    def test_single_customer(self, customer, customer_b, grant_points):
        past = timezone.now() - timedelta(days=1)
        grant_points(customer, 40, expires_at=past)
        grant_points(customer_b, 60, expires_at=past)

        output = run("perkman_expire_points", "--customer", "CUST-002")

        assert "Expired 60 points for 1 customers." in output
        customer.refresh_from_db()
        assert customer.points == 40


class TestDispatchEventsCommand:
    """perkman_dispatch_events"""

    def test_dispatches(self):
        EventService.publish(EventType.SEGMENT_RECOMPUTE, customer="A")
        EventService.publish(EventType.SEGMENT_RECOMPUTE, customer="B")

        output = run("perkman_dispatch_events", "--limit", "1")

        assert "Dispatched 1 events." in output
        assert OutboxEvent.objects.filter(dispatched_at__isnull=True).count() == 1
