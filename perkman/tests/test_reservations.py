"""Tests for the reservation store."""

import threading
from datetime import timedelta

import pytest
from django.db import connection
from django.test import override_settings
from django.utils import timezone

from perkman.models import Customer, Reservation
from perkman.services.reservations import ReservationStore

pytestmark = pytest.mark.django_db


class TestCreateAndConsume:
    """Single-use semantics."""

    def test_consume_returns_payload_once(self, customer):
        reservation = ReservationStore.create(customer, {"final_amount": "12.50"})

        assert ReservationStore.consume(reservation.token) == {"final_amount": "12.50"}
        assert ReservationStore.consume(reservation.token) is None

    def test_tokens_are_unique_and_opaque(self, customer):
        first = ReservationStore.create(customer, {})
        second = ReservationStore.create(customer, {})

        assert first.token != second.token
        assert len(first.token) >= 32
        assert customer.code not in first.token

    def test_expiry_from_settings(self, customer):
        now = timezone.now()

        with override_settings(PERKMAN={"RESERVATION_TTL_SECONDS": 60}):
            reservation = ReservationStore.create(customer, {}, now=now)

        assert reservation.expires_at == now + timedelta(seconds=60)

    def test_expired_token_not_consumable(self, customer):
        now = timezone.now()
        reservation = ReservationStore.create(customer, {}, now=now)

        later = now + timedelta(seconds=901)

        assert ReservationStore.consume(reservation.token, now=later) is None
        reservation.refresh_from_db()
        assert reservation.consumed_at is None

    def test_unknown_and_empty_tokens(self, customer):
        assert ReservationStore.consume("nope") is None
        assert ReservationStore.consume("") is None


class TestPeek:
    """Diagnostics never consume."""

    def test_valid(self, customer):
        reservation = ReservationStore.create(customer, {})

        info = ReservationStore.peek(reservation.token)

        assert info.status == "valid"
        assert info.valid is True
        assert 0 < info.expires_in_seconds <= 900
        assert info.customer_code == "CUST-001"
        # Still consumable
        assert ReservationStore.consume(reservation.token) == {}

    def test_consumed(self, customer):
        reservation = ReservationStore.create(customer, {})
        ReservationStore.consume(reservation.token)

        info = ReservationStore.peek(reservation.token)

        assert info.status == "consumed"
        assert info.valid is False
        assert info.expires_in_seconds == 0

    def test_expired(self, customer):
        now = timezone.now()
        reservation = ReservationStore.create(customer, {}, now=now)

        info = ReservationStore.peek(reservation.token, now=now + timedelta(hours=1))

        assert info.status == "expired"

    def test_unknown(self, db):
        info = ReservationStore.peek("missing")

        assert info.status == "unknown"
        assert info.as_dict()["customerId"] is None


class TestInvalidateAndPurge:
    """Invalidation and cleanup."""

    def test_invalidate(self, customer):
        reservation = ReservationStore.create(customer, {})

        assert ReservationStore.invalidate(reservation.token) is True
        assert ReservationStore.invalidate(reservation.token) is False
        assert ReservationStore.consume(reservation.token) is None

    def test_purge_removes_old_only(self, customer):
        now = timezone.now()
        old = ReservationStore.create(customer, {}, now=now - timedelta(days=3))
        consumed = ReservationStore.create(customer, {}, now=now - timedelta(days=2))
        ReservationStore.consume(consumed.token, now=now - timedelta(days=2))
        fresh = ReservationStore.create(customer, {}, now=now)

        deleted = ReservationStore.purge(now=now)

        assert deleted == 2
        assert list(Reservation.objects.values_list("token", flat=True)) == [fresh.token]
        assert not Reservation.objects.filter(token=old.token).exists()


@pytest.mark.django_db(transaction=True)
class TestConcurrentConsume:
    """Concurrent consumers of one token."""

    def test_exactly_one_winner(self):
        customer = Customer.objects.create(code="RACE", first_name="Race")
        reservation = ReservationStore.create(customer, {"n": 1})
        threads_count = 8
        barrier = threading.Barrier(threads_count)
        results = []
        lock = threading.Lock()

        def worker():
            try:
                barrier.wait()
                payload = ReservationStore.consume(reservation.token)
                with lock:
                    results.append(payload)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == threads_count
        assert [r for r in results if r is not None] == [{"n": 1}]
