"""Event service - transactional outbox and relay to signals."""

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from perkman import signals
from perkman.conf import perkman_settings
from perkman.models import EventType, OutboxEvent

logger = logging.getLogger(__name__)


_SIGNALS = {
    EventType.POINTS_EARNED: signals.points_earned,
    EventType.POINTS_SPENT: signals.points_spent,
    EventType.TRANSACTION_COMPLETED: signals.transaction_completed,
    EventType.TRANSACTION_CANCELLED: signals.transaction_cancelled,
    EventType.MILESTONE_REACHED: signals.milestone_reached,
    EventType.TIER_CHANGED: signals.tier_changed,
    EventType.SEGMENT_RECOMPUTE: signals.segment_recompute_requested,
}


class EventService:
    """
    Outbound events.

    publish() writes an OutboxEvent in the caller's transaction, so an event
    exists if and only if the state change it describes was committed.
    dispatch_pending() relays events to receivers afterwards.
    """

    @classmethod
    def publish(cls, event_type: str, **payload) -> OutboxEvent:
        """Record an event. Call inside the transaction that causes it."""
        return OutboxEvent.objects.create(event_type=event_type, payload=payload)

    @classmethod
    def dispatch_pending(cls, limit: int = 100) -> int:
        """
        Relay undelivered events to signal receivers.

        A receiver that raises leaves the event pending (attempts and
        last_error updated); events that reached EVENT_MAX_ATTEMPTS are
        skipped. Never raises on receiver failures.

        Returns:
            Number of events marked as dispatched
        """
        max_attempts = perkman_settings.EVENT_MAX_ATTEMPTS
        pending = list(
            OutboxEvent.objects.filter(
                dispatched_at__isnull=True,
                attempts__lt=max_attempts,
            ).order_by("pk")[:limit]
        )

        dispatched = 0
        for event in pending:
            # Claim the event so concurrent relays do not double-send it
            claimed = OutboxEvent.objects.filter(
                pk=event.pk,
                dispatched_at__isnull=True,
                attempts=event.attempts,
            ).update(attempts=F("attempts") + 1)
            if not claimed:
                continue

            signal = _SIGNALS.get(event.event_type)
            if signal is None:
                logger.warning("No signal for outbox event type %s", event.event_type)
                errors = []
            else:
                responses = signal.send_robust(
                    sender=OutboxEvent, event=event, payload=event.payload
                )
                errors = [r for _, r in responses if isinstance(r, Exception)]

            if errors:
                for error in errors:
                    logger.error(
                        "Receiver failed for %s: %s", event, error, exc_info=error
                    )
                OutboxEvent.objects.filter(pk=event.pk).update(
                    last_error="; ".join(repr(e) for e in errors)[:2000]
                )
                continue

            OutboxEvent.objects.filter(pk=event.pk).update(
                dispatched_at=timezone.now(), last_error=""
            )
            dispatched += 1

        return dispatched

    @classmethod
    def dispatch_on_commit(cls) -> None:
        """Schedule a relay after the current transaction commits (if enabled)."""
        if perkman_settings.DISPATCH_EVENTS_ON_COMMIT:
            transaction.on_commit(cls.dispatch_pending)
