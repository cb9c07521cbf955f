"""Reservation store - single-use, time-boxed tokens for priced orders."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.db.models import Q
from django.utils import timezone

from perkman.conf import perkman_settings
from perkman.models import Customer, Reservation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationInfo:
    """Non-destructive view of a token."""

    status: str  # valid | expired | consumed | unknown
    expires_at: datetime | None = None
    expires_in_seconds: int = 0
    customer_code: str = ""

    @property
    def valid(self) -> bool:
        return self.status == "valid"

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "valid": self.valid,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "expiresInSeconds": self.expires_in_seconds,
            "customerId": self.customer_code or None,
        }


class ReservationStore:
    """
    Database-backed reservation store.

    consume() is one conditional UPDATE, so exactly one caller can win a
    token no matter how many processes race on it.
    """

    @classmethod
    def create(cls, customer: Customer, payload: dict, now=None) -> Reservation:
        """Store a payload behind a fresh random token."""
        now = now or timezone.now()
        reservation = Reservation.objects.create(
            token=secrets.token_urlsafe(32),
            customer=customer,
            payload=payload,
            created_at=now,
            expires_at=now + timedelta(seconds=perkman_settings.RESERVATION_TTL_SECONDS),
        )
        logger.info(
            "Reservation created for %s (expires %s)",
            customer.code, reservation.expires_at.isoformat(),
        )
        return reservation

    @classmethod
    def consume(cls, token: str, now=None) -> dict | None:
        """
        Claim a token and return its payload.

        Returns:
            The payload for the single winning caller; None when the token is
            unknown, expired or already consumed.
        """
        if not token:
            return None
        now = now or timezone.now()
        won = Reservation.objects.filter(
            token=token,
            consumed_at__isnull=True,
            expires_at__gt=now,
        ).update(consumed_at=now)
        if won != 1:
            logger.info("Reservation consume rejected (%s...)", token[:8])
            return None

        logger.info("Reservation consumed (%s...)", token[:8])
        return Reservation.objects.values_list("payload", flat=True).get(token=token)

    @classmethod
    def peek(cls, token: str, now=None) -> ReservationInfo:
        """Status of a token. Never mutates."""
        now = now or timezone.now()
        reservation = (
            Reservation.objects.select_related("customer").filter(token=token).first()
            if token
            else None
        )
        if reservation is None:
            return ReservationInfo(status="unknown")

        if reservation.consumed_at is not None:
            status = "consumed"
        elif reservation.expires_at <= now:
            status = "expired"
        else:
            status = "valid"

        remaining = int((reservation.expires_at - now).total_seconds())
        return ReservationInfo(
            status=status,
            expires_at=reservation.expires_at,
            expires_in_seconds=max(0, remaining) if status == "valid" else 0,
            customer_code=reservation.customer.code,
        )

    @classmethod
    def invalidate(cls, token: str, now=None) -> bool:
        """Cancel an unconsumed token. Returns True if it was still open."""
        now = now or timezone.now()
        return bool(
            Reservation.objects.filter(token=token, consumed_at__isnull=True).update(
                consumed_at=now
            )
        )

    @classmethod
    def purge(cls, now=None) -> int:
        """Delete consumed or expired reservations past the retention window."""
        now = now or timezone.now()
        cutoff = now - timedelta(hours=perkman_settings.RESERVATION_RETENTION_HOURS)
        deleted, _ = Reservation.objects.filter(
            Q(consumed_at__lt=cutoff) | Q(expires_at__lt=cutoff)
        ).delete()
        return deleted
