"""Point ledger service - the only writer of Customer.points."""

import logging
from datetime import datetime

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from perkman.exceptions import PerkmanError
from perkman.models import Customer, EntrySource, EntryType, PointLedgerEntry

logger = logging.getLogger(__name__)


class PointLedger:
    """
    Append-only point ledger.

    Every balance change is a new PointLedgerEntry carrying the resulting
    balance. append() MUST run inside transaction.atomic() with the
    customer row locked (select_for_update), which the checkout commit does.
    """

    @classmethod
    def append(
        cls,
        customer: Customer,
        amount: int,
        entry_type: str,
        source: str,
        reference: str = "",
        description: str = "",
        expires_at: datetime | None = None,
    ) -> PointLedgerEntry:
        """
        Apply a signed amount to the customer's balance and record it.

        Args:
            customer: Locked customer row (mutated in place and saved)
            amount: Signed points delta (non-zero)
            entry_type: EntryType value
            source: EntrySource value
            reference: External reference (ex: order:ORD-1)
            description: Human readable reason
            expires_at: Expiry of earned points

        Returns:
            Created PointLedgerEntry

        Raises:
            PerkmanError: INVALID_POINTS if amount is 0,
                LEDGER_NEGATIVE_BALANCE if the balance would go below zero
        """
        if not amount:
            raise PerkmanError("INVALID_POINTS", message="Ledger amount cannot be zero")

        balance_after = customer.points + amount
        if balance_after < 0:
            raise PerkmanError(
                "LEDGER_NEGATIVE_BALANCE",
                customer_code=customer.code,
                balance=customer.points,
                amount=amount,
            )

        customer.points = balance_after
        customer.save(update_fields=["points", "updated_at"])

        return PointLedgerEntry.objects.create(
            customer=customer,
            amount=amount,
            entry_type=entry_type,
            source=source,
            reference=reference,
            balance_after=balance_after,
            expires_at=expires_at,
            description=description[:200],
        )

    @classmethod
    def balance(cls, customer: Customer) -> int:
        """Sum of all ledger amounts for the customer."""
        total = PointLedgerEntry.objects.filter(customer=customer).aggregate(
            total=Sum("amount")
        )["total"]
        return total or 0

    @classmethod
    def verify(cls, customer: Customer) -> bool:
        """Whether the ledger sum matches the stored balance."""
        customer.refresh_from_db(fields=["points"])
        ok = cls.balance(customer) == customer.points
        if not ok:
            logger.error(
                "Ledger mismatch for %s: ledger=%s stored=%s",
                customer.code, cls.balance(customer), customer.points,
            )
        return ok

    @classmethod
    def history(cls, customer_code: str, limit: int = 50) -> list[PointLedgerEntry]:
        """Most recent entries first."""
        return list(
            PointLedgerEntry.objects.filter(customer__code=customer_code)[:limit]
        )

    @classmethod
    def expire_due(cls, customer_code: str, now=None) -> PointLedgerEntry | None:
        """
        Expire earned points whose lots are past their expiry date.

        Spending consumes the oldest lots first, so the amount still
        outstanding in lots expiring by ``now`` is their total minus every
        spend and previous expiry. Refunds give spent points back and so
        reduce the spends. A cancellation revokes the lot of its own order
        rather than the oldest one: it only counts against the due lots when
        that order's lot is itself due. The expired amount never exceeds the
        balance.

        Returns:
            The EXPIRED entry, or None when nothing was due
        """
        now = now or timezone.now()

        with transaction.atomic():
            try:
                customer = Customer.objects.select_for_update().get(code=customer_code)
            except Customer.DoesNotExist:
                raise PerkmanError("CUSTOMER_NOT_FOUND", customer_code=customer_code)

            entries = PointLedgerEntry.objects.filter(customer=customer)
            revocations = entries.filter(
                entry_type=EntryType.ADJUSTED, source=EntrySource.CANCELLATION
            )
            refunds = entries.filter(entry_type=EntryType.ADJUSTED, source=EntrySource.REFUND)
            lots = entries.filter(
                amount__gt=0,
                entry_type=EntryType.EARNED,
                expires_at__lte=now,
            )

            due_lots = lots.aggregate(total=Sum("amount"))["total"] or 0
            revoked = revocations.filter(
                reference__in=lots.exclude(reference="").values("reference")
            ).aggregate(total=Sum("amount"))["total"] or 0
            debits = entries.filter(amount__lt=0).exclude(
                pk__in=revocations.values("pk")
            ).aggregate(total=Sum("amount"))["total"] or 0
            refunded = refunds.filter(amount__gt=0).aggregate(
                total=Sum("amount")
            )["total"] or 0

            outstanding = due_lots + revoked + min(debits + refunded, 0)
            to_expire = min(outstanding, customer.points)
            if to_expire <= 0:
                return None

            entry = cls.append(
                customer,
                -to_expire,
                EntryType.EXPIRED,
                EntrySource.EXPIRATION,
                description=f"{to_expire} points expired",
            )

        logger.info("Expired %s points for %s", to_expire, customer_code)
        return entry
