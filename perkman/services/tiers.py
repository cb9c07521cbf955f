"""Tier service - automatic upgrades after a commit."""

import logging

from django.db import transaction

from perkman.exceptions import PerkmanError
from perkman.models import Customer, EventType, Tier, TierHistory
from perkman.protocols.tiers import TierChange
from perkman.services.events import EventService

logger = logging.getLogger(__name__)


class TierService:
    """
    Default TierBackend.

    Picks the highest-level active tier whose thresholds the customer
    meets. Tiers are only upgraded here, never downgraded.
    """

    @classmethod
    def qualifying_tier(cls, customer: Customer) -> Tier | None:
        for tier in Tier.objects.filter(is_active=True).order_by("-level"):
            if tier.is_met_by(customer):
                return tier
        return None

    @classmethod
    def check_and_upgrade(
        cls,
        customer_code: str,
        reason: str = "",
        triggered_by: str = "system",
    ) -> TierChange | None:
        """
        Upgrade the customer if they qualify for a higher tier.

        Returns:
            TierChange, or None when the tier is unchanged

        Raises:
            PerkmanError: CUSTOMER_NOT_FOUND
        """
        with transaction.atomic():
            try:
                customer = (
                    Customer.objects.select_for_update()
                    .select_related("tier")
                    .get(code=customer_code)
                )
            except Customer.DoesNotExist:
                raise PerkmanError("CUSTOMER_NOT_FOUND", customer_code=customer_code)

            target = cls.qualifying_tier(customer)
            current = customer.tier
            if target is None or (current is not None and target.level <= current.level):
                return None

            customer.tier = target
            customer.save(update_fields=["tier", "updated_at"])
            TierHistory.objects.create(
                customer=customer,
                from_tier=current,
                to_tier=target,
                reason=reason or "Automatic upgrade",
                triggered_by=triggered_by,
            )

            change = TierChange(
                customer_code=customer.code,
                from_tier=current.code if current else None,
                to_tier=target.code,
                to_tier_name=target.name,
                point_multiplier=target.point_multiplier,
            )
            EventService.publish(
                EventType.TIER_CHANGED,
                customer=customer.code,
                from_tier=change.from_tier,
                to_tier=change.to_tier,
                reason=reason,
            )

        logger.info("Customer %s upgraded to tier %s", customer_code, target.code)
        return change
