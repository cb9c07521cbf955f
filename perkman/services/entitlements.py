"""Entitlement service - stamp card availability from purchase history."""

import logging

from django.db.models import Q, Sum
from django.utils import timezone

from perkman.engine.entitlements import Entitlement, StampRule, compute_entitlement
from perkman.engine.stacking import Notice
from perkman.exceptions import CampaignConfigError, PerkmanError
from perkman.models import (
    Campaign,
    CampaignType,
    Customer,
    OrderItem,
    OrderStatus,
    StampUsage,
)

logger = logging.getLogger(__name__)


class EntitlementService:
    """
    Read-only stamp card queries.

    Only COMPLETED orders count, both for purchased quantities and for
    redeemed stamps, so cancelling an order gives its stamps back.
    """

    @classmethod
    def paid_quantity(cls, customer: Customer, campaign: Campaign, rule: StampRule) -> int:
        """Qualifying non-free units bought since the campaign started."""
        items = OrderItem.objects.filter(
            order__customer=customer,
            order__status=OrderStatus.COMPLETED,
            is_free=False,
        )
        if campaign.starts_at:
            items = items.filter(order__created_at__gte=campaign.starts_at)
        if not rule.matches_everything:
            items = items.filter(
                Q(product_code__in=rule.product_codes) | Q(category__in=rule.categories)
            )
        return items.aggregate(total=Sum("quantity"))["total"] or 0

    @classmethod
    def stamps_used(cls, customer: Customer, campaign: Campaign) -> int:
        return StampUsage.objects.filter(
            customer=customer,
            campaign=campaign,
            order__status=OrderStatus.COMPLETED,
        ).count()

    @classmethod
    def for_campaign(cls, customer: Customer, campaign: Campaign, now=None) -> Entitlement:
        """
        Compute the entitlement of one stamp campaign.

        Raises:
            CampaignConfigError: If the campaign's stamp configuration is malformed
        """
        rule = campaign.stamp_rule()
        return compute_entitlement(
            rule,
            paid_quantity=cls.paid_quantity(customer, campaign, rule),
            stamps_used=cls.stamps_used(customer, campaign),
        )

    @classmethod
    def for_customer(
        cls,
        customer_code: str,
        now=None,
    ) -> tuple[list[Entitlement], list[Notice]]:
        """
        Entitlements for every running stamp campaign.

        A malformed campaign is skipped with a warning; the others still
        compute.

        Raises:
            PerkmanError: CUSTOMER_NOT_FOUND
        """
        now = now or timezone.now()
        try:
            customer = Customer.objects.get(code=customer_code, is_active=True)
        except Customer.DoesNotExist:
            raise PerkmanError("CUSTOMER_NOT_FOUND", customer_code=customer_code)

        campaigns = (
            Campaign.objects.filter(campaign_type=CampaignType.STAMP, is_active=True)
            .prefetch_related("target_products", "free_products")
            .order_by("pk")
        )

        entitlements, warnings = [], []
        for campaign in campaigns:
            if not campaign.is_running(now):
                continue
            try:
                entitlements.append(cls.for_campaign(customer, campaign, now))
            except CampaignConfigError as exc:
                logger.warning("Skipping stamp campaign %s: %s", campaign.code, exc.message)
                warnings.append(
                    Notice(exc.code, f"{campaign.name}: {exc.message}", campaign.code)
                )
        return entitlements, warnings
