"""
Pricing service - eligibility listing and preview of an order.

Loads the customer, catalog lines and selections, turns them into a
PricingInput, runs the pure stacking pipeline and stores the result behind
a reservation token. Preview never writes anything except the reservation.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db.models import Count, Q
from django.utils import timezone

from perkman.adapters import get_catalog_backend
from perkman.conf import perkman_settings
from perkman.engine.entitlements import Entitlement
from perkman.engine.stacking import (
    CampaignOffer,
    Notice,
    PricingInput,
    Quote,
    RewardOffer,
    StampOffer,
    compute_points_to_earn,
    price_order,
)
from perkman.exceptions import CampaignConfigError, PerkmanError
from perkman.models import (
    Campaign,
    CampaignType,
    CampaignUsage,
    Customer,
    CustomerReward,
    OrderStatus,
    Reservation,
    Reward,
)
from perkman.money import ZERO, clamp, to_money
from perkman.protocols.catalog import ItemRequest
from perkman.services.entitlements import EntitlementService
from perkman.services.reservations import ReservationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selections:
    """What the customer asked to apply."""

    campaign_codes: tuple[str, ...] = ()
    stamp_codes: tuple[str, ...] = ()
    reward_codes: tuple[str, ...] = ()
    points: int = 0


@dataclass
class Preview:
    """Result of PricingService.preview()."""

    customer: Customer
    pricing: PricingInput
    quote: Quote
    reservation: Reservation


@dataclass
class Eligibility:
    """Result of PricingService.prepare()."""

    customer: Customer
    campaigns: tuple[CampaignOffer, ...]
    stamps: list[Entitlement]
    rewards: tuple[RewardOffer, ...]
    subtotal: Decimal
    max_point_discount: Decimal
    points_to_earn: int
    warnings: list[Notice] = field(default_factory=list)


def _unique(codes) -> tuple[str, ...]:
    return tuple(dict.fromkeys(c for c in codes if c))


class PricingService:
    """
    Builds pricing inputs from the database.

    The offer builders are shared with the checkout commit, which calls
    them again with lock=True inside its transaction.
    """

    @classmethod
    def preview(
        cls,
        customer_code: str,
        items: list[ItemRequest],
        selections: Selections,
        now=None,
    ) -> Preview:
        """
        Price an order and reserve the result.

        Args:
            customer_code: Customer code
            items: Requested items
            selections: Campaigns, stamps, rewards and points to apply
            now: Clock override

        Returns:
            Preview with the quote and its reservation

        Raises:
            PerkmanError: CUSTOMER_NOT_FOUND, INVALID_REQUEST
        """
        now = now or timezone.now()
        if not items:
            raise PerkmanError("INVALID_REQUEST", message="At least one item is required")

        customer = cls.get_customer(customer_code)
        lines = tuple(get_catalog_backend().resolve(items))

        campaigns, campaign_notices = cls.campaign_offers(
            customer, selections.campaign_codes, now
        )
        stamps, stamp_notices = cls.stamp_offers(customer, selections.stamp_codes, now)
        rewards, reward_notices = cls.reward_offers(customer, selections.reward_codes, now)

        pricing = PricingInput(
            customer_code=customer.code,
            lines=lines,
            customer_points=customer.points,
            campaigns=campaigns,
            stamps=stamps,
            rewards=rewards,
            points_requested=selections.points,
            point_value=perkman_settings.POINT_VALUE,
            base_point_rate=perkman_settings.BASE_POINT_RATE,
            tier_multiplier=customer.point_multiplier,
            tier_code=customer.tier.code if customer.tier_id else "",
            notices=campaign_notices + stamp_notices + reward_notices,
        )
        quote = price_order(pricing)

        reservation = ReservationStore.create(
            customer,
            {
                "input": pricing.to_payload(),
                "errors": [e.as_dict() for e in quote.errors],
                "final_amount": quote.final_amount,
                "points_to_use": quote.points_to_use,
                "reward_points_cost": quote.reward_points_cost,
                "points_to_earn": quote.points_to_earn,
            },
            now=now,
        )

        for warning in quote.warnings:
            logger.info("Preview warning for %s: %s", customer.code, warning.code)
        return Preview(
            customer=customer,
            pricing=pricing,
            quote=quote,
            reservation=reservation,
        )

    @classmethod
    def prepare(
        cls,
        customer_code: str,
        items: list[ItemRequest] | None = None,
        now=None,
    ) -> Eligibility:
        """
        List what the customer could apply before anything is selected.

        Campaigns are filtered by window, day, hour and usage caps, and by
        minimum purchase when items are given. Rewards are the customer's
        open grants plus those affordable with the current balance. Nothing
        is reserved.

        Raises:
            PerkmanError: CUSTOMER_NOT_FOUND
        """
        now = now or timezone.now()
        customer = cls.get_customer(customer_code)
        lines = tuple(get_catalog_backend().resolve(items)) if items else ()
        subtotal = to_money(sum((line.total_price for line in lines), ZERO))

        codes = Campaign.objects.filter(is_active=True).exclude(
            campaign_type=CampaignType.STAMP
        ).order_by("pk").values_list("code", flat=True)
        offers, _ = cls.campaign_offers(customer, codes, now)
        campaigns = tuple(o for o in offers if cls._eligible(o, subtotal if lines else None))

        stamps, warnings = EntitlementService.for_customer(customer.code, now)

        owned = CustomerReward.objects.redeemable(now).filter(
            customer=customer, reward__is_active=True
        ).order_by("pk").values_list("reward__code", flat=True)
        affordable = Reward.objects.filter(
            is_active=True, points_cost__gt=0, points_cost__lte=customer.points
        ).values_list("code", flat=True)
        rewards, _ = cls.reward_offers(customer, [*owned, *affordable], now)

        max_point_discount = to_money(customer.points * perkman_settings.POINT_VALUE)
        if lines:
            max_point_discount = clamp(max_point_discount, subtotal)

        return Eligibility(
            customer=customer,
            campaigns=campaigns,
            stamps=stamps,
            rewards=rewards,
            subtotal=subtotal,
            max_point_discount=max_point_discount,
            points_to_earn=compute_points_to_earn(
                subtotal, perkman_settings.BASE_POINT_RATE, customer.point_multiplier
            ),
            warnings=warnings,
        )

    @classmethod
    def _eligible(cls, offer: CampaignOffer, subtotal: Decimal | None) -> bool:
        if offer.blocked_reason:
            return False
        if subtotal is not None and offer.min_purchase and subtotal < offer.min_purchase:
            return False
        if (
            offer.max_usage_per_customer is not None
            and offer.customer_usage_count >= offer.max_usage_per_customer
        ):
            return False
        return offer.max_usage is None or offer.usage_count < offer.max_usage

    @classmethod
    def get_customer(cls, customer_code: str, lock: bool = False) -> Customer:
        qs = Customer.objects.select_related("tier")
        if lock:
            qs = qs.select_for_update()
        try:
            return qs.get(code=customer_code, is_active=True)
        except Customer.DoesNotExist:
            raise PerkmanError("CUSTOMER_NOT_FOUND", customer_code=customer_code)

    # ======================================================================
    # Offer builders
    # ======================================================================

    @classmethod
    def campaign_offers(
        cls,
        customer: Customer,
        codes,
        now,
        lock: bool = False,
    ) -> tuple[tuple[CampaignOffer, ...], tuple[Notice, ...]]:
        """Selected campaigns with fresh usage counts (COMPLETED orders only)."""
        codes = _unique(codes)
        if not codes:
            return (), ()

        qs = Campaign.objects.filter(code__in=codes)
        if lock:
            qs = qs.select_for_update()
        found = {c.code: c for c in qs.order_by("pk")}

        counts = {
            row["campaign__code"]: row
            for row in CampaignUsage.objects.filter(
                campaign__code__in=list(found), order__status=OrderStatus.COMPLETED
            )
            .values("campaign__code")
            .annotate(
                total=Count("pk"),
                mine=Count("pk", filter=Q(customer=customer)),
            )
        }

        offers, notices = [], []
        for code in codes:
            campaign = found.get(code)
            if campaign is None:
                notices.append(Notice("CAMPAIGN_NOT_FOUND", f"Unknown campaign: {code}", code))
                continue
            usage = counts.get(code, {})
            offers.append(
                CampaignOffer(
                    code=campaign.code,
                    name=campaign.name,
                    campaign_type=campaign.campaign_type,
                    discount_type=campaign.discount_type,
                    discount_value=campaign.discount_value,
                    min_purchase=campaign.min_purchase,
                    point_multiplier=campaign.point_multiplier,
                    max_usage=campaign.max_usage,
                    max_usage_per_customer=campaign.max_usage_per_customer,
                    usage_count=usage.get("total", 0),
                    customer_usage_count=usage.get("mine", 0),
                    blocked_reason=campaign.blocked_reason(now, customer),
                )
            )
        return tuple(offers), tuple(notices)

    @classmethod
    def stamp_offers(
        cls,
        customer: Customer,
        codes,
        now,
    ) -> tuple[tuple[StampOffer, ...], tuple[Notice, ...]]:
        """Stamp redemptions with their current entitlement."""
        codes = _unique(codes)
        if not codes:
            return (), ()

        found = {c.code: c for c in Campaign.objects.filter(code__in=codes)}
        offers, notices = [], []
        for code in codes:
            campaign = found.get(code)
            if campaign is None or campaign.campaign_type != CampaignType.STAMP:
                notices.append(
                    Notice("STAMP_CAMPAIGN_NOT_FOUND", f"Unknown stamp campaign: {code}", code)
                )
                continue
            if not campaign.is_running(now):
                notices.append(
                    Notice(
                        "CAMPAIGN_NOT_RUNNING",
                        f"{campaign.name}: campaign is not valid right now",
                        code,
                    )
                )
                continue
            try:
                entitlement = EntitlementService.for_campaign(customer, campaign, now)
            except CampaignConfigError as exc:
                logger.warning("Skipping stamp campaign %s: %s", code, exc.message)
                notices.append(Notice(exc.code, f"{campaign.name}: {exc.message}", code))
                continue

            free = entitlement.free_product
            offers.append(
                StampOffer(
                    campaign_code=campaign.code,
                    campaign_name=campaign.name,
                    available=entitlement.available,
                    product_code=free.code,
                    product_name=free.name,
                    unit_price=free.price,
                    quantity=campaign.get_quantity,
                    category=free.category,
                )
            )
        return tuple(offers), tuple(notices)

    @classmethod
    def reward_offers(
        cls,
        customer: Customer,
        codes,
        now,
        lock: bool = False,
    ) -> tuple[tuple[RewardOffer, ...], tuple[Notice, ...]]:
        """
        Selected rewards, owned when an open grant exists.

        A reward without an open grant is offered for purchase with points
        when it has a points cost.
        """
        codes = _unique(codes)
        if not codes:
            return (), ()

        found = {r.code: r for r in Reward.objects.filter(code__in=codes, is_active=True)}
        grants = CustomerReward.objects.redeemable(now).filter(
            customer=customer, reward__code__in=list(found)
        )
        if lock:
            grants = grants.select_for_update()
        owned = {g.reward.code for g in grants.select_related("reward")}

        offers, notices = [], []
        for code in codes:
            reward = found.get(code)
            if reward is None:
                notices.append(Notice("REWARD_NOT_FOUND", f"Unknown reward: {code}", code))
                continue
            offers.append(
                RewardOffer(
                    code=reward.code,
                    name=reward.name,
                    reward_type=reward.reward_type,
                    value=reward.value,
                    points_cost=reward.points_cost,
                    owned=code in owned,
                )
            )
        return tuple(offers), tuple(notices)
