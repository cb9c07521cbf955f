"""Discount stacking pipeline.

Stages run in a fixed order, each on the amount left by the previous one:

    1. campaign discounts   (percentage / fixed, caps, minimum purchase)
    2. stamp redemptions    (free lines, do not touch the remaining amount)
    3. reward redemptions   (owned or bought with points)
    4. point redemption     (always last)

Every stage is a pure function PricingState -> PricingState. Points to earn
are computed on the final remaining amount.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from perkman.money import ZERO, clamp, to_money

# Values mirror perkman.models CampaignType / DiscountType / RewardType
DISCOUNT = "discount"
STAMP = "stamp"
LOYALTY_POINTS = "loyalty_points"
TIME_BASED = "time_based"
BIRTHDAY = "birthday"
COMBO = "combo"
DISCOUNT_TYPES = frozenset({DISCOUNT, TIME_BASED, BIRTHDAY, COMBO})

PERCENTAGE = "percentage"
FIXED_AMOUNT = "fixed_amount"

REWARD_DISCOUNT = "discount"

ONE = Decimal("1")


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class Notice:
    """A warning or error attached to a quote."""

    code: str
    message: str
    ref: str = ""

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "ref": self.ref}


@dataclass(frozen=True)
class OrderLine:
    """Resolved order line."""

    product_code: str
    product_name: str
    quantity: int
    unit_price: Decimal
    category: str = ""
    menu_item_key: str = ""
    is_free: bool = False
    discount_amount: Decimal = ZERO

    @property
    def total_price(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class CampaignOffer:
    """Selected campaign plus the usage counts needed to validate it."""

    code: str
    name: str
    campaign_type: str
    discount_type: str = PERCENTAGE
    discount_value: Decimal = ZERO
    min_purchase: Decimal | None = None
    point_multiplier: Decimal = ONE
    max_usage: int | None = None
    max_usage_per_customer: int | None = None
    usage_count: int = 0
    customer_usage_count: int = 0
    blocked_reason: str = ""


@dataclass(frozen=True)
class StampOffer:
    """Selected stamp redemption with the entitlement computed for it."""

    campaign_code: str
    campaign_name: str
    available: int
    product_code: str
    product_name: str
    unit_price: Decimal
    quantity: int = 1
    category: str = ""


@dataclass(frozen=True)
class RewardOffer:
    """Selected reward; owned=True when the customer holds an open grant."""

    code: str
    name: str
    reward_type: str
    value: Decimal = ZERO
    points_cost: int = 0
    owned: bool = False


def _from_dict(cls, data: dict):
    kwargs = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if value is not None and str(f.type).startswith("Decimal"):
            value = Decimal(str(value))
        kwargs[f.name] = value
    return cls(**kwargs)


@dataclass(frozen=True)
class PricingInput:
    """Everything the pipeline needs, detached from the database."""

    customer_code: str
    lines: tuple[OrderLine, ...]
    customer_points: int
    campaigns: tuple[CampaignOffer, ...] = ()
    stamps: tuple[StampOffer, ...] = ()
    rewards: tuple[RewardOffer, ...] = ()
    points_requested: int = 0
    point_value: Decimal = Decimal("0.1")
    base_point_rate: Decimal = Decimal("0.1")
    tier_multiplier: Decimal = ONE
    tier_code: str = ""
    notices: tuple[Notice, ...] = ()

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((line.total_price for line in self.lines), ZERO))

    def to_payload(self) -> dict:
        """JSON-ready dict (Decimals are encoded by DjangoJSONEncoder)."""
        return asdict(self)

    @classmethod
    def from_payload(cls, data: dict) -> PricingInput:
        return _from_dict(cls, {
            **data,
            "lines": tuple(_from_dict(OrderLine, d) for d in data.get("lines", [])),
            "campaigns": tuple(
                _from_dict(CampaignOffer, d) for d in data.get("campaigns", [])
            ),
            "stamps": tuple(_from_dict(StampOffer, d) for d in data.get("stamps", [])),
            "rewards": tuple(_from_dict(RewardOffer, d) for d in data.get("rewards", [])),
            "notices": tuple(_from_dict(Notice, d) for d in data.get("notices", [])),
        })


# =============================================================================
# Pipeline state and result
# =============================================================================


@dataclass(frozen=True)
class Discount:
    kind: str  # campaign | stamp | reward | points
    ref: str
    name: str
    amount: Decimal


@dataclass(frozen=True)
class AppliedCampaignQuote:
    code: str
    name: str
    campaign_type: str
    discount_type: str
    discount_amount: Decimal
    point_multiplier: Decimal = ONE
    points_earned: int = 0


@dataclass(frozen=True)
class StampRedemption:
    campaign_code: str
    campaign_name: str
    product_code: str
    product_name: str
    quantity: int
    value: Decimal


@dataclass(frozen=True)
class RewardRedemption:
    code: str
    name: str
    reward_type: str
    discount_amount: Decimal
    points_cost: int
    owned: bool


@dataclass(frozen=True)
class PricingState:
    """Immutable running state threaded through the stages."""

    remaining: Decimal
    points_budget: int
    discounts: tuple[Discount, ...] = ()
    free_lines: tuple[OrderLine, ...] = ()
    campaigns: tuple[AppliedCampaignQuote, ...] = ()
    stamps: tuple[StampRedemption, ...] = ()
    rewards: tuple[RewardRedemption, ...] = ()
    loyalty_multiplier: Decimal = ONE
    points_used: int = 0
    warnings: tuple[Notice, ...] = ()
    errors: tuple[Notice, ...] = ()

    def with_discount(self, discount: Discount, reduces_remaining: bool = True) -> PricingState:
        remaining = self.remaining - discount.amount if reduces_remaining else self.remaining
        return replace(self, remaining=remaining, discounts=self.discounts + (discount,))

    def warn(self, code: str, message: str, ref: str = "") -> PricingState:
        return replace(self, warnings=self.warnings + (Notice(code, message, ref),))

    def fail(self, code: str, message: str, ref: str = "") -> PricingState:
        return replace(self, errors=self.errors + (Notice(code, message, ref),))

    @property
    def total_discount(self) -> Decimal:
        return to_money(sum((d.amount for d in self.discounts), ZERO))


@dataclass(frozen=True)
class Quote:
    """Final priced order."""

    customer_code: str
    subtotal: Decimal
    lines: tuple[OrderLine, ...]
    discounts: tuple[Discount, ...]
    total_discount: Decimal
    final_amount: Decimal
    points_to_use: int
    reward_points_cost: int
    points_to_earn: int
    campaigns: tuple[AppliedCampaignQuote, ...]
    stamps: tuple[StampRedemption, ...]
    rewards: tuple[RewardRedemption, ...]
    loyalty_multiplier: Decimal
    tier_multiplier: Decimal
    base_point_rate: Decimal
    point_value: Decimal
    warnings: tuple[Notice, ...]
    errors: tuple[Notice, ...]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def points_debit(self) -> int:
        """All points leaving the balance (redemption + reward purchases)."""
        return self.points_to_use + self.reward_points_cost

    def discounts_of(self, kind: str) -> list[Discount]:
        return [d for d in self.discounts if d.kind == kind]

    @property
    def point_discount(self) -> Decimal:
        return to_money(sum((d.amount for d in self.discounts_of("points")), ZERO))


# =============================================================================
# Stages
# =============================================================================


def campaign_discount(remaining: Decimal, discount_type: str, value: Decimal) -> Decimal:
    """Discount of one campaign on the running amount; never exceeds it."""
    if discount_type == PERCENTAGE:
        return clamp(to_money(remaining * value / 100), remaining)
    if discount_type == FIXED_AMOUNT:
        return clamp(to_money(value), remaining)
    return ZERO


def apply_campaign_discounts(
    state: PricingState,
    campaigns: tuple[CampaignOffer, ...],
    subtotal: Decimal,
) -> PricingState:
    """Stage 1: campaign discounts and loyalty multipliers."""
    for offer in campaigns:
        if offer.blocked_reason:
            state = state.warn(
                offer.blocked_reason,
                f"{offer.name}: campaign is not valid right now",
                offer.code,
            )
            continue

        if offer.campaign_type == STAMP:
            state = state.warn(
                "CAMPAIGN_IS_STAMP_CARD",
                f"{offer.name}: redeem stamp campaigns as stamps",
                offer.code,
            )
            continue

        if offer.min_purchase and subtotal < offer.min_purchase:
            state = state.warn(
                "MIN_PURCHASE_NOT_MET",
                f"{offer.name}: minimum purchase not met (min: {offer.min_purchase})",
                offer.code,
            )
            continue

        if (
            offer.max_usage_per_customer is not None
            and offer.customer_usage_count >= offer.max_usage_per_customer
        ):
            state = state.warn(
                "USAGE_LIMIT_REACHED",
                f"{offer.name}: usage limit per customer reached",
                offer.code,
            )
            continue

        if offer.max_usage is not None and offer.usage_count >= offer.max_usage:
            state = state.warn(
                "USAGE_LIMIT_REACHED",
                f"{offer.name}: campaign usage limit reached",
                offer.code,
            )
            continue

        if offer.campaign_type == LOYALTY_POINTS:
            state = replace(
                state,
                loyalty_multiplier=max(state.loyalty_multiplier, offer.point_multiplier),
                campaigns=state.campaigns + (
                    AppliedCampaignQuote(
                        code=offer.code,
                        name=offer.name,
                        campaign_type=offer.campaign_type,
                        discount_type=offer.discount_type,
                        discount_amount=ZERO,
                        point_multiplier=offer.point_multiplier,
                    ),
                ),
            )
            continue

        if offer.campaign_type not in DISCOUNT_TYPES:
            state = state.warn(
                "CAMPAIGN_NOT_APPLICABLE",
                f"{offer.name}: campaign type cannot be applied to an order",
                offer.code,
            )
            continue

        amount = campaign_discount(state.remaining, offer.discount_type, offer.discount_value)
        if amount <= 0:
            state = state.warn(
                "CAMPAIGN_NO_EFFECT",
                f"{offer.name}: nothing left to discount",
                offer.code,
            )
            continue

        state = state.with_discount(Discount("campaign", offer.code, offer.name, amount))
        state = replace(
            state,
            campaigns=state.campaigns + (
                AppliedCampaignQuote(
                    code=offer.code,
                    name=offer.name,
                    campaign_type=offer.campaign_type,
                    discount_type=offer.discount_type,
                    discount_amount=amount,
                ),
            ),
        )
    return state


def apply_stamp_redemptions(
    state: PricingState,
    stamps: tuple[StampOffer, ...],
) -> PricingState:
    """Stage 2: free lines for available stamps (value counted as discount)."""
    for offer in stamps:
        if offer.available < 1:
            state = state.warn(
                "NO_STAMPS_AVAILABLE",
                f"{offer.campaign_name}: not enough stamps",
                offer.campaign_code,
            )
            continue

        value = to_money(offer.unit_price * offer.quantity)
        line = OrderLine(
            product_code=offer.product_code,
            product_name=offer.product_name,
            quantity=offer.quantity,
            unit_price=offer.unit_price,
            category=offer.category,
            is_free=True,
            discount_amount=value,
        )
        state = state.with_discount(
            Discount("stamp", offer.campaign_code, offer.product_name, value),
            reduces_remaining=False,
        )
        state = replace(
            state,
            free_lines=state.free_lines + (line,),
            stamps=state.stamps + (
                StampRedemption(
                    campaign_code=offer.campaign_code,
                    campaign_name=offer.campaign_name,
                    product_code=offer.product_code,
                    product_name=offer.product_name,
                    quantity=offer.quantity,
                    value=value,
                ),
            ),
        )
    return state


def apply_reward_redemptions(
    state: PricingState,
    rewards: tuple[RewardOffer, ...],
) -> PricingState:
    """Stage 3: owned rewards, or rewards bought from the points budget."""
    for offer in rewards:
        if offer.owned:
            cost = 0
        elif offer.points_cost > 0 and state.points_budget >= offer.points_cost:
            cost = offer.points_cost
        else:
            state = state.warn(
                "REWARD_UNAVAILABLE",
                f"{offer.name}: reward not owned and not enough points",
                offer.code,
            )
            continue

        amount = ZERO
        if offer.reward_type == REWARD_DISCOUNT:
            amount = clamp(to_money(offer.value), state.remaining)
            state = state.with_discount(Discount("reward", offer.code, offer.name, amount))

        state = replace(
            state,
            points_budget=state.points_budget - cost,
            rewards=state.rewards + (
                RewardRedemption(
                    code=offer.code,
                    name=offer.name,
                    reward_type=offer.reward_type,
                    discount_amount=amount,
                    points_cost=cost,
                    owned=offer.owned,
                ),
            ),
        )
    return state


def apply_point_redemption(
    state: PricingState,
    points_requested: int,
    point_value: Decimal,
) -> PricingState:
    """
    Stage 4: spend points on what remains.

    Requesting more than the available budget is an error; the request is
    never silently reduced.
    """
    if points_requested <= 0:
        return state

    if points_requested > state.points_budget:
        return state.fail(
            "INSUFFICIENT_POINTS",
            f"Insufficient points. Available: {state.points_budget}, "
            f"requested: {points_requested}",
        )

    applied = clamp(to_money(points_requested * point_value), state.remaining)
    used = int((applied / point_value).to_integral_value(rounding=ROUND_CEILING))
    if applied > 0:
        state = state.with_discount(
            Discount("points", "", f"Points ({used})", applied)
        )
    return replace(
        state,
        points_used=used,
        points_budget=state.points_budget - used,
    )


def compute_points_to_earn(
    final_amount: Decimal,
    base_point_rate: Decimal,
    tier_multiplier: Decimal = ONE,
    loyalty_multiplier: Decimal = ONE,
) -> int:
    """floor(final * base rate * tier multiplier * loyalty multiplier)."""
    raw = final_amount * base_point_rate * tier_multiplier * loyalty_multiplier
    return max(0, int(raw.to_integral_value(rounding=ROUND_FLOOR)))


def price_order(pricing: PricingInput) -> Quote:
    """Run the four stages in order and compute the point impact."""
    subtotal = pricing.subtotal
    state = PricingState(
        remaining=subtotal,
        points_budget=pricing.customer_points,
        warnings=pricing.notices,
    )
    state = apply_campaign_discounts(state, pricing.campaigns, subtotal)
    state = apply_stamp_redemptions(state, pricing.stamps)
    state = apply_reward_redemptions(state, pricing.rewards)
    state = apply_point_redemption(state, pricing.points_requested, pricing.point_value)

    final_amount = to_money(max(ZERO, state.remaining))
    points_to_earn = compute_points_to_earn(
        final_amount,
        pricing.base_point_rate,
        pricing.tier_multiplier,
        state.loyalty_multiplier,
    )

    campaigns = tuple(
        replace(
            c,
            points_earned=compute_points_to_earn(
                final_amount, pricing.base_point_rate, c.point_multiplier - ONE
            ),
        )
        if c.campaign_type == LOYALTY_POINTS
        else c
        for c in state.campaigns
    )

    return Quote(
        customer_code=pricing.customer_code,
        subtotal=subtotal,
        lines=pricing.lines + state.free_lines,
        discounts=state.discounts,
        total_discount=state.total_discount,
        final_amount=final_amount,
        points_to_use=state.points_used,
        reward_points_cost=sum(r.points_cost for r in state.rewards),
        points_to_earn=points_to_earn,
        campaigns=campaigns,
        stamps=state.stamps,
        rewards=state.rewards,
        loyalty_multiplier=state.loyalty_multiplier,
        tier_multiplier=pricing.tier_multiplier,
        base_point_rate=pricing.base_point_rate,
        point_value=pricing.point_value,
        warnings=state.warnings,
        errors=state.errors,
    )
