"""Stamp card entitlements.

available = max(0, floor(paid_quantity / buy_quantity) - stamps_used)

paid_quantity counts only non-free purchased units matching the rule's
product/category filter; StampUsage rows supply stamps_used.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from perkman.money import to_money


@dataclass(frozen=True)
class FreeProduct:
    """Product handed out when a stamp is redeemed."""

    code: str
    name: str
    category: str
    price: Decimal


@dataclass(frozen=True)
class StampRule:
    """Validated Buy X Get Y configuration of a stamp campaign."""

    campaign_code: str
    campaign_name: str
    buy_quantity: int
    get_quantity: int
    product_codes: frozenset[str]
    categories: frozenset[str]
    free_product: FreeProduct
    max_per_customer: int | None = None

    @property
    def matches_everything(self) -> bool:
        return not self.product_codes and not self.categories

    def matches(self, product_code: str, category: str = "") -> bool:
        """Whether a purchased product counts toward this card."""
        if self.matches_everything:
            return True
        return product_code in self.product_codes or (
            bool(category) and category in self.categories
        )

    @property
    def reward_value(self) -> Decimal:
        """Catalog value of one redemption."""
        return to_money(self.free_product.price * self.get_quantity)


@dataclass(frozen=True)
class Entitlement:
    """Currently available free-item credit for one stamp campaign."""

    campaign_code: str
    campaign_name: str
    available: int
    stamps_earned: int
    stamps_used: int
    total_purchased: int
    progress_to_next: int
    remaining_for_next: int
    can_earn_more: bool
    free_product: FreeProduct
    value: Decimal

    def as_dict(self) -> dict:
        return {
            "campaignId": self.campaign_code,
            "campaignName": self.campaign_name,
            "available": self.available,
            "stampsEarned": self.stamps_earned,
            "stampsUsed": self.stamps_used,
            "totalPurchased": self.total_purchased,
            "progressToNext": self.progress_to_next,
            "remainingForNextStamp": self.remaining_for_next,
            "canEarnMore": self.can_earn_more,
            "freeProduct": {
                "productId": self.free_product.code,
                "name": self.free_product.name,
                "price": self.free_product.price,
            },
            "value": self.value,
        }


def compute_entitlement(rule: StampRule, paid_quantity: int, stamps_used: int) -> Entitlement:
    """
    Derive stamp availability from purchase history counts.

    Args:
        rule: Stamp campaign rule
        paid_quantity: Qualifying non-free units purchased since the campaign start
        stamps_used: Stamps already redeemed for this campaign

    Returns:
        Entitlement (available is never negative)
    """
    paid_quantity = max(0, paid_quantity)
    earned = paid_quantity // rule.buy_quantity
    progress = paid_quantity % rule.buy_quantity
    can_earn_more = rule.max_per_customer is None or earned < rule.max_per_customer

    return Entitlement(
        campaign_code=rule.campaign_code,
        campaign_name=rule.campaign_name,
        available=max(0, earned - stamps_used),
        stamps_earned=earned,
        stamps_used=stamps_used,
        total_purchased=paid_quantity,
        progress_to_next=progress,
        remaining_for_next=(rule.buy_quantity - progress) if can_earn_more else 0,
        can_earn_more=can_earn_more,
        free_product=rule.free_product,
        value=rule.reward_value,
    )
