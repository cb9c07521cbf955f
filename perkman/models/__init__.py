"""Perkman models."""

from perkman.models.tier import Tier, TierHistory
from perkman.models.customer import Customer
from perkman.models.product import Product
from perkman.models.campaign import (
    Campaign,
    CampaignType,
    CampaignUsage,
    DiscountType,
    StampUsage,
)
from perkman.models.reward import CustomerReward, Reward, RewardType
from perkman.models.order import AppliedCampaign, Order, OrderItem, OrderStatus
from perkman.models.ledger import (
    EntrySource,
    EntryType,
    LedgerImmutableError,
    PointLedgerEntry,
)
from perkman.models.reservation import Reservation
from perkman.models.outbox import EventType, OutboxEvent

__all__ = [
    # Customers and tiers
    "Customer",
    "Tier",
    "TierHistory",
    # Catalog and campaigns
    "Product",
    "Campaign",
    "CampaignType",
    "DiscountType",
    "CampaignUsage",
    "StampUsage",
    # Rewards
    "Reward",
    "RewardType",
    "CustomerReward",
    # Orders
    "Order",
    "OrderItem",
    "OrderStatus",
    "AppliedCampaign",
    # Point ledger
    "PointLedgerEntry",
    "EntryType",
    "EntrySource",
    "LedgerImmutableError",
    # Reservations and outbox
    "Reservation",
    "OutboxEvent",
    "EventType",
]
