"""Tier protocol - re-evaluation of a customer's loyalty level."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class TierChange:
    """Result of an upgrade."""

    customer_code: str
    from_tier: str | None
    to_tier: str
    to_tier_name: str
    point_multiplier: Decimal

    def as_dict(self) -> dict:
        return {
            "type": "TIER_UPGRADE",
            "fromTier": self.from_tier,
            "toTier": self.to_tier,
            "message": f"Upgraded to {self.to_tier_name}",
            "reward": f"{self.point_multiplier}x points",
        }


@runtime_checkable
class TierBackend(Protocol):
    """
    Protocol for tier re-evaluation after a commit.

    Configuration in settings.py:
        PERKMAN = {
            "TIER_BACKEND": "perkman.services.tiers.TierService",
        }
    """

    def check_and_upgrade(self, customer_code: str, reason: str = "") -> TierChange | None:
        """
        Move the customer to the highest tier they qualify for.

        Returns:
            TierChange when the tier changed, None otherwise
        """
        ...
