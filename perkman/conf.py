"""
Perkman configuration.

Usage in settings.py:
    PERKMAN = {
        "RESERVATION_TTL_SECONDS": 900,
        "BASE_POINT_RATE": "0.1",
        "MILESTONES": {"TOTAL_SPENT": [100, 500]},
    }
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings


def _default_milestones() -> dict[str, list[int]]:
    return {
        "TOTAL_SPENT": [100, 500, 1000, 2500, 5000],
        "VISIT_COUNT": [5, 10, 25, 50, 100],
        "POINTS": [100, 500, 1000, 2500, 5000],
    }


@dataclass
class PerkmanSettings:
    """Perkman configuration settings."""

    # Reservation tokens
    RESERVATION_TTL_SECONDS: int = 900
    RESERVATION_RETENTION_HOURS: int = 24

    # Points economy
    POINT_VALUE: Decimal = Decimal("0.1")
    BASE_POINT_RATE: Decimal = Decimal("0.1")
    POINT_EXPIRY_DAYS: int = 365

    # Post-commit milestones {kind: [thresholds]}
    MILESTONES: dict = field(default_factory=_default_milestones)

    # Collaborators (dotted paths)
    CATALOG_BACKEND: str = "perkman.adapters.catalog.DatabaseCatalogBackend"
    TIER_BACKEND: str = "perkman.services.tiers.TierService"

    # Outbox
    DISPATCH_EVENTS_ON_COMMIT: bool = True
    EVENT_RETENTION_DAYS: int = 30
    EVENT_MAX_ATTEMPTS: int = 5

    DEFAULT_PAYMENT_METHOD: str = "cash"

    def __post_init__(self):
        self.POINT_VALUE = Decimal(str(self.POINT_VALUE))
        self.BASE_POINT_RATE = Decimal(str(self.BASE_POINT_RATE))
        merged = _default_milestones()
        merged.update(self.MILESTONES or {})
        self.MILESTONES = merged


def get_perkman_settings() -> PerkmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PERKMAN", {})
    return PerkmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_perkman_settings(), name)


perkman_settings = _LazySettings()
