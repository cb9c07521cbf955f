"""Perkman protocols."""

from perkman.protocols.catalog import CatalogBackend, ItemRequest
from perkman.protocols.tiers import TierBackend, TierChange

__all__ = [
    # Catalog
    "CatalogBackend",
    "ItemRequest",
    # Tiers
    "TierBackend",
    "TierChange",
]
