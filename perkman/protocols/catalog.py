"""Catalog protocol - resolves requested items to priced order lines."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from perkman.engine.stacking import OrderLine


@dataclass(frozen=True)
class ItemRequest:
    """One requested item as sent by the POS or the mobile client."""

    quantity: int
    product_code: str = ""
    menu_item_key: str = ""
    product_name: str = ""
    category: str = ""
    unit_price: Decimal | None = None


@runtime_checkable
class CatalogBackend(Protocol):
    """
    Protocol for resolving items against a product catalog.

    Implemented by adapters/catalog.py.

    Configuration in settings.py:
        PERKMAN = {
            "CATALOG_BACKEND": "perkman.adapters.catalog.DatabaseCatalogBackend",
        }
    """

    def resolve(self, items: list[ItemRequest]) -> list[OrderLine]:
        """
        Resolve requested items to priced lines.

        Args:
            items: Requested items (product code or menu item key)

        Returns:
            One OrderLine per item, in request order

        Raises:
            PerkmanError: INVALID_REQUEST if an item cannot be priced
        """
        ...
