"""Database CatalogBackend adapter."""

from django.db.models import Q

from perkman.engine.stacking import OrderLine
from perkman.exceptions import PerkmanError
from perkman.money import to_money
from perkman.protocols.catalog import ItemRequest


class DatabaseCatalogBackend:
    """
    Adapter that implements CatalogBackend by reading perkman.Product.

    Items are looked up by product code or menu item key; the catalog price
    wins over a client-supplied price. Items missing from the catalog are
    accepted only when the client sends a unit price.

    Configuration in settings.py:
        PERKMAN = {
            "CATALOG_BACKEND": "perkman.adapters.catalog.DatabaseCatalogBackend",
        }
    """

    def resolve(self, items: list[ItemRequest]) -> list[OrderLine]:
        from perkman.models import Product

        codes = {i.product_code for i in items if i.product_code}
        keys = {i.menu_item_key for i in items if i.menu_item_key}
        products = Product.objects.filter(is_active=True).filter(
            Q(code__in=codes) | Q(menu_item_key__in=keys)
        )
        by_code = {p.code: p for p in products}
        by_key = {p.menu_item_key: p for p in products if p.menu_item_key}

        lines = []
        for item in items:
            product = by_code.get(item.product_code) or by_key.get(item.menu_item_key)
            if product is not None:
                lines.append(
                    OrderLine(
                        product_code=product.code,
                        product_name=product.name,
                        quantity=item.quantity,
                        unit_price=to_money(product.price),
                        category=product.category,
                        menu_item_key=product.menu_item_key or item.menu_item_key,
                    )
                )
                continue

            if item.unit_price is None or not (item.product_code or item.menu_item_key):
                raise PerkmanError(
                    "INVALID_REQUEST",
                    message=f"Unknown item: {item.product_code or item.menu_item_key or '?'}",
                    product_code=item.product_code,
                    menu_item_key=item.menu_item_key,
                )
            lines.append(
                OrderLine(
                    product_code=item.product_code or item.menu_item_key,
                    product_name=item.product_name or item.product_code or item.menu_item_key,
                    quantity=item.quantity,
                    unit_price=to_money(item.unit_price),
                    category=item.category,
                    menu_item_key=item.menu_item_key,
                )
            )
        return lines
