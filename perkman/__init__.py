"""
Django Perkman - Order pricing and redemption.

Usage:
    from perkman import PricingService, CheckoutService
    from perkman.services.pricing import Selections
    from perkman.protocols import ItemRequest

    preview = PricingService.preview(
        "CUST-001",
        [ItemRequest(quantity=2, product_code="LATTE")],
        Selections(campaign_codes=("HAPPY-HOUR",), points=100),
    )
    result = CheckoutService.complete(preview.reservation.token, "ORD-1001")
"""


def __getattr__(name):
    if name == "PricingService":
        from perkman.services.pricing import PricingService

        return PricingService
    if name == "CheckoutService":
        from perkman.services.checkout import CheckoutService

        return CheckoutService
    if name == "PerkmanError":
        from perkman.exceptions import PerkmanError

        return PerkmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PricingService", "CheckoutService", "PerkmanError"]
__version__ = "0.1.0"
