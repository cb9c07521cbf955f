"""Perkman exceptions."""


class BaseError(Exception):
    """
    Structured exception carrying a machine-readable code.

    Subclasses declare ``_default_messages``; extra keyword arguments are
    kept in ``data`` and exposed by ``as_dict()``.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class PerkmanError(BaseError):
    """
    Structured exception for pricing and redemption operations.

    Usage:
        try:
            CheckoutService.complete(token, "ORD-1")
        except PerkmanError as e:
            if e.code == "RESERVATION_INVALID":
                ask_for_new_preview()
    """

    _default_messages = {
        "INVALID_REQUEST": "Invalid request",
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "ORDER_NOT_FOUND": "Order not found",
        "RESERVATION_INVALID": (
            "Reservation token is invalid or has expired. Please create a new preview."
        ),
        "INSUFFICIENT_POINTS": "Insufficient points",
        "DUPLICATE_ORDER": "Order number already exists",
        "POINTS_CHANGED": (
            "Points to spend changed since the preview. Please create a new preview."
        ),
        "ORDER_NOT_CANCELLABLE": "Order cannot be cancelled",
        "CAMPAIGN_MISCONFIGURED": "Campaign configuration is invalid",
        "LEDGER_NEGATIVE_BALANCE": "Point balance cannot become negative",
        "INVALID_POINTS": "Points must be positive",
    }

    _status_codes = {
        "INVALID_REQUEST": 400,
        "CUSTOMER_NOT_FOUND": 404,
        "ORDER_NOT_FOUND": 404,
        "RESERVATION_INVALID": 400,
        "INSUFFICIENT_POINTS": 400,
        "DUPLICATE_ORDER": 409,
        "POINTS_CHANGED": 409,
        "ORDER_NOT_CANCELLABLE": 409,
        "LEDGER_NEGATIVE_BALANCE": 400,
        "INVALID_POINTS": 400,
    }

    @property
    def status_code(self) -> int:
        return self._status_codes.get(self.code, 500)


class CampaignConfigError(PerkmanError):
    """A campaign's stored configuration cannot be turned into a rule."""

    def __init__(self, campaign_code: str, message: str):
        super().__init__(
            "CAMPAIGN_MISCONFIGURED",
            message=message,
            campaign_code=campaign_code,
        )
