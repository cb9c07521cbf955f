"""Campaign models - discount rules, stamp cards and their usage records."""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CampaignType(models.TextChoices):
    DISCOUNT = "discount", _("Discount")
    STAMP = "stamp", _("Buy X Get Y (stamps)")
    LOYALTY_POINTS = "loyalty_points", _("Loyalty points")
    TIME_BASED = "time_based", _("Time based")
    BIRTHDAY = "birthday", _("Birthday")
    COMBO = "combo", _("Combo deal")


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", _("Percentage")
    FIXED_AMOUNT = "fixed_amount", _("Fixed amount")


# Campaign types priced as a discount on the running total
DISCOUNT_CAMPAIGN_TYPES = frozenset({
    CampaignType.DISCOUNT,
    CampaignType.TIME_BASED,
    CampaignType.BIRTHDAY,
    CampaignType.COMBO,
})


class Campaign(models.Model):
    """
    Promotional campaign.

    Read-only to the pricing engine. Stamp campaigns (Buy X Get Y) use
    buy_quantity/get_quantity with target_products/target_categories as the
    qualifying filter and free_products as the reward; call stamp_rule() to
    get the validated rule.
    """

    code = models.CharField(_("code"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=200)
    campaign_type = models.CharField(
        _("type"),
        max_length=20,
        choices=CampaignType.choices,
        default=CampaignType.DISCOUNT,
    )

    # Discount rule
    discount_type = models.CharField(
        _("discount type"),
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.PERCENTAGE,
    )
    discount_value = models.DecimalField(
        _("discount value"), max_digits=12, decimal_places=2, default=0
    )
    min_purchase = models.DecimalField(
        _("minimum purchase"), max_digits=12, decimal_places=2, null=True, blank=True
    )

    # Usage caps (null = unlimited)
    max_usage = models.PositiveIntegerField(_("max usage"), null=True, blank=True)
    max_usage_per_customer = models.PositiveIntegerField(
        _("max usage per customer"), null=True, blank=True
    )

    # Loyalty points campaigns
    point_multiplier = models.DecimalField(
        _("point multiplier"), max_digits=5, decimal_places=2, default=1
    )

    # Stamp campaigns
    buy_quantity = models.PositiveIntegerField(_("buy quantity"), null=True, blank=True)
    get_quantity = models.PositiveIntegerField(_("get quantity"), default=1)
    target_products = models.ManyToManyField(
        "perkman.Product",
        related_name="stamp_campaigns",
        blank=True,
        verbose_name=_("target products"),
    )
    target_categories = models.JSONField(
        _("target categories"),
        default=list,
        blank=True,
        help_text=_("List of product category names"),
    )
    free_products = models.ManyToManyField(
        "perkman.Product",
        related_name="free_in_campaigns",
        blank=True,
        verbose_name=_("free products"),
    )

    # Time restrictions
    valid_days = models.JSONField(
        _("valid days"),
        default=list,
        blank=True,
        help_text=_("ISO weekdays (1=Monday, 7=Sunday); empty = every day"),
    )
    valid_from_time = models.TimeField(_("valid from"), null=True, blank=True)
    valid_until_time = models.TimeField(_("valid until"), null=True, blank=True)
    starts_at = models.DateTimeField(_("starts at"), null=True, blank=True)
    ends_at = models.DateTimeField(_("ends at"), null=True, blank=True)

    is_active = models.BooleanField(_("active"), default=True, db_index=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("campaign")
        verbose_name_plural = _("campaigns")
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.code})"

    def clean(self):
        super().clean()
        if self.campaign_type == CampaignType.STAMP and self.pk:
            from perkman.exceptions import CampaignConfigError

            try:
                self.stamp_rule()
            except CampaignConfigError as exc:
                raise ValidationError(exc.message)

    def is_running(self, now=None) -> bool:
        """Active and inside its start/end window."""
        now = now or timezone.now()
        if not self.is_active:
            return False
        if self.starts_at and now < self.starts_at:
            return False
        if self.ends_at and now > self.ends_at:
            return False
        return True

    def blocked_reason(self, now=None, customer=None) -> str:
        """
        Why the campaign cannot be applied right now ("" when it can).

        Checks the active flag, the date window, day-of-week and hour
        restrictions (in the current timezone), and for birthday campaigns
        that the customer's birthday falls in the current month.
        """
        now = now or timezone.now()
        if not self.is_running(now):
            return "CAMPAIGN_NOT_RUNNING"

        local = timezone.localtime(now)
        if self.valid_days and local.isoweekday() not in self.valid_days:
            return "CAMPAIGN_WRONG_DAY"
        current = local.time()
        if self.valid_from_time and current < self.valid_from_time:
            return "CAMPAIGN_WRONG_HOUR"
        if self.valid_until_time and current > self.valid_until_time:
            return "CAMPAIGN_WRONG_HOUR"

        if self.campaign_type == CampaignType.BIRTHDAY:
            birth_date = getattr(customer, "birth_date", None)
            if not birth_date or birth_date.month != local.month:
                return "CAMPAIGN_NOT_BIRTHDAY"
        return ""

    def stamp_rule(self):
        """
        Build the typed stamp rule for this campaign.

        Raises:
            CampaignConfigError: If buy/get quantities, categories, or the
                free product cannot be resolved.
        """
        from perkman.engine.entitlements import FreeProduct, StampRule
        from perkman.exceptions import CampaignConfigError

        if not self.buy_quantity or self.buy_quantity < 1:
            raise CampaignConfigError(self.code, "buy_quantity must be at least 1")
        if not self.get_quantity or self.get_quantity < 1:
            raise CampaignConfigError(self.code, "get_quantity must be at least 1")

        categories = self.target_categories or []
        if not isinstance(categories, list) or not all(
            isinstance(c, str) and c for c in categories
        ):
            raise CampaignConfigError(
                self.code, "target_categories must be a list of category names"
            )

        product_codes = frozenset(self.target_products.values_list("code", flat=True))
        free = self.free_products.order_by("pk").first()
        if free is None:
            free = self.target_products.order_by("pk").first()
        if free is None:
            raise CampaignConfigError(self.code, "no free product configured")

        return StampRule(
            campaign_code=self.code,
            campaign_name=self.name,
            buy_quantity=self.buy_quantity,
            get_quantity=self.get_quantity,
            product_codes=product_codes,
            categories=frozenset(categories),
            free_product=FreeProduct(
                code=free.code,
                name=free.name,
                category=free.category,
                price=free.price,
            ),
            max_per_customer=self.max_usage_per_customer,
        )


class CampaignUsage(models.Model):
    """
    One redemption of a non-stamp campaign by a customer.

    Counts toward max_usage / max_usage_per_customer while the order is
    COMPLETED; cancelled orders stop counting without deleting the row.
    """

    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.CASCADE,
        related_name="campaign_usages",
        verbose_name=_("customer"),
    )
    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.PROTECT,
        related_name="usages",
        verbose_name=_("campaign"),
    )
    order = models.ForeignKey(
        "perkman.Order",
        on_delete=models.CASCADE,
        related_name="campaign_usages",
        verbose_name=_("order"),
    )
    order_amount = models.DecimalField(_("order amount"), max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(
        _("discount amount"), max_digits=12, decimal_places=2, default=0
    )
    used_at = models.DateTimeField(_("used at"), auto_now_add=True)

    class Meta:
        verbose_name = _("campaign usage")
        verbose_name_plural = _("campaign usages")
        indexes = [
            models.Index(fields=["campaign", "customer"], name="perkman_cam_campaig_5d1c2f_idx"),
        ]

    def __str__(self):
        return f"{self.campaign_id} by {self.customer_id}"


class StampUsage(models.Model):
    """One stamp redemption (a Buy X Get Y free item)."""

    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.CASCADE,
        related_name="stamp_usages",
        verbose_name=_("customer"),
    )
    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.PROTECT,
        related_name="stamp_usages",
        verbose_name=_("campaign"),
    )
    order = models.ForeignKey(
        "perkman.Order",
        on_delete=models.CASCADE,
        related_name="stamp_usages",
        verbose_name=_("order"),
    )
    product_code = models.CharField(_("product code"), max_length=50)
    product_name = models.CharField(_("product name"), max_length=200)
    quantity = models.PositiveIntegerField(_("quantity"), default=1)
    value = models.DecimalField(_("value"), max_digits=12, decimal_places=2)
    used_at = models.DateTimeField(_("used at"), auto_now_add=True)

    class Meta:
        verbose_name = _("stamp usage")
        verbose_name_plural = _("stamp usages")
        indexes = [
            models.Index(fields=["campaign", "customer"], name="perkman_sta_campaig_8e3b90_idx"),
        ]

    def __str__(self):
        return f"{self.campaign_id}: {self.product_name} x{self.quantity}"
