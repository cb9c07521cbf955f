"""Order models - the durable result of a checkout commit."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


class Order(models.Model):
    """
    Committed order.

    Amounts are frozen at commit time. order_number is the caller-supplied
    idempotency key and is globally unique. The only later change is a
    cancellation (status, cancelled_at, cancel_reason).
    """

    order_number = models.CharField(_("order number"), max_length=100, unique=True)
    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
        verbose_name=_("customer"),
    )

    subtotal = models.DecimalField(_("subtotal"), max_digits=12, decimal_places=2)
    discount_total = models.DecimalField(
        _("discount total"), max_digits=12, decimal_places=2, default=0
    )
    final_amount = models.DecimalField(_("final amount"), max_digits=12, decimal_places=2)

    points_earned = models.PositiveIntegerField(_("points earned"), default=0)
    points_used = models.PositiveIntegerField(_("points used"), default=0)
    reward_points_spent = models.PositiveIntegerField(_("reward points spent"), default=0)

    payment_method = models.CharField(_("payment method"), max_length=30, default="cash")
    payment_reference = models.CharField(_("payment reference"), max_length=100, blank=True)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.COMPLETED,
        db_index=True,
    )
    tier = models.ForeignKey(
        "perkman.Tier",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("tier"),
    )
    tier_multiplier = models.DecimalField(
        _("tier multiplier"), max_digits=5, decimal_places=2, default=1
    )
    notes = models.TextField(_("notes"), blank=True)

    created_at = models.DateTimeField(_("created at"), db_index=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)
    cancelled_at = models.DateTimeField(_("cancelled at"), null=True, blank=True)
    cancel_reason = models.CharField(_("cancel reason"), max_length=200, blank=True)

    class Meta:
        verbose_name = _("order")
        verbose_name_plural = _("orders")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["customer", "status", "created_at"],
                name="perkman_ord_custome_4b7a1e_idx",
            ),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.final_amount})"


class OrderItem(models.Model):
    """Order line. Free lines (stamp redemptions) carry is_free=True."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name=_("order"),
    )
    product = models.ForeignKey(
        "perkman.Product",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("product"),
    )
    product_code = models.CharField(_("product code"), max_length=50, db_index=True)
    product_name = models.CharField(_("product name"), max_length=200)
    category = models.CharField(_("category"), max_length=100, blank=True, db_index=True)
    menu_item_key = models.CharField(_("menu item key"), max_length=100, blank=True)
    quantity = models.PositiveIntegerField(_("quantity"))
    unit_price = models.DecimalField(_("unit price"), max_digits=12, decimal_places=2)
    total_price = models.DecimalField(_("total price"), max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(
        _("discount amount"), max_digits=12, decimal_places=2, default=0
    )
    is_free = models.BooleanField(_("free"), default=False)

    class Meta:
        verbose_name = _("order item")
        verbose_name_plural = _("order items")

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"


class AppliedCampaign(models.Model):
    """Discount and bonus-point attribution of one campaign on an order."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="applied_campaigns",
        verbose_name=_("order"),
    )
    campaign = models.ForeignKey(
        "perkman.Campaign",
        on_delete=models.PROTECT,
        related_name="applications",
        verbose_name=_("campaign"),
    )
    discount_amount = models.DecimalField(
        _("discount amount"), max_digits=12, decimal_places=2, default=0
    )
    points_earned = models.PositiveIntegerField(_("points earned"), default=0)
    free_items = models.JSONField(_("free items"), default=list, blank=True)

    class Meta:
        verbose_name = _("applied campaign")
        verbose_name_plural = _("applied campaigns")

    def __str__(self):
        return f"{self.campaign_id} on {self.order_id}"
