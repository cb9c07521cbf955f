"""Tier models - loyalty levels and their change history."""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class Tier(models.Model):
    """
    Loyalty level.

    A customer qualifies for a tier when every non-zero threshold is met.
    Higher ``level`` wins; tiers are only ever upgraded automatically.
    """

    code = models.CharField(_("code"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=100)
    level = models.PositiveIntegerField(_("level"), default=0, db_index=True)

    point_multiplier = models.DecimalField(
        _("point multiplier"), max_digits=5, decimal_places=2, default=Decimal("1.00")
    )

    # Thresholds (0 = not required)
    min_total_spent = models.DecimalField(
        _("minimum total spent"), max_digits=12, decimal_places=2, default=0
    )
    min_visit_count = models.PositiveIntegerField(_("minimum visits"), default=0)
    min_points = models.PositiveIntegerField(_("minimum points"), default=0)

    is_active = models.BooleanField(_("active"), default=True)

    class Meta:
        verbose_name = _("tier")
        verbose_name_plural = _("tiers")
        ordering = ["level"]

    def __str__(self):
        return f"{self.name} (x{self.point_multiplier})"

    def is_met_by(self, customer) -> bool:
        """Whether the customer meets every configured threshold."""
        if self.min_total_spent and customer.total_spent < self.min_total_spent:
            return False
        if self.min_visit_count and customer.visit_count < self.min_visit_count:
            return False
        if self.min_points and customer.points < self.min_points:
            return False
        return True


class TierHistory(models.Model):
    """Append-only record of a customer's tier changes."""

    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.CASCADE,
        related_name="tier_history",
        verbose_name=_("customer"),
    )
    from_tier = models.ForeignKey(
        Tier,
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("from tier"),
    )
    to_tier = models.ForeignKey(
        Tier,
        on_delete=models.PROTECT,
        related_name="+",
        verbose_name=_("to tier"),
    )
    reason = models.CharField(_("reason"), max_length=200)
    triggered_by = models.CharField(_("triggered by"), max_length=50)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("tier change")
        verbose_name_plural = _("tier changes")
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.customer_id}: {self.from_tier_id} -> {self.to_tier_id}"
