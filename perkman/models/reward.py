"""Reward catalog and customer reward grants."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RewardType(models.TextChoices):
    DISCOUNT = "discount", _("Discount")
    FREE_PRODUCT = "free_product", _("Free product")
    OTHER = "other", _("Other")


class Reward(models.Model):
    """Reward catalog entry, pre-granted or purchasable with points."""

    code = models.CharField(_("code"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=200)
    reward_type = models.CharField(
        _("type"),
        max_length=20,
        choices=RewardType.choices,
        default=RewardType.DISCOUNT,
    )
    value = models.DecimalField(_("value"), max_digits=12, decimal_places=2, default=0)
    points_cost = models.PositiveIntegerField(
        _("points cost"),
        default=0,
        help_text=_("0 = only available as a grant"),
    )
    is_active = models.BooleanField(_("active"), default=True)

    class Meta:
        verbose_name = _("reward")
        verbose_name_plural = _("rewards")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class CustomerRewardQuerySet(models.QuerySet):
    def redeemable(self, now=None):
        """Unredeemed grants that have not expired."""
        now = now or timezone.now()
        return self.filter(is_redeemed=False).filter(
            models.Q(expires_at__isnull=True) | models.Q(expires_at__gt=now)
        )


class CustomerReward(models.Model):
    """A reward owned by a customer and its redemption state."""

    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.CASCADE,
        related_name="rewards",
        verbose_name=_("customer"),
    )
    reward = models.ForeignKey(
        Reward,
        on_delete=models.PROTECT,
        related_name="grants",
        verbose_name=_("reward"),
    )
    is_redeemed = models.BooleanField(_("redeemed"), default=False, db_index=True)
    redeemed_at = models.DateTimeField(_("redeemed at"), null=True, blank=True)
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True)
    purchased_with_points = models.BooleanField(_("purchased with points"), default=False)
    points_cost = models.PositiveIntegerField(_("points cost"), default=0)
    order = models.ForeignKey(
        "perkman.Order",
        on_delete=models.SET_NULL,
        related_name="reward_redemptions",
        null=True,
        blank=True,
        verbose_name=_("order"),
    )
    granted_at = models.DateTimeField(_("granted at"), auto_now_add=True)

    objects = CustomerRewardQuerySet.as_manager()

    class Meta:
        verbose_name = _("customer reward")
        verbose_name_plural = _("customer rewards")
        ordering = ["granted_at"]

    def __str__(self):
        state = "redeemed" if self.is_redeemed else "open"
        return f"{self.reward_id} for {self.customer_id} ({state})"
