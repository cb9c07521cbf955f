"""Customer model.

Data architecture:
    Customer.points
        Current point balance. Never edited directly: every change goes
        through PointLedger.append(), which writes a PointLedgerEntry with
        the running balance. The sum of a customer's ledger entries always
        equals Customer.points.

    Customer.total_spent / visit_count / last_visit
        Aggregates updated by the checkout commit (and reversed by
        cancellation). Tier thresholds and milestones read these.
"""

import uuid as uuid_lib
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    """Loyalty program member."""

    code = models.CharField(
        _("code"),
        max_length=50,
        unique=True,
        help_text=_("Unique customer code (ex: CUST-001)"),
    )
    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True)

    first_name = models.CharField(_("first name"), max_length=100)
    last_name = models.CharField(_("last name"), max_length=100, blank=True)
    email = models.EmailField(_("email"), blank=True, db_index=True)
    phone = models.CharField(_("phone"), max_length=20, blank=True, db_index=True)
    birth_date = models.DateField(_("birth date"), null=True, blank=True)

    # Loyalty state (mutated only by checkout/ledger services)
    points = models.IntegerField(_("points"), default=0)
    tier = models.ForeignKey(
        "perkman.Tier",
        on_delete=models.PROTECT,
        related_name="customers",
        null=True,
        blank=True,
        verbose_name=_("tier"),
    )
    total_spent = models.DecimalField(
        _("total spent"), max_digits=12, decimal_places=2, default=0
    )
    visit_count = models.PositiveIntegerField(_("visit count"), default=0)
    last_visit = models.DateTimeField(_("last visit"), null=True, blank=True)

    is_active = models.BooleanField(_("active"), default=True, db_index=True)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["first_name", "last_name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(points__gte=0),
                name="perkman_customer_points_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def name(self) -> str:
        """Full name (first + last)."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def point_multiplier(self):
        """Tier point multiplier (1 when the customer has no tier)."""
        if self.tier_id and self.tier.is_active:
            return self.tier.point_multiplier
        return Decimal("1")
