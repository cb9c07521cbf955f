"""
Reservation model - a priced order held behind a single-use token.

Consumption is a single conditional UPDATE (consumed_at IS NULL and not
expired), so only one caller across all processes can win a token.
"""

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


class Reservation(models.Model):
    """Preview result waiting to be committed."""

    token = models.CharField(_("token"), max_length=64, unique=True)
    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.CASCADE,
        related_name="reservations",
        verbose_name=_("customer"),
    )
    payload = models.JSONField(_("payload"), encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(_("created at"))
    expires_at = models.DateTimeField(_("expires at"), db_index=True)
    consumed_at = models.DateTimeField(_("consumed at"), null=True, blank=True)

    class Meta:
        db_table = "perkman_reservation"
        verbose_name = _("reservation")
        verbose_name_plural = _("reservations")

    def __str__(self):
        return f"{self.token[:12]}... ({self.customer_id})"
