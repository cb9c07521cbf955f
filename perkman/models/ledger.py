"""Point ledger - append-only history of balance changes."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class EntryType(models.TextChoices):
    EARNED = "earned", _("Earned")
    SPENT = "spent", _("Spent")
    EXPIRED = "expired", _("Expired")
    ADJUSTED = "adjusted", _("Adjusted")


class EntrySource(models.TextChoices):
    PURCHASE = "purchase", _("Purchase")
    REWARD = "reward", _("Reward purchase")
    REFUND = "refund", _("Refund")
    CANCELLATION = "cancellation", _("Cancellation")
    EXPIRATION = "expiration", _("Expiration")
    MANUAL = "manual", _("Manual")


class LedgerImmutableError(Exception):
    """Raised on any attempt to edit or delete a ledger entry."""


class PointLedgerQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise LedgerImmutableError("Point ledger entries cannot be updated")

    def delete(self):
        raise LedgerImmutableError("Point ledger entries cannot be deleted")


class PointLedgerEntry(models.Model):
    """
    Immutable record of a point balance change.

    Entries are append-only: corrections are new ADJUSTED entries, never
    edits. balance_after is the customer's balance right after this entry.
    """

    customer = models.ForeignKey(
        "perkman.Customer",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name=_("customer"),
    )
    amount = models.IntegerField(
        _("amount"),
        help_text=_("Positive for credits, negative for debits"),
    )
    entry_type = models.CharField(_("type"), max_length=20, choices=EntryType.choices)
    source = models.CharField(_("source"), max_length=20, choices=EntrySource.choices)
    reference = models.CharField(
        _("reference"),
        max_length=100,
        blank=True,
        help_text=_("External reference (ex: order:ORD-123)"),
    )
    balance_after = models.IntegerField(_("balance after"))
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True)
    description = models.CharField(_("description"), max_length=200, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    objects = PointLedgerQuerySet.as_manager()

    class Meta:
        verbose_name = _("point ledger entry")
        verbose_name_plural = _("point ledger entries")
        ordering = ["-created_at", "-pk"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="perkman_poi_custome_a2f6c4_idx"),
        ]

    def __str__(self):
        sign = "+" if self.amount > 0 else ""
        return f"{sign}{self.amount}pts - {self.description}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise LedgerImmutableError("Point ledger entries cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError("Point ledger entries cannot be deleted")
