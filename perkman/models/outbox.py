"""
OutboxEvent model - the outbound event boundary.

Events are written in the same transaction as the state change they
describe and relayed to signal receivers afterwards. Receivers
(notifications, segment recompute, tier rewards) never affect the commit.
"""

from datetime import timedelta

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class EventType(models.TextChoices):
    POINTS_EARNED = "points.earned", _("Points earned")
    POINTS_SPENT = "points.spent", _("Points spent")
    TRANSACTION_COMPLETED = "transaction.completed", _("Transaction completed")
    TRANSACTION_CANCELLED = "transaction.cancelled", _("Transaction cancelled")
    MILESTONE_REACHED = "milestone.reached", _("Milestone reached")
    TIER_CHANGED = "tier.changed", _("Tier changed")
    SEGMENT_RECOMPUTE = "segment.recompute", _("Segment recompute requested")


class OutboxEvent(models.Model):
    """Event waiting for (or already through) relay to receivers."""

    event_type = models.CharField(_("type"), max_length=40, choices=EventType.choices)
    payload = models.JSONField(_("payload"), encoder=DjangoJSONEncoder, default=dict)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    dispatched_at = models.DateTimeField(_("dispatched at"), null=True, blank=True)
    attempts = models.PositiveIntegerField(_("attempts"), default=0)
    last_error = models.TextField(_("last error"), blank=True)

    class Meta:
        db_table = "perkman_outbox_event"
        verbose_name = _("outbox event")
        verbose_name_plural = _("outbox events")
        ordering = ["pk"]
        indexes = [
            models.Index(fields=["dispatched_at", "created_at"], name="perkman_out_dispatc_7c0d1b_idx"),
        ]

    def __str__(self):
        return f"{self.event_type}#{self.pk}"

    @classmethod
    def cleanup_dispatched(cls, days: int | None = None):
        """Remove dispatched events older than N days."""
        if days is None:
            from perkman.conf import perkman_settings
            days = perkman_settings.EVENT_RETENTION_DAYS
        cutoff = timezone.now() - timedelta(days=days)
        return cls.objects.filter(dispatched_at__lt=cutoff).delete()
