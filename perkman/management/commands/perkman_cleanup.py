"""Management command to purge old reservations and dispatched events."""

from django.core.management.base import BaseCommand

from perkman.models import OutboxEvent
from perkman.services.reservations import ReservationStore


class Command(BaseCommand):
    help = (
        "Remove consumed/expired reservations older than RESERVATION_RETENTION_HOURS "
        "and dispatched outbox events older than EVENT_RETENTION_DAYS"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--event-days",
            type=int,
            default=None,
            help="Override EVENT_RETENTION_DAYS setting",
        )

    def handle(self, *args, **options):
        reservations = ReservationStore.purge()
        events, _ = OutboxEvent.cleanup_dispatched(days=options["event_days"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Deleted {reservations} reservations and {events} dispatched events."
            )
        )
