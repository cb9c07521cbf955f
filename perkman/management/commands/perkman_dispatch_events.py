"""Management command to relay pending outbox events to signal receivers."""

from django.core.management.base import BaseCommand

from perkman.services.events import EventService


class Command(BaseCommand):
    help = "Dispatch pending outbox events"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum events per run",
        )

    def handle(self, *args, **options):
        dispatched = EventService.dispatch_pending(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(f"Dispatched {dispatched} events."))
