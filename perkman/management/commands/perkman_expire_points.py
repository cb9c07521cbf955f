"""Management command to expire earned points past their expiry date."""

from django.core.management.base import BaseCommand
from django.utils import timezone

from perkman.models import Customer, EntryType, PointLedgerEntry
from perkman.services.ledger import PointLedger


class Command(BaseCommand):
    help = "Write EXPIRED ledger entries for points whose earned lots have expired"

    def add_arguments(self, parser):
        parser.add_argument(
            "--customer",
            default=None,
            help="Only this customer code",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options["customer"]:
            codes = [options["customer"]]
        else:
            codes = (
                Customer.objects.filter(
                    points__gt=0,
                    pk__in=PointLedgerEntry.objects.filter(
                        entry_type=EntryType.EARNED,
                        expires_at__lte=now,
                    ).values("customer_id"),
                )
                .values_list("code", flat=True)
                .order_by("code")
            )

        customers = points = 0
        for code in codes:
            entry = PointLedger.expire_due(code, now=now)
            if entry is not None:
                customers += 1
                points += -entry.amount

        self.stdout.write(
            self.style.SUCCESS(f"Expired {points} points for {customers} customers.")
        )
