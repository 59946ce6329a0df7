"""Management command to compare stored stock levels with the movement ledger."""
from django.core.management.base import BaseCommand, CommandError

from apps.inventory.exceptions import LocationNotFound
from apps.inventory.services import InventoryReconciliationService, get_location


class Command(BaseCommand):
    help = 'Replay the stock movement ledger and report (or fix) drifted inventory records'

    def add_arguments(self, parser):
        parser.add_argument('--location', type=int, help='Only reconcile this location id')
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Reset drifted records to the quantity the ledger implies',
        )

    def handle(self, *args, **options):
        location = None
        if options['location'] is not None:
            try:
                location = get_location(options['location'])
            except LocationNotFound as e:
                raise CommandError(e.message)

        svc = InventoryReconciliationService()
        results = svc.reconcile_all(location=location, fix=options['fix'])

        problems = [r for r in results if not r.is_consistent]
        for r in problems:
            line = (
                f"  {r.product.product_code} @ {r.location.location_code}: "
                f"recorded {r.recorded_quantity}, ledger {r.replayed_quantity} "
                f"(drift {r.drift:+d}, broken links {r.broken_links})"
            )
            if r.fixed:
                line += " - fixed"
            elif r.error:
                line += f" - not fixed: {r.error}"
            self.stdout.write(self.style.WARNING(line))

        unfixed = sum(1 for r in problems if r.error)
        summary = f"Done. Checked {len(results)} records, {len(problems)} inconsistent."
        if unfixed:
            self.stdout.write(self.style.ERROR(f"{summary} {unfixed} could not be fixed."))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
