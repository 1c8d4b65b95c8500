from django.core.management.base import BaseCommand, CommandError

from apps.reservations.ledger import find_drift


class Command(BaseCommand):
    help = "Report slots and units whose stored capacity or status disagrees with active reservations"

    def add_arguments(self, parser):
        parser.add_argument("--service", type=int, help="Only audit this service id")
        parser.add_argument(
            "--fail-on-drift",
            action="store_true",
            help="Exit with an error when drift is found",
        )

    def handle(self, *args, **options):
        drift = find_drift(service_id=options.get("service"))

        if not drift:
            self.stdout.write(self.style.SUCCESS("Ledger is consistent"))
            return

        for item in drift:
            self.stdout.write(
                self.style.WARNING(
                    f"{item.resource} {item.resource_id}: stored {item.stored}, expected {item.expected}"
                )
            )

        summary = f"Found {len(drift)} inconsistent resource(s)"
        if options["fail_on_drift"]:
            raise CommandError(summary)
        self.stdout.write(summary)
