import time

from django.core.management.base import BaseCommand, CommandError
from django.db import connections
from django.db.utils import OperationalError


class Command(BaseCommand):
    help = "Waits for the ledger database to be available"

    def add_arguments(self, parser):
        parser.add_argument(
            "--attempts",
            type=int,
            default=30,
            help="Give up after this many failed connection attempts.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=1.0,
            help="Seconds to wait between attempts.",
        )

    def handle(self, *args, **options):
        attempts = options["attempts"]
        interval = options["interval"]

        self.stdout.write("Waiting for database...")
        for attempt in range(1, attempts + 1):
            try:
                connections["default"].ensure_connection()
            except OperationalError:
                self.stdout.write(
                    self.style.WARNING(
                        f"Database unavailable (attempt {attempt}/{attempts}), "
                        f"waiting {interval:g} second(s)..."
                    )
                )
                time.sleep(interval)
            else:
                self.stdout.write(self.style.SUCCESS("Database available!"))
                return

        raise CommandError(f"Database still unavailable after {attempts} attempts.")
