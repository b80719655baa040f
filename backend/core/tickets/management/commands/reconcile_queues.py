"""
Management command to renumber ticket queues immediately.

Usage:
    python manage.py reconcile_queues
    python manage.py reconcile_queues --dry-run
"""

from django.core.management.base import BaseCommand

from tickets.services.queue_reconciler import QueueReconciler


class Command(BaseCommand):
    help = "Recompute queue positions so every team's open tickets are numbered 1..N"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only print the corrections that would be applied",
        )

    def handle(self, *args, **options):
        reconciler = QueueReconciler()

        if options["dry_run"]:
            changes = reconciler.plan()
            for ticket_id, values in changes.items():
                self.stdout.write(f"{ticket_id}: {values}")
            self.stdout.write(f"{len(changes)} ticket(s) would be corrected")
            return

        corrected = reconciler.reconcile()
        self.stdout.write(self.style.SUCCESS(f"Corrected {corrected} ticket(s)"))
