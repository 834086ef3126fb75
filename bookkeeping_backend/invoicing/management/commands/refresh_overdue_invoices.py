# invoicing/management/commands/refresh_overdue_invoices.py

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from invoicing.services.invoice_service import refresh_overdue_statuses


class Command(BaseCommand):
    help = "Mark pending / partially paid invoices past their due date as overdue (cron friendly)"

    def add_arguments(self, parser):
        parser.add_argument("--today", help="Override today's date (YYYY-MM-DD)")

    def handle(self, *args, **options):
        today = None
        if options.get("today"):
            try:
                today = parse_date(options["today"])
            except ValueError:
                today = None
            if today is None:
                raise CommandError("--today must be YYYY-MM-DD")

        updated = refresh_overdue_statuses(today)
        self.stdout.write(self.style.SUCCESS(f"Overdue refresh done. updated={updated}"))
