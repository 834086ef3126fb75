# accounting/management/commands/seed_default_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.services.account_registry import ACCOUNT_TEMPLATES, seed_default_chart


class Command(BaseCommand):
    help = "Seed the default chart of accounts (safe to re-run)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding default chart of accounts...")

        created = seed_default_chart()

        for acc in created:
            self.stdout.write(f"  + {acc.code} {acc.name} ({acc.account_type})")

        self.stdout.write(
            self.style.SUCCESS(
                f"Default chart ready. created={len(created)} total_templates={len(ACCOUNT_TEMPLATES)}"
            )
        )
