# accounting/management/commands/validate_ledger.py

from __future__ import annotations

from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Sum
from django.utils.dateparse import parse_date

from accounting.models.journal import EntryType, JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.journal_entry_service import active_entries
from accounting.services.posting import invoice_reference
from invoicing.models import Invoice, PaymentStatus, Voucher

ZERO = Decimal("0.00")
MONEY_EPSILON = Decimal("0.001")
EXAMPLES = 10


def _parse_date(raw: str | None, flag: str):
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise CommandError(f"Invalid {flag} date. Use YYYY-MM-DD")
    return value


def _active_count(reference: str) -> int:
    return active_entries(reference).count()


class Command(BaseCommand):
    help = "Validate ledger integrity (balanced entries, invoice/voucher postings, paid amounts)."

    def add_arguments(self, parser):
        parser.add_argument("--from", dest="date_from", help="Start date YYYY-MM-DD (optional)")
        parser.add_argument("--to", dest="date_to", help="End date YYYY-MM-DD (optional)")
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any problem is found.",
        )

    def handle(self, *args, **options):
        date_from = _parse_date(options.get("date_from"), "--from")
        date_to = _parse_date(options.get("date_to"), "--to")

        window = {}
        if date_from:
            window["date__gte"] = date_from
        if date_to:
            window["date__lte"] = date_to

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger validation"))
        self.stdout.write(
            f"Window: {date_from or '...'} -> {date_to or '...'}" if window else "Window: ALL TIME"
        )

        problems = 0
        problems += self._check_entries(window)
        problems += self._check_invoices(window)
        problems += self._check_vouchers(window)

        self.stdout.write("")
        if problems == 0:
            self.stdout.write(self.style.SUCCESS("VALIDATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VALIDATION FOUND ISSUES: {problems} problem(s)"))
            if options.get("strict"):
                raise CommandError(f"{problems} ledger problem(s) found")

    def _report(self, label: str, items: list[str]) -> int:
        if not items:
            self.stdout.write(self.style.SUCCESS(f"[OK] {label}"))
            return 0
        self.stderr.write(self.style.ERROR(f"[FAIL] {label}: {len(items)}"))
        for item in items[:EXAMPLES]:
            self.stderr.write(f"  {item}")
        return len(items)

    def _check_entries(self, window: dict) -> int:
        unbalanced = []
        entries = (
            JournalEntry.objects.filter(**window)
            .exclude(entry_type=EntryType.POSTING_FAILURE)
            .annotate(debit=Sum("lines__debit"), credit=Sum("lines__credit"))
        )
        for entry in entries:
            debit, credit = entry.debit or ZERO, entry.credit or ZERO
            if abs(debit - credit) > MONEY_EPSILON:
                unbalanced.append(f"JE-{entry.entry_number} debit={debit} credit={credit}")

        failures = [
            f"JE-{e.entry_number} {e.reference}: {e.description}"
            for e in JournalEntry.objects.filter(entry_type=EntryType.POSTING_FAILURE, **window)
            if _active_count(e.reference) < 1
        ]

        line_window = {f"journal_entry__{k}": v for k, v in window.items()}
        totals = JournalLine.objects.filter(**line_window).aggregate(debit=Sum("debit"), credit=Sum("credit"))
        debit, credit = totals["debit"] or ZERO, totals["credit"] or ZERO
        global_issue = [] if abs(debit - credit) <= MONEY_EPSILON else [f"debits={debit} credits={credit}"]

        return (
            self._report("Journal entries balanced", unbalanced)
            + self._report("Unresolved posting failures", failures)
            + self._report(f"Ledger totals (debits={debit} credits={credit})", global_issue)
        )

    def _check_invoices(self, window: dict) -> int:
        missing, duplicated, paid_mismatch = [], [], []

        for invoice in Invoice.objects.filter(**window).prefetch_related("vouchers"):
            active = _active_count(invoice_reference(invoice))
            must_post = invoice.is_return or invoice.payment_status == PaymentStatus.PAID
            if active > 1:
                duplicated.append(f"{invoice.invoice_number} active={active}")
            elif active < 1 and must_post:
                missing.append(invoice.invoice_number)

            settled = sum((v.amount for v in invoice.vouchers.all()), ZERO)
            expected = min(invoice.initial_paid_amount + settled, invoice.total)
            if abs(expected - invoice.paid_amount) > MONEY_EPSILON:
                paid_mismatch.append(
                    f"{invoice.invoice_number} paid_amount={invoice.paid_amount} expected={expected}"
                )

        return (
            self._report("Paid invoices and returns posted", missing)
            + self._report("No duplicate invoice postings", duplicated)
            + self._report("Invoice paid amounts match vouchers", paid_mismatch)
        )

    def _check_vouchers(self, window: dict) -> int:
        unposted = []
        for voucher in Voucher.objects.filter(**window):
            active = _active_count(voucher.voucher_number)
            if active != 1:
                unposted.append(f"{voucher.voucher_number} active={active}")
        return self._report("Every voucher has one active entry", unposted)
