# accounting/tests/test_journal_integrity.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import Sum
from django.test import TestCase

from accounting.models.journal import EntryType, JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.account_registry import ensure_account
from accounting.services.exceptions import JournalEntryCreationError, UnbalancedEntryError
from accounting.services.journal_entry_service import (
    create_journal_entry,
    find_active_entry,
    is_reference_active,
    record_posting_failure,
    reverse_journal_entry,
)


def _net(account) -> Decimal:
    agg = JournalLine.objects.filter(account=account).aggregate(d=Sum("debit"), c=Sum("credit"))
    return (agg["d"] or Decimal("0.00")) - (agg["c"] or Decimal("0.00"))


class JournalEntryServiceTests(TestCase):
    def setUp(self):
        self.cash = ensure_account("1001")
        self.sales = ensure_account("4001")
        self.vat = ensure_account("2102")

    def _sale(self, reference="TEST-1"):
        return create_journal_entry(
            description="Test sale",
            postings=[
                {"account": self.cash, "debit": "105.00"},
                {"account": self.sales, "credit": "100.00"},
                {"account": self.vat, "credit": "5.00"},
            ],
            reference=reference,
            entry_date=date(2026, 1, 10),
        )

    def test_create_journal_entry_balanced_creates_lines(self):
        je = self._sale()

        self.assertIsInstance(je, JournalEntry)
        self.assertEqual(je.entry_type, EntryType.MANUAL)
        self.assertEqual(je.lines.count(), 3)

        totals = je.lines.aggregate(d=Sum("debit"), c=Sum("credit"))
        self.assertEqual(totals["d"], Decimal("105.00"))
        self.assertEqual(totals["c"], Decimal("105.00"))

    def test_entry_numbers_are_monotonic(self):
        first = self._sale("A")
        second = self._sale("B")
        self.assertEqual(second.entry_number, first.entry_number + 1)

    def test_unbalanced_raises(self):
        with self.assertRaises(UnbalancedEntryError):
            create_journal_entry(
                description="Bad entry",
                postings=[
                    {"account": self.cash, "debit": "100.00"},
                    {"account": self.sales, "credit": "90.00"},
                ],
            )
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_line_with_both_sides_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Both sides",
                postings=[
                    {"account": self.cash, "debit": "10.00", "credit": "10.00"},
                    {"account": self.sales, "credit": "0.00"},
                ],
            )

    def test_invalid_amount_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Garbage",
                postings=[
                    {"account": self.cash, "debit": "abc"},
                    {"account": self.sales, "credit": "1.00"},
                ],
            )

    def test_entries_and_lines_are_immutable(self):
        je = self._sale()
        line = je.lines.first()

        je.description = "changed"
        with self.assertRaises(ValidationError):
            je.save()
        with self.assertRaises(ValidationError):
            je.delete()

        line.debit = Decimal("1.00")
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            line.delete()


class ReversalTests(TestCase):
    def setUp(self):
        self.cash = ensure_account("1001")
        self.sales = ensure_account("4001")
        self.entry = create_journal_entry(
            description="Cash sale",
            postings=[
                {"account": self.cash, "debit": "80.00"},
                {"account": self.sales, "credit": "80.00"},
            ],
            reference="INV-S0009",
        )

    def test_reversal_nets_every_touched_account_to_zero(self):
        reversal = reverse_journal_entry(self.entry)

        self.assertEqual(reversal.entry_type, EntryType.REVERSAL)
        self.assertEqual(reversal.reference, "REV-INV-S0009")
        self.assertEqual(reversal.original_entry_id, self.entry.pk)
        self.assertEqual(_net(self.cash), Decimal("0.00"))
        self.assertEqual(_net(self.sales), Decimal("0.00"))

    def test_reversal_swaps_each_line(self):
        reversal = reverse_journal_entry(self.entry)
        cash_line = reversal.lines.get(account=self.cash)
        sales_line = reversal.lines.get(account=self.sales)

        self.assertEqual(cash_line.credit, Decimal("80.00"))
        self.assertEqual(cash_line.debit, Decimal("0.00"))
        self.assertEqual(sales_line.debit, Decimal("80.00"))

    def test_reference_active_until_reversed(self):
        self.assertTrue(is_reference_active("INV-S0009"))
        self.assertEqual(find_active_entry("INV-S0009"), self.entry)

        reverse_journal_entry(self.entry)

        self.assertFalse(is_reference_active("INV-S0009"))
        self.assertIsNone(find_active_entry("INV-S0009"))

    def test_cannot_reverse_twice_or_reverse_a_reversal(self):
        reversal = reverse_journal_entry(self.entry)

        with self.assertRaises(JournalEntryCreationError):
            reverse_journal_entry(self.entry)
        with self.assertRaises(JournalEntryCreationError):
            reverse_journal_entry(reversal)


class PostingFailureRecordTests(TestCase):
    def test_failure_record_has_no_lines_and_is_not_active(self):
        entry = record_posting_failure(description="Could not resolve account", reference="INV-S0001")

        self.assertTrue(entry.is_posting_failure)
        self.assertEqual(entry.lines.count(), 0)
        self.assertFalse(is_reference_active("INV-S0001"))

    def test_failure_record_cannot_be_reversed(self):
        entry = record_posting_failure(description="Could not resolve account", reference="INV-S0002")
        with self.assertRaises(JournalEntryCreationError):
            reverse_journal_entry(entry)
