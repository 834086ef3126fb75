# invoicing/tests/test_invoice_service.py

from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone

from accounting.models.journal import EntryType, JournalEntry
from accounting.services.account_registry import ensure_account
from accounting.services.exceptions import InvoiceCancellationError, InvoiceValidationError
from accounting.services.journal_entry_service import find_active_entry
from accounting.services.settlement_service import settle_voucher
from invoicing.models import Customer, Invoice, InvoiceType, PaymentMethod, PaymentStatus, Supplier, VoucherType
from invoicing.services.invoice_service import (
    cancel_invoice,
    issue_invoice,
    post_invoice_now,
    refresh_overdue_statuses,
)

D = Decimal


class IssueInvoiceTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(name="Acme")
        self.supplier = Supplier.objects.create(name="Initech")

    def issue(self, **kwargs):
        params = {
            "invoice_type": InvoiceType.SALES,
            "customer": self.customer,
            "subtotal": "100",
            "invoice_date": date(2026, 1, 10),
        }
        params.update(kwargs)
        return issue_invoice(**params)

    def test_total_derived_from_parts(self):
        invoice = self.issue(vat_amount="15", discount_amount="5")

        self.assertEqual(invoice.total, D("110.00"))
        self.assertEqual(invoice.invoice_number, "S0001")
        self.assertEqual(invoice.payment_status, PaymentStatus.PAID)
        self.assertEqual(invoice.paid_amount, D("110.00"))
        self.assertEqual(invoice.initial_paid_amount, D("110.00"))

    def test_credit_invoice_starts_pending(self):
        invoice = self.issue(payment_method=PaymentMethod.CREDIT, due_date=date(2099, 1, 1))
        self.assertEqual(invoice.payment_status, PaymentStatus.PENDING)
        self.assertEqual(invoice.paid_amount, D("0.00"))

    def test_credit_invoice_already_past_due_is_overdue(self):
        invoice = self.issue(
            payment_method=PaymentMethod.CREDIT,
            invoice_date=date(2020, 1, 1),
            due_date=date(2020, 1, 31),
        )
        self.assertEqual(invoice.payment_status, PaymentStatus.OVERDUE)

    def test_partial_payment_at_issuance(self):
        invoice = self.issue(paid_amount="25")
        self.assertEqual(invoice.payment_status, PaymentStatus.PARTIAL)
        self.assertEqual(invoice.remaining_amount, D("75.00"))

    def test_partial_payment_past_due_is_overdue(self):
        invoice = self.issue(
            paid_amount="30",
            payment_method=PaymentMethod.CREDIT,
            invoice_date=date(2020, 1, 1),
            due_date=date(2020, 1, 31),
        )
        self.assertEqual(invoice.payment_status, PaymentStatus.OVERDUE)
        self.assertEqual(invoice.paid_amount, D("30.00"))

    def test_return_is_refunded_in_full(self):
        invoice = self.issue(subtotal="30", is_return=True, payment_method=PaymentMethod.CREDIT)
        self.assertEqual(invoice.payment_status, PaymentStatus.PAID)
        self.assertEqual(invoice.paid_amount, D("30.00"))

    def test_numbering_per_type(self):
        self.issue()
        self.issue()
        purchase = self.issue(invoice_type=InvoiceType.PURCHASE, customer=None, supplier=self.supplier)
        self.assertEqual(purchase.invoice_number, "P0001")
        self.assertEqual(
            list(Invoice.objects.filter(invoice_type=InvoiceType.SALES).order_by("id").values_list("invoice_number", flat=True)),
            ["S0001", "S0002"],
        )

    @override_settings(ACCOUNTING_POST_DEFERRED_ON_ISSUE=False)
    def test_deferred_invoice_left_unposted_when_disabled(self):
        invoice = self.issue(payment_method=PaymentMethod.CREDIT)
        self.assertIsNone(find_active_entry("INV-" + invoice.invoice_number))

        entry = post_invoice_now(invoice.pk)
        self.assertEqual(entry.entry_type, EntryType.INVOICE)
        self.assertEqual(find_active_entry("INV-" + invoice.invoice_number), entry)

    def test_post_invoice_now_unknown(self):
        with self.assertRaises(InvoiceValidationError):
            post_invoice_now(999999)

    def assertRejected(self, field, **kwargs):
        with self.assertRaises(InvoiceValidationError) as ctx:
            self.issue(**kwargs)
        self.assertEqual(ctx.exception.field, field)
        self.assertEqual(Invoice.objects.count(), 0)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_validation(self):
        self.assertRejected("invoice_type", invoice_type="quote")
        self.assertRejected("payment_method", payment_method="barter")
        self.assertRejected("customer", customer=None)
        self.assertRejected("supplier", invoice_type=InvoiceType.PURCHASE, customer=None)
        self.assertRejected("subtotal", subtotal="-1")
        self.assertRejected("subtotal", subtotal="ten")
        self.assertRejected("discount_amount", discount_amount="150")
        self.assertRejected("total", total="99")
        self.assertRejected("paid_amount", paid_amount="101")
        self.assertRejected("payment_bank_account", payment_bank_account=ensure_account("4001"))
        self.assertRejected("due_date", due_date=date(2026, 1, 9))

    def test_original_invoice_rules(self):
        original = self.issue()
        self.assertRejected_with_existing("original_invoice", original_invoice=original)
        other_type = self.issue(invoice_type=InvoiceType.PURCHASE, customer=None, supplier=self.supplier)
        self.assertRejected_with_existing("original_invoice", original_invoice=other_type, is_return=True)

        ret = self.issue(subtotal="10", is_return=True, original_invoice=original)
        self.assertEqual(ret.original_invoice, original)

    def assertRejected_with_existing(self, field, **kwargs):
        before = Invoice.objects.count()
        with self.assertRaises(InvoiceValidationError) as ctx:
            self.issue(**kwargs)
        self.assertEqual(ctx.exception.field, field)
        self.assertEqual(Invoice.objects.count(), before)


class CancelInvoiceTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(name="Acme")
        self.invoice = issue_invoice(
            invoice_type=InvoiceType.SALES,
            customer=self.customer,
            subtotal="60",
            payment_method=PaymentMethod.CREDIT,
            invoice_date=date(2026, 1, 10),
        )

    def test_cancel_reverses_posting(self):
        reference = "INV-" + self.invoice.invoice_number
        original = find_active_entry(reference)

        reversal = cancel_invoice(self.invoice.pk)

        self.assertEqual(reversal.reference, "REV-" + reference)
        self.assertEqual(reversal.original_entry_id, original.pk)
        self.assertIsNone(find_active_entry(reference))
        self.assertFalse(Invoice.objects.filter(pk=self.invoice.pk).exists())

    @override_settings(ACCOUNTING_POST_DEFERRED_ON_ISSUE=False)
    def test_cancel_unposted_invoice(self):
        invoice = issue_invoice(
            invoice_type=InvoiceType.SALES,
            customer=self.customer,
            subtotal="5",
            payment_method=PaymentMethod.CREDIT,
            invoice_date=date(2026, 1, 10),
        )
        self.assertIsNone(cancel_invoice(invoice.pk))
        self.assertFalse(Invoice.objects.filter(pk=invoice.pk).exists())

    def test_cancel_blocked_by_vouchers(self):
        settle_voucher(
            voucher_type=VoucherType.RECEIPT,
            amount="10",
            cash_account=ensure_account("1001"),
            customer=self.customer,
            invoice=self.invoice,
            voucher_date=date(2026, 1, 11),
        )

        with self.assertRaises(InvoiceCancellationError):
            cancel_invoice(self.invoice.pk)
        self.assertTrue(Invoice.objects.filter(pk=self.invoice.pk).exists())
        self.assertIsNotNone(find_active_entry("INV-" + self.invoice.invoice_number))

    def test_cancel_unknown(self):
        with self.assertRaises(InvoiceCancellationError):
            cancel_invoice(999999)


class OverdueRefreshTests(TestCase):
    def test_past_due_unpaid_invoices_become_overdue(self):
        customer = Customer.objects.create(name="Acme")
        today = timezone.localdate()

        def credit(due, paid=None):
            return issue_invoice(
                invoice_type=InvoiceType.SALES,
                customer=customer,
                subtotal="100",
                paid_amount=paid,
                payment_method=PaymentMethod.CREDIT,
                invoice_date=today - timedelta(days=30),
                due_date=due,
            )

        # created while still in time
        late = credit(today + timedelta(days=5))
        late_partial = credit(today + timedelta(days=5), paid="20")
        on_time = credit(today + timedelta(days=40))
        no_due = credit(None)

        self.assertEqual(refresh_overdue_statuses(today=today + timedelta(days=10)), 2)

        statuses = {
            inv.pk: inv.payment_status
            for inv in Invoice.objects.filter(pk__in=[late.pk, late_partial.pk, on_time.pk, no_due.pk])
        }
        self.assertEqual(statuses[late.pk], PaymentStatus.OVERDUE)
        self.assertEqual(statuses[late_partial.pk], PaymentStatus.OVERDUE)
        self.assertEqual(statuses[on_time.pk], PaymentStatus.PENDING)
        self.assertEqual(statuses[no_due.pk], PaymentStatus.PENDING)

        # idempotent
        self.assertEqual(refresh_overdue_statuses(today=today + timedelta(days=10)), 0)
