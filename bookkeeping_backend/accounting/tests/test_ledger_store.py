# accounting/tests/test_ledger_store.py

from datetime import date

from django.test import TestCase

from accounting.services.account_registry import ensure_account
from accounting.services.ledger_store import LedgerStore, ledger_store
from accounting.services.settlement_service import reverse_voucher, settle_voucher
from accounting.signals import ledger_changed
from invoicing.models import Customer, InvoiceType, PaymentMethod, Voucher, VoucherType
from invoicing.services.invoice_service import cancel_invoice, issue_invoice


class NumberingTests(TestCase):
    def test_invoice_numbers_are_per_type(self):
        customer = Customer.objects.create(name="Acme")
        first = issue_invoice(
            invoice_type=InvoiceType.SALES, customer=customer, subtotal="1", invoice_date=date(2026, 1, 1)
        )
        second = issue_invoice(
            invoice_type=InvoiceType.SALES, customer=customer, subtotal="1", invoice_date=date(2026, 1, 1)
        )

        self.assertEqual((first.invoice_number, second.invoice_number), ("S0001", "S0002"))
        self.assertEqual(ledger_store.next_number("invoice", InvoiceType.PURCHASE), "P0001")

    def test_voucher_numbers(self):
        self.assertEqual(ledger_store.next_number("voucher", VoucherType.RECEIPT), "RV-0001")
        self.assertEqual(ledger_store.next_number("voucher", VoucherType.PAYMENT), "PV-0001")

    def test_numbers_of_deleted_documents_are_not_reissued(self):
        customer = Customer.objects.create(name="Acme")
        cash = ensure_account("1001")
        invoice = issue_invoice(
            invoice_type=InvoiceType.SALES,
            customer=customer,
            subtotal="50",
            payment_method=PaymentMethod.CREDIT,
            invoice_date=date(2026, 1, 1),
        )

        def receipt():
            return settle_voucher(
                voucher_type=VoucherType.RECEIPT,
                amount="10",
                cash_account=cash,
                customer=customer,
                invoice=invoice,
                voucher_date=date(2026, 1, 2),
            ).voucher

        first = receipt()
        reverse_voucher(first.pk)
        second = receipt()
        self.assertEqual(second.voucher_number, "RV-0002")

        self.assertEqual(invoice.invoice_number, "S0001")
        reverse_voucher(second.pk)
        self.assertFalse(Voucher.objects.exists())
        cancel_invoice(invoice.pk)
        again = issue_invoice(
            invoice_type=InvoiceType.SALES, customer=customer, subtotal="5", invoice_date=date(2026, 1, 3)
        )
        self.assertEqual(again.invoice_number, "S0002")

    def test_journal_numbers_start_at_one(self):
        self.assertEqual(ledger_store.next_number("journal_entry"), 1)

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            ledger_store.next_number("receipt")

    def test_unknown_collection(self):
        with self.assertRaises(KeyError):
            ledger_store.get_collection("products")

    def test_wrong_document_type(self):
        with self.assertRaises(TypeError):
            ledger_store.save_collection("invoices", [Customer(name="Acme")])


class ChangeNotificationTests(TestCase):
    def setUp(self):
        self.received = []
        ledger_changed.connect(self._receiver)
        self.addCleanup(ledger_changed.disconnect, self._receiver)

    def _receiver(self, sender, operation, signal=None, **payload):
        self.received.append((operation, payload))

    def test_one_notification_per_public_operation(self):
        customer = Customer.objects.create(name="Acme")

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            invoice = issue_invoice(
                invoice_type=InvoiceType.SALES,
                customer=customer,
                subtotal="10",
                invoice_date=date(2026, 1, 1),
            )

        # issue_invoice -> post_invoice -> create_journal_entry all nest
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(self.received), 1)
        operation, payload = self.received[0]
        self.assertEqual(operation, "issue_invoice")
        self.assertEqual(payload["invoice_id"], invoice.pk)
        self.assertIn("journal_entry_id", payload)

    def test_nested_operations_share_one_callback(self):
        store = LedgerStore()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with store.operation("outer", marker=1):
                self.assertEqual(store.depth, 1)
                with store.operation("inner"):
                    self.assertEqual(store.depth, 2)

        self.assertEqual(store.depth, 0)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(self.received, [("outer", {"marker": 1})])

    def test_failed_operation_does_not_notify(self):
        store = LedgerStore()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(RuntimeError):
                with store.operation("doomed"):
                    raise RuntimeError("boom")

        self.assertEqual(callbacks, [])
        self.assertEqual(self.received, [])
        self.assertEqual(store.depth, 0)
