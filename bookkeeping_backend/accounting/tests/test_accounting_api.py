# accounting/tests/test_accounting_api.py

from datetime import date

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.account_registry import ensure_account
from accounting.services.posting import create_manual_entry
from invoicing.models import Customer, InvoiceType
from invoicing.services.invoice_service import issue_invoice

User = get_user_model()


class AccountingApiTestBase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(username="admin", password="password123", email="a@example.com")
        self.clerk = User.objects.create_user(username="clerk", password="password123")

        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

        self.clerk_client = APIClient()
        self.clerk_client.force_authenticate(user=self.clerk)


class AccountApiTests(AccountingApiTestBase):
    def test_list_accounts_with_filters(self):
        ensure_account("1001")
        ensure_account("2001")

        res = self.client.get("/api/accounting/accounts/", {"account_type": "cash"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual([row["code"] for row in res.data], ["1001"])

    def test_create_account(self):
        ensure_account("5101")
        res = self.client.post(
            "/api/accounting/accounts/",
            {"code": "5102", "name": "Marketing", "account_type": "expense", "parent_code": "5101"},
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["parent_code"], "5101")
        self.assertTrue(Account.objects.filter(code="5102").exists())

    def test_create_account_with_unknown_parent(self):
        res = self.client.post(
            "/api/accounting/accounts/",
            {"code": "5102", "name": "Marketing", "account_type": "expense", "parent_code": "9999"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("parent_code", res.data)

    def test_plain_user_is_forbidden(self):
        self.assertEqual(self.clerk_client.get("/api/accounting/accounts/").status_code, 403)

    def test_granted_permission_allows_listing(self):
        self.clerk.user_permissions.add(Permission.objects.get(codename="view_account"))
        self.assertEqual(self.clerk_client.get("/api/accounting/accounts/").status_code, 200)

    def test_anonymous_rejected(self):
        self.assertIn(APIClient().get("/api/accounting/accounts/").status_code, (401, 403))


class JournalEntryApiTests(AccountingApiTestBase):
    def test_create_manual_entry(self):
        cash = ensure_account("1001")
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {
                "date": "2026-01-01",
                "description": "Owner capital",
                "lines": [
                    {"account_id": cash.pk, "debit": "500.00"},
                    {"account_code": "3001", "credit": "500.00"},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["entry_type"], "manual")
        self.assertEqual(len(res.data["lines"]), 2)
        self.assertEqual({line["account_code"] for line in res.data["lines"]}, {"1001", "3001"})

    def test_unbalanced_entry_rejected(self):
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {
                "description": "Broken",
                "lines": [
                    {"account_code": "1001", "debit": "10"},
                    {"account_code": "3001", "credit": "9"},
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_single_line_rejected_by_serializer(self):
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {"description": "One", "lines": [{"account_code": "1001", "debit": "10"}]},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("lines", res.data)

    def test_unknown_account_id(self):
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {
                "description": "Ghost",
                "lines": [{"account_id": 424242, "debit": "1"}, {"account_code": "3001", "credit": "1"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_reverse_entry(self):
        entry = create_manual_entry(
            entry_date=date(2026, 1, 1),
            description="Capital",
            reference="CAP-1",
            lines=[{"account_code": "1001", "debit": "10"}, {"account_code": "3001", "credit": "10"}],
        )

        res = self.client.post(f"/api/accounting/journal-entries/{entry.pk}/reverse/")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["reference"], "REV-CAP-1")
        self.assertEqual(res.data["original_entry"], entry.pk)

        again = self.client.post(f"/api/accounting/journal-entries/{entry.pk}/reverse/")
        self.assertEqual(again.status_code, 400)

    def test_reserved_reference_rejected(self):
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {
                "description": "Looks like a reversal",
                "reference": "REV-INV-S0001",
                "lines": [{"account_code": "1001", "debit": "5"}, {"account_code": "3001", "credit": "5"}],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertIn("reserved", res.data["detail"])
        self.assertFalse(JournalEntry.objects.exists())

    def test_invoice_entry_cannot_be_reversed_here(self):
        issue_invoice(
            invoice_type=InvoiceType.SALES,
            customer=Customer.objects.create(name="Acme"),
            subtotal="40",
            invoice_date=date(2026, 1, 3),
        )
        entry = JournalEntry.objects.get(reference="INV-S0001")

        res = self.client.post(f"/api/accounting/journal-entries/{entry.pk}/reverse/")

        self.assertEqual(res.status_code, 400)
        self.assertIn("cancel the invoice", res.data["detail"])

    def test_entries_cannot_be_deleted(self):
        entry = create_manual_entry(
            entry_date=date(2026, 1, 1),
            description="Capital",
            lines=[{"account_code": "1001", "debit": "10"}, {"account_code": "3001", "credit": "10"}],
        )
        res = self.client.delete(f"/api/accounting/journal-entries/{entry.pk}/")
        self.assertEqual(res.status_code, 405)

    def test_filter_lines_by_account(self):
        entry = create_manual_entry(
            entry_date=date(2026, 1, 1),
            description="Capital",
            lines=[{"account_code": "1001", "debit": "10"}, {"account_code": "3001", "credit": "10"}],
        )
        cash = Account.objects.get(code="1001")

        res = self.client.get("/api/accounting/journal-lines/", {"account": cash.pk})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["journal_entry"], entry.pk)

    def test_plain_user_cannot_list_entries(self):
        self.assertEqual(self.clerk_client.get("/api/accounting/journal-entries/").status_code, 403)


class ReportApiTests(AccountingApiTestBase):
    def setUp(self):
        super().setUp()
        create_manual_entry(
            entry_date=date(2026, 1, 1),
            description="Capital",
            lines=[{"account_code": "1001", "debit": "300"}, {"account_code": "3001", "credit": "300"}],
        )

    def test_trial_balance(self):
        res = self.client.get("/api/accounting/trial-balance/", {"as_of": "2026-01-31"})
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["totals"]["balanced"])
        self.assertEqual(res.data["totals"]["debit"], 300.0)

    def test_balance_sheet(self):
        res = self.client.get("/api/accounting/balance-sheet/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["balanced"])

    def test_income_statement_and_cash_flow(self):
        self.assertEqual(
            self.client.get("/api/accounting/income-statement/", {"start": "2026-01-01", "end": "2026-01-31"}).status_code,
            200,
        )
        res = self.client.get("/api/accounting/cash-flow/", {"start": "2026-01-01", "end": "2026-01-31"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["inflow"], 300.0)

    def test_bad_dates(self):
        self.assertEqual(self.client.get("/api/accounting/trial-balance/", {"as_of": "31/01/2026"}).status_code, 400)
        self.assertEqual(self.client.get("/api/accounting/trial-balance/", {"as_of": "2026-02-30"}).status_code, 400)
        res = self.client.get("/api/accounting/cash-flow/", {"start": "2026-02-01", "end": "2026-01-01"})
        self.assertEqual(res.status_code, 400)

    def test_plain_user_forbidden(self):
        self.assertEqual(self.clerk_client.get("/api/accounting/trial-balance/").status_code, 403)


class StatementApiTests(AccountingApiTestBase):
    def test_account_statement(self):
        create_manual_entry(
            entry_date=date(2026, 1, 1),
            description="Capital",
            lines=[{"account_code": "1001", "debit": "300"}, {"account_code": "3001", "credit": "300"}],
        )
        cash = Account.objects.get(code="1001")

        res = self.client.get(f"/api/accounting/accounts/{cash.pk}/statement/", {"start": "2026-01-01"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["closing_balance"], "300.00")
        self.assertEqual(len(res.data["lines"]), 1)

    def test_account_statement_unknown_account(self):
        self.assertEqual(self.client.get("/api/accounting/accounts/999999/statement/").status_code, 404)

    def test_entity_statement(self):
        customer = Customer.objects.create(name="Acme")
        issue_invoice(
            invoice_type=InvoiceType.SALES,
            customer=customer,
            subtotal="40",
            invoice_date=date(2026, 1, 3),
        )

        res = self.client.get(f"/api/accounting/statements/customer/{customer.pk}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["subject"]["name"], "Acme")
        self.assertEqual([line["kind"] for line in res.data["lines"]], ["invoice", "initial_payment"])
        self.assertEqual(res.data["closing_balance"], "0.00")

    def test_entity_statement_not_found(self):
        self.assertEqual(self.client.get("/api/accounting/statements/customer/999999/").status_code, 404)
        self.assertEqual(self.client.get("/api/accounting/statements/employee/1/").status_code, 404)

    def test_entity_statement_requires_view_permission(self):
        customer = Customer.objects.create(name="Acme")
        res = self.clerk_client.get(f"/api/accounting/statements/customer/{customer.pk}/")
        self.assertEqual(res.status_code, 403)


class PublicEndpointTests(TestCase):
    def test_health_and_index_are_public(self):
        client = APIClient()

        res = client.get("/api/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"status": "ok"})

        res = client.get("/api/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["modules"]["accounting"], "/api/accounting/")
