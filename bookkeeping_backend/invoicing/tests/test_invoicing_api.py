# invoicing/tests/test_invoicing_api.py

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounting.services.account_registry import ensure_account
from invoicing.models import Customer, Invoice, Supplier, Voucher

User = get_user_model()


class InvoicingApiTestBase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(username="admin", password="password123", email="a@example.com")
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

        self.customer = Customer.objects.create(name="Acme")
        self.supplier = Supplier.objects.create(name="Initech")
        self.cash = ensure_account("1001")

    def issue(self, **payload):
        body = {
            "invoice_type": "sales",
            "customer_id": self.customer.pk,
            "subtotal": "100.00",
            "payment_method": "credit",
            "date": "2026-01-10",
        }
        body.update(payload)
        return self.client.post("/api/invoicing/invoices/", body, format="json")

    def settle(self, invoice_id, amount, **payload):
        body = {
            "voucher_type": "receipt",
            "amount": amount,
            "cash_account_id": self.cash.pk,
            "customer_id": self.customer.pk,
            "invoice_id": invoice_id,
            "date": "2026-01-15",
        }
        body.update(payload)
        return self.client.post("/api/invoicing/vouchers/", body, format="json")


class InvoiceApiTests(InvoicingApiTestBase):
    def test_issue_invoice(self):
        res = self.issue(vat_amount="15.00")

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["invoice_number"], "S0001")
        self.assertEqual(res.data["total"], "115.00")
        self.assertEqual(res.data["payment_status"], "pending")
        self.assertEqual(res.data["remaining_amount"], "115.00")
        self.assertEqual(res.data["entity_name"], "Acme")

    def test_validation_error_points_at_field(self):
        res = self.issue(customer_id=None)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "customer")

        res = self.issue(customer_id=999999)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "customer")

        res = self.issue(total="1.00")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "total")

        res = self.issue(due_date="2026-01-01")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data, {"field": "due_date", "message": "Due date cannot be before invoice date"})
        self.assertFalse(Invoice.objects.exists())

    def test_list_and_filter(self):
        self.issue()
        self.issue(invoice_type="purchase", customer_id=None, supplier_id=self.supplier.pk)

        res = self.client.get("/api/invoicing/invoices/", {"invoice_type": "purchase"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["invoice_number"], "P0001")

    def test_cancel_invoice(self):
        invoice_id = self.issue().data["id"]

        res = self.client.delete(f"/api/invoicing/invoices/{invoice_id}/")

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["reference"], "REV-INV-S0001")
        self.assertFalse(Invoice.objects.filter(pk=invoice_id).exists())

    def test_cancel_blocked_by_voucher(self):
        invoice_id = self.issue().data["id"]
        self.assertEqual(self.settle(invoice_id, "10.00").status_code, 201)

        res = self.client.delete(f"/api/invoicing/invoices/{invoice_id}/")

        self.assertEqual(res.status_code, 400)
        self.assertIn("vouchers", res.data["detail"])

    @override_settings(ACCOUNTING_POST_DEFERRED_ON_ISSUE=False)
    def test_explicit_post(self):
        invoice_id = self.issue().data["id"]

        res = self.client.post(f"/api/invoicing/invoices/{invoice_id}/post/")

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["reference"], "INV-S0001")
        self.assertEqual(res.data["entry_type"], "invoice")

    def test_notifications_and_refresh(self):
        self.issue(date="2026-01-01", due_date="2026-01-05")

        res = self.client.get("/api/invoicing/invoices/notifications/", {"today": "2026-01-10", "days": "3"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["overdue"]["count"], 1)

        self.assertEqual(
            self.client.get("/api/invoicing/invoices/notifications/", {"days": "many"}).status_code, 400
        )
        self.assertEqual(
            self.client.get("/api/invoicing/invoices/notifications/", {"days": "-1"}).status_code, 400
        )

        res = self.client.post("/api/invoicing/invoices/refresh-overdue/")
        self.assertEqual(res.status_code, 200)
        # already overdue at issuance
        self.assertEqual(res.data, {"updated": 0})


class VoucherApiTests(InvoicingApiTestBase):
    def test_settle_and_reverse(self):
        invoice_id = self.issue().data["id"]

        res = self.settle(invoice_id, "40.00")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["voucher_number"], "RV-0001")
        self.assertEqual(res.data["invoice_update"]["status"], "partial")
        self.assertEqual(res.data["voucher"]["invoice_number"], "S0001")
        self.assertFalse(res.data["posting_failed"])

        voucher_id = res.data["voucher_id"]
        res = self.client.delete(f"/api/invoicing/vouchers/{voucher_id}/")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["invoice_update"]["status"], "pending")
        self.assertFalse(Voucher.objects.filter(pk=voucher_id).exists())

    def test_overpayment_returns_field_error(self):
        invoice_id = self.issue().data["id"]

        res = self.settle(invoice_id, "120.00")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "amount")
        self.assertEqual(Voucher.objects.count(), 0)

    def test_unknown_cash_account(self):
        invoice_id = self.issue().data["id"]
        res = self.settle(invoice_id, "10.00", cash_account_id=999999)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "cash_account")

    def test_opening_balance_payment(self):
        self.supplier.balance = "-80.00"
        self.supplier.save()

        res = self.client.post(
            "/api/invoicing/vouchers/",
            {"voucher_type": "payment", "amount": "30.00", "cash_account_id": self.cash.pk, "supplier_id": self.supplier.pk},
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["entity_balance_update"]["balance"], "-50.00")


class PartyApiTests(InvoicingApiTestBase):
    def test_create_customer(self):
        res = self.client.post("/api/invoicing/customers/", {"name": "Globex", "balance": "25.00"}, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["balance"], "25.00")

    def test_open_account(self):
        res = self.client.post(f"/api/invoicing/customers/{self.customer.pk}/open-account/")

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["code"], "1101-0001")
        self.assertEqual(res.data["linked_entity_id"], self.customer.pk)

        again = self.client.post(f"/api/invoicing/customers/{self.customer.pk}/open-account/")
        self.assertEqual(again.data["id"], res.data["id"])

        res = self.client.post(f"/api/invoicing/suppliers/{self.supplier.pk}/open-account/")
        self.assertEqual(res.data["code"], "2001-0001")

    def test_delete_with_history_deactivates(self):
        self.issue()

        res = self.client.delete(f"/api/invoicing/customers/{self.customer.pk}/")

        self.assertEqual(res.status_code, 200)
        self.customer.refresh_from_db()
        self.assertFalse(self.customer.is_active)

    def test_delete_without_history(self):
        res = self.client.delete(f"/api/invoicing/suppliers/{self.supplier.pk}/")
        self.assertEqual(res.status_code, 204)
        self.assertFalse(Supplier.objects.filter(pk=self.supplier.pk).exists())


class InvoicingPermissionTests(InvoicingApiTestBase):
    def setUp(self):
        super().setUp()
        self.clerk = User.objects.create_user(username="clerk", password="password123")
        self.clerk_client = APIClient()
        self.clerk_client.force_authenticate(user=self.clerk)

    def test_model_permissions_are_enforced(self):
        self.assertEqual(self.clerk_client.get("/api/invoicing/invoices/").status_code, 403)
        self.assertEqual(
            self.clerk_client.post("/api/invoicing/customers/", {"name": "X"}, format="json").status_code, 403
        )

        self.clerk.user_permissions.add(Permission.objects.get(codename="view_invoice"))
        # fresh instance; has_perm caches per user object
        self.clerk_client.force_authenticate(user=User.objects.get(pk=self.clerk.pk))
        self.assertEqual(self.clerk_client.get("/api/invoicing/invoices/").status_code, 200)
        self.assertEqual(
            self.clerk_client.post("/api/invoicing/invoices/", {}, format="json").status_code, 403
        )

    def test_anonymous_rejected(self):
        self.assertIn(APIClient().get("/api/invoicing/customers/").status_code, (401, 403))
