import decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14, **kwargs)


def _party_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("name", models.CharField(max_length=200)),
        ("phone", models.CharField(blank=True, default="", max_length=50)),
        ("email", models.EmailField(blank=True, default="", max_length=254)),
        ("address", models.TextField(blank=True, default="")),
        ("balance", _money(help_text="Opening balance (not affected by invoices)")),
        ("is_active", models.BooleanField(default=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounting", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=_party_fields(),
            options={
                "ordering": ["name"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["name"], name="customer_name_idx"),
                    models.Index(fields=["is_active"], name="customer_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=_party_fields(),
            options={
                "ordering": ["name"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["name"], name="supplier_name_idx"),
                    models.Index(fields=["is_active"], name="supplier_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=20, unique=True)),
                (
                    "invoice_type",
                    models.CharField(choices=[("sales", "Sales"), ("purchase", "Purchase")], max_length=10),
                ),
                ("is_return", models.BooleanField(default=False)),
                ("subtotal", _money()),
                ("discount_amount", _money()),
                ("vat_amount", _money()),
                ("total", _money()),
                ("initial_paid_amount", _money(help_text="Paid directly at issuance")),
                ("paid_amount", _money(help_text="Initial payment + surviving vouchers")),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partially paid"),
                            ("paid", "Paid"),
                            ("overdue", "Overdue"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("bank", "Bank"), ("credit", "Credit")],
                        default="cash",
                        max_length=10,
                    ),
                ),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="invoicing.customer",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="invoicing.supplier",
                    ),
                ),
                (
                    "original_invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="returns",
                        to="invoicing.invoice",
                    ),
                ),
                (
                    "payment_bank_account",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["invoice_type", "date"], name="invoice_type_date_idx"),
                    models.Index(fields=["payment_status"], name="invoice_status_idx"),
                    models.Index(fields=["due_date"], name="invoice_due_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total__gte", decimal.Decimal("0.00"))),
                        name="invoice_total_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", decimal.Decimal("0.00"))),
                        name="invoice_paid_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voucher_number", models.CharField(max_length=20, unique=True)),
                (
                    "voucher_type",
                    models.CharField(choices=[("receipt", "Receipt"), ("payment", "Payment")], max_length=10),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "cash_account",
                    models.ForeignKey(
                        help_text="Cash or bank account the money moved through",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="accounting.account",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="vouchers",
                        to="invoicing.customer",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="vouchers",
                        to="invoicing.supplier",
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="vouchers",
                        to="invoicing.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["voucher_type", "date"], name="voucher_type_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", decimal.Decimal("0.00"))),
                        name="voucher_amount_positive",
                    ),
                ],
            },
        ),
    ]
