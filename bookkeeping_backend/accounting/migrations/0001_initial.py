import decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("asset", "Asset"),
                            ("liability", "Liability"),
                            ("equity", "Equity"),
                            ("revenue", "Revenue"),
                            ("expense", "Expense"),
                            ("bank", "Bank"),
                            ("cash", "Cash"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "parent_code",
                    models.CharField(
                        blank=True,
                        help_text="Code of the parent account (sub-accounts only)",
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "linked_entity_type",
                    models.CharField(
                        blank=True,
                        choices=[("customer", "Customer"), ("supplier", "Supplier")],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("linked_entity_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["account_type"], name="account_type_idx"),
                    models.Index(fields=["parent_code"], name="account_parent_code_idx"),
                    models.Index(fields=["linked_entity_type", "linked_entity_id"], name="account_linked_entity_idx"),
                    models.Index(fields=["is_active"], name="account_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("code", ""), _negated=True), name="chk_account_code_not_blank"),
                    models.CheckConstraint(condition=models.Q(("name", ""), _negated=True), name="chk_account_name_not_blank"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_number", models.PositiveIntegerField(unique=True)),
                (
                    "date",
                    models.DateField(default=django.utils.timezone.localdate, help_text="Accounting effective date"),
                ),
                ("description", models.TextField(help_text="Narrative description of the journal entry")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Source document reference (INV-S0001, RV-0001, REV-..., etc.)",
                        max_length=100,
                    ),
                ),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("manual", "Manual"),
                            ("invoice", "Invoice"),
                            ("receipt_voucher", "Receipt voucher"),
                            ("payment_voucher", "Payment voucher"),
                            ("reversal", "Reversal"),
                            ("posting_failure", "Posting failure"),
                        ],
                        default="manual",
                        max_length=20,
                    ),
                ),
                (
                    "related_voucher_id",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Voucher this entry was posted for (voucher entries only)",
                        null=True,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, help_text="Timestamp when the journal entry was created"),
                ),
                (
                    "original_entry",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversals",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["date", "entry_number"],
                "indexes": [
                    models.Index(fields=["date"], name="journal_date_idx"),
                    models.Index(fields=["reference"], name="journal_reference_idx"),
                    models.Index(fields=["entry_type"], name="journal_entry_type_idx"),
                    models.Index(fields=["related_voucher_id"], name="journal_voucher_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "debit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Line",
                "verbose_name_plural": "Journal Lines",
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["account"], name="jline_account_idx"),
                    models.Index(fields=["journal_entry"], name="jline_entry_idx"),
                ],
            },
        ),
    ]
