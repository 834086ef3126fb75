# invoicing/models.py

"""
======================================================
PATH: invoicing/models.py
======================================================
INVOICING MODELS

Customers, suppliers, invoices (sales/purchase, incl. returns) and
settlement vouchers (receipt/payment).

Notes:
- Customer/Supplier.balance is the OPENING balance only. Invoices and
  vouchers that reference an invoice never touch it.
  Supplier balances owed are negative.
- Invoice.initial_paid_amount is what was paid directly at issuance.
  Invoice.paid_amount is derived (initial + surviving vouchers) by the
  settlement service and is clamped to total.
- Money is Decimal(14, 2).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from accounting.models.account import Account

TWOPLACES = Decimal("0.01")
MONEY_EPSILON = Decimal("0.001")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES)


def _money_field(**kwargs):
    return models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"), **kwargs
    )


# ============================================================
# PARTIES
# ============================================================


class Party(models.Model):
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    balance = _money_field(help_text="Opening balance (not affected by invoices)")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self):
        return self.name

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "Name is required"})


class Customer(Party):
    class Meta(Party.Meta):
        indexes = [
            models.Index(fields=["name"], name="customer_name_idx"),
            models.Index(fields=["is_active"], name="customer_active_idx"),
        ]


class Supplier(Party):
    class Meta(Party.Meta):
        indexes = [
            models.Index(fields=["name"], name="supplier_name_idx"),
            models.Index(fields=["is_active"], name="supplier_active_idx"),
        ]


# ============================================================
# INVOICE
# ============================================================


class InvoiceType(models.TextChoices):
    SALES = "sales", "Sales"
    PURCHASE = "purchase", "Purchase"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PARTIAL = "partial", "Partially paid"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    BANK = "bank", "Bank"
    CREDIT = "credit", "Credit"


class Invoice(models.Model):
    """
    Sales or purchase invoice header.

    Posting to the ledger is performed by accounting services:
    - paid invoices and returns post against cash/bank at issuance
    - deferred invoices post against the customer/supplier account
    """

    invoice_number = models.CharField(max_length=20, unique=True)
    invoice_type = models.CharField(max_length=10, choices=InvoiceType.choices)

    is_return = models.BooleanField(default=False)
    original_invoice = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="returns",
    )

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    subtotal = _money_field()
    discount_amount = _money_field()
    vat_amount = _money_field()
    total = _money_field()

    initial_paid_amount = _money_field(help_text="Paid directly at issuance")
    paid_amount = _money_field(help_text="Initial payment + surviving vouchers")

    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    payment_bank_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gte=Decimal("0.00")),
                name="invoice_total_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=Decimal("0.00")),
                name="invoice_paid_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["invoice_type", "date"], name="invoice_type_date_idx"),
            models.Index(fields=["payment_status"], name="invoice_status_idx"),
            models.Index(fields=["due_date"], name="invoice_due_date_idx"),
        ]

    def __str__(self):
        return self.invoice_number

    @property
    def is_sales(self) -> bool:
        return self.invoice_type == InvoiceType.SALES

    @property
    def entity(self):
        return self.customer if self.is_sales else self.supplier

    @property
    def entity_id(self):
        return self.customer_id if self.is_sales else self.supplier_id

    @property
    def remaining_amount(self) -> Decimal:
        return _money(self.total) - _money(self.paid_amount)

    @property
    def is_unpaid(self) -> bool:
        return self.payment_status != PaymentStatus.PAID

    def clean(self):
        if self.invoice_type == InvoiceType.SALES:
            if not self.customer_id:
                raise ValidationError({"customer": "Sales invoices require a customer"})
            if self.supplier_id:
                raise ValidationError({"supplier": "Sales invoices cannot have a supplier"})
        elif self.invoice_type == InvoiceType.PURCHASE:
            if not self.supplier_id:
                raise ValidationError({"supplier": "Purchase invoices require a supplier"})
            if self.customer_id:
                raise ValidationError({"customer": "Purchase invoices cannot have a customer"})

        for name in ("subtotal", "discount_amount", "vat_amount", "total"):
            if _money(getattr(self, name)) < 0:
                raise ValidationError({name: "Amount must be >= 0"})

        if _money(self.paid_amount) > _money(self.total) + MONEY_EPSILON:
            raise ValidationError({"paid_amount": "Paid amount cannot exceed total"})

        if self.due_date and self.date and self.due_date < self.date:
            raise ValidationError({"due_date": "Due date cannot be before invoice date"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


# ============================================================
# VOUCHER
# ============================================================


class VoucherType(models.TextChoices):
    RECEIPT = "receipt", "Receipt"
    PAYMENT = "payment", "Payment"


class Voucher(models.Model):
    """
    Receipt (from a customer) or payment (to a supplier).

    Settles a specific invoice when `invoice` is set, otherwise the
    entity's opening balance.
    """

    voucher_number = models.CharField(max_length=20, unique=True)
    voucher_type = models.CharField(max_length=10, choices=VoucherType.choices)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vouchers",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vouchers",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="vouchers",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    date = models.DateField(default=timezone.localdate)

    cash_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="+",
        help_text="Cash or bank account the money moved through",
    )

    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="voucher_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["voucher_type", "date"], name="voucher_type_date_idx"),
        ]

    def __str__(self):
        return self.voucher_number

    @property
    def is_receipt(self) -> bool:
        return self.voucher_type == VoucherType.RECEIPT

    @property
    def entity_id(self):
        return self.customer_id if self.is_receipt else self.supplier_id

    @property
    def settles_opening_balance(self) -> bool:
        return self.invoice_id is None
