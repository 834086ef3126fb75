# accounting/models/account.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class AccountType(models.TextChoices):
    ASSET = "asset", "Asset"
    LIABILITY = "liability", "Liability"
    EQUITY = "equity", "Equity"
    REVENUE = "revenue", "Revenue"
    EXPENSE = "expense", "Expense"
    BANK = "bank", "Bank"
    CASH = "cash", "Cash"


class LinkedEntityType(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    SUPPLIER = "supplier", "Supplier"


class Account(models.Model):
    """
    Represents a single account within the chart of accounts.

    Guarantees:
    - Account codes are unique
    - Code + name are normalized (trimmed)
    - A sub-account points at its parent by code (parent_code); reporting
      roll-ups use the root parent's type
    - An account may be linked to a single customer or supplier
    """

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
    )

    parent_code = models.CharField(
        max_length=20,
        blank=True,
        null=True,
        help_text="Code of the parent account (sub-accounts only)",
    )

    linked_entity_type = models.CharField(
        max_length=20,
        choices=LinkedEntityType.choices,
        blank=True,
        null=True,
    )
    linked_entity_id = models.PositiveBigIntegerField(blank=True, null=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"], name="account_type_idx"),
            models.Index(fields=["parent_code"], name="account_parent_code_idx"),
            models.Index(fields=["linked_entity_type", "linked_entity_id"], name="account_linked_entity_idx"),
            models.Index(fields=["is_active"], name="account_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_cash_or_bank(self) -> bool:
        return self.account_type in (AccountType.CASH, AccountType.BANK)

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()
        self.parent_code = (self.parent_code or "").strip() or None

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")
        if self.parent_code and self.parent_code == self.code:
            raise ValidationError("An account cannot be its own parent")
        if bool(self.linked_entity_type) != bool(self.linked_entity_id):
            raise ValidationError(
                "linked_entity_type and linked_entity_id must be set together"
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
