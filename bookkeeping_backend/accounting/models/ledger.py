# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
JOURNAL LINE MODEL

One debit or credit line of a journal entry against a single account.

Guarantees:
- Immutable once created (no updates, no deletes)
- Exactly one side is non-zero; both sides are >= 0
- Accounts referenced by lines cannot be deleted (PROTECT)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from accounting.models.account import Account
from accounting.models.journal import JournalEntry

ZERO = Decimal("0.00")


class JournalLine(models.Model):
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="lines",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    debit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )
    credit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )

    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["account"], name="jline_account_idx"),
            models.Index(fields=["journal_entry"], name="jline_entry_idx"),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{side} → {self.account}"

    def clean(self):
        debit = self.debit or ZERO
        credit = self.credit or ZERO

        if debit < 0 or credit < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if debit > 0 and credit > 0:
            raise ValidationError("A journal line cannot have both debit and credit")
        if debit == 0 and credit == 0:
            raise ValidationError("A journal line must have a debit or a credit")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalLine records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalLine records are immutable and cannot be deleted")
