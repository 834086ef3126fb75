# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- Immutable once created (no updates, no deletes)
- entry_number is monotonic (allocated by the ledger store)
- A reversal is a new entry pointing at original_entry, with
  reference "REV-" + original reference
- A posting failure is an entry with no lines and a diagnostic description
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

REVERSAL_PREFIX = "REV-"


class EntryType(models.TextChoices):
    MANUAL = "manual", "Manual"
    INVOICE = "invoice", "Invoice"
    RECEIPT_VOUCHER = "receipt_voucher", "Receipt voucher"
    PAYMENT_VOUCHER = "payment_voucher", "Payment voucher"
    REVERSAL = "reversal", "Reversal"
    POSTING_FAILURE = "posting_failure", "Posting failure"


class JournalEntry(models.Model):
    entry_number = models.PositiveIntegerField(unique=True)

    date = models.DateField(
        default=timezone.localdate,
        help_text="Accounting effective date",
    )

    description = models.TextField(help_text="Narrative description of the journal entry")

    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Source document reference (INV-S0001, RV-0001, REV-..., etc.)",
    )

    entry_type = models.CharField(
        max_length=20,
        choices=EntryType.choices,
        default=EntryType.MANUAL,
    )

    related_voucher_id = models.PositiveBigIntegerField(
        blank=True,
        null=True,
        help_text="Voucher this entry was posted for (voucher entries only)",
    )

    original_entry = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="reversals",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when the journal entry was created",
    )

    class Meta:
        ordering = ["date", "entry_number"]
        indexes = [
            models.Index(fields=["date"], name="journal_date_idx"),
            models.Index(fields=["reference"], name="journal_reference_idx"),
            models.Index(fields=["entry_type"], name="journal_entry_type_idx"),
            models.Index(fields=["related_voucher_id"], name="journal_voucher_idx"),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JE-{self.entry_number} – {self.date}"

    @property
    def is_posting_failure(self) -> bool:
        return self.entry_type == EntryType.POSTING_FAILURE

    @property
    def is_reversal(self) -> bool:
        return self.entry_type == EntryType.REVERSAL

    def clean(self):
        self.reference = (self.reference or "").strip()

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.entry_type == EntryType.REVERSAL and not self.original_entry_id:
            raise ValidationError("A reversal entry must reference its original entry")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
