# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create JournalLine
- Enforce debit == credit
- Create reversals (debit/credit swapped, reference "REV-" + original)
- Record posting failures (entry with no lines + diagnostic description)
- Answer "is there an ACTIVE entry for this reference?"

Everything else (invoice posting, vouchers, manual entries) must pass
through here.

Active vs reversed:
- Posting, reversing and re-posting the same document is allowed.
- An entry is active while nothing reverses it through original_entry.
  Reversals and posting-failure records are never active. References alone
  are not trusted, since manual entries carry free-text references.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import REVERSAL_PREFIX, EntryType, JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.exceptions import (
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.ledger_store import LedgerStore, ledger_store

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")
MONEY_EPSILON = Decimal("0.001")


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _normalize_postings(postings: list) -> list[dict]:
    if not postings:
        raise JournalEntryCreationError("Journal entry must contain at least one posting")

    normalized: list[dict] = []
    for line in postings:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each posting must be an object/dict")

        account = line.get("account")
        if not isinstance(account, Account):
            raise JournalEntryCreationError("Posting missing account")

        if not account.is_active:
            raise JournalEntryCreationError(f"Account {account.code} is inactive")

        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")
        if debit > 0 and credit > 0:
            raise JournalEntryCreationError("A posting cannot have both debit and credit")
        if debit == 0 and credit == 0:
            raise JournalEntryCreationError("A posting must have either debit or credit")
        if 0 < debit < MIN_LINE_AMOUNT or 0 < credit < MIN_LINE_AMOUNT:
            raise JournalEntryCreationError("Posting amount too small")

        normalized.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "description": (line.get("description") or "").strip()[:255],
            }
        )
    return normalized


def assert_balanced(postings: list[dict]) -> tuple[Decimal, Decimal]:
    total_debits = sum((p["debit"] for p in postings), Decimal("0.00"))
    total_credits = sum((p["credit"] for p in postings), Decimal("0.00"))

    if abs(total_debits - total_credits) > MONEY_EPSILON:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debits} credits={total_credits}"
        )
    return total_debits, total_credits


def create_journal_entry(
    *,
    description: str,
    postings: list,
    reference: str = "",
    entry_type: str = EntryType.MANUAL,
    entry_date: date | None = None,
    related_voucher_id=None,
    original_entry: JournalEntry | None = None,
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    normalized = _normalize_postings(postings)
    assert_balanced(normalized)

    with store.operation("create_journal_entry") as payload:
        entry = JournalEntry(
            entry_number=store.next_number("journal_entry"),
            date=entry_date or timezone.localdate(),
            description=description,
            reference=(reference or "").strip(),
            entry_type=entry_type,
            related_voucher_id=related_voucher_id,
            original_entry=original_entry,
        )
        store.save_collection("journalEntries", [entry])

        JournalLine.objects.bulk_create(
            [
                JournalLine(
                    journal_entry=entry,
                    account=p["account"],
                    debit=p["debit"],
                    credit=p["credit"],
                    description=p["description"],
                )
                for p in normalized
            ]
        )
        payload["journal_entry_id"] = entry.pk

    logger.info(
        "Journal entry posted",
        extra={
            "entry_number": entry.entry_number,
            "reference": entry.reference,
            "entry_type": entry.entry_type,
        },
    )
    return entry


def record_posting_failure(
    *,
    description: str,
    reference: str = "",
    entry_date: date | None = None,
    related_voucher_id=None,
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    """
    Persist a diagnostic entry with NO lines so the audit trail shows the
    failed attempt. Callers must check `entry.is_posting_failure`.
    """
    with store.operation("record_posting_failure") as payload:
        entry = JournalEntry(
            entry_number=store.next_number("journal_entry"),
            date=entry_date or timezone.localdate(),
            description=(description or "Posting failed").strip(),
            reference=(reference or "").strip(),
            entry_type=EntryType.POSTING_FAILURE,
            related_voucher_id=related_voucher_id,
        )
        store.save_collection("journalEntries", [entry])
        payload["journal_entry_id"] = entry.pk

    logger.error(
        "Posting failure recorded",
        extra={"entry_number": entry.entry_number, "reference": entry.reference},
    )
    return entry


# ---------------------------------------------------------
# Active / reversed detection
# ---------------------------------------------------------
def active_entries(reference: str):
    """Entries for this reference that no reversal points back at."""
    reference = (reference or "").strip()
    if not reference:
        return JournalEntry.objects.none()
    return (
        JournalEntry.objects.filter(reference=reference, reversals__isnull=True)
        .exclude(entry_type__in=[EntryType.POSTING_FAILURE, EntryType.REVERSAL])
        .order_by("-entry_number")
    )


def is_reference_active(reference: str) -> bool:
    return active_entries(reference).exists()


def find_active_entry(reference: str) -> JournalEntry | None:
    return active_entries(reference).first()


def is_reversed(entry: JournalEntry) -> bool:
    return entry.reversals.exists()


# ---------------------------------------------------------
# Reversal
# ---------------------------------------------------------
def reverse_journal_entry(
    entry: JournalEntry,
    *,
    description: str | None = None,
    entry_date: date | None = None,
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    """
    Post a new entry with every line's debit/credit swapped.
    The original entry is never modified.
    """
    if entry.is_posting_failure:
        raise JournalEntryCreationError("Posting-failure records cannot be reversed")
    if entry.is_reversal:
        raise JournalEntryCreationError("Reversal entries cannot be reversed")
    if is_reversed(entry):
        raise JournalEntryCreationError(f"Journal entry JE-{entry.entry_number} is already reversed")

    lines = list(entry.lines.select_related("account"))
    if not lines:
        raise JournalEntryCreationError("Cannot reverse an entry without lines")

    postings = [
        {
            "account": line.account,
            "debit": line.credit,
            "credit": line.debit,
            "description": line.description,
        }
        for line in lines
    ]

    return create_journal_entry(
        description=description or f"Reversal of JE-{entry.entry_number}: {entry.description}",
        postings=postings,
        reference=REVERSAL_PREFIX + (entry.reference or f"JE-{entry.entry_number}"),
        entry_type=EntryType.REVERSAL,
        entry_date=entry_date,
        related_voucher_id=entry.related_voucher_id,
        original_entry=entry,
        store=store,
    )
