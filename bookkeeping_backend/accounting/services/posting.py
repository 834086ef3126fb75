# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ENGINE

Build postings and call create_journal_entry (the engine).

Invoice rules (amounts are positive on every invoice, returns included):

  Sales              Dr counter (cash/bank and/or customer)  total
                     Dr Discount Allowed                     discount
                     Cr Sales                                subtotal
                     Cr VAT Payable                          vat
  Sales return       Dr Sales                                subtotal
                     Dr VAT Payable                          vat
                     Cr Discount Allowed                     discount
                     Cr Cash/Bank                            total
  Purchase           Dr Purchases                            subtotal
                     Dr VAT Paid                             vat
                     Cr Discount Earned                      discount
                     Cr counter (cash/bank and/or supplier)  total
  Purchase return    Dr Cash/Bank                            total
                     Dr Discount Earned                      discount
                     Cr Purchases                            subtotal
                     Cr VAT Paid                             vat

Counter account split:
- The part paid directly at issuance goes to cash/bank.
- The rest goes to the customer/supplier account (dedicated sub-account
  if one exists). Settlement vouchers move that part later.

Voucher rules (two lines):
- receipt: Dr cash/bank, Cr customer account
- payment: Dr supplier account, Cr cash/bank

Failure policy:
- Missing accounts are auto-created from templates before lines are built.
- If resolution still fails, a posting-failure entry is recorded and
  returned (never raised).
- Re-posting an invoice with an ACTIVE entry is a consistency warning:
  logged, and the existing entry is returned.

Manual entries cannot use document references (INV-, RV-, PV-, REV-) and
document entries are only reversed through cancel_invoice / reverse_voucher.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.account import Account, LinkedEntityType
from accounting.models.journal import REVERSAL_PREFIX, EntryType, JournalEntry
from accounting.services import account_registry as registry
from accounting.services.exceptions import (
    AccountResolutionError,
    JournalEntryCreationError,
    PostingRuleError,
)
from accounting.services.journal_entry_service import (
    create_journal_entry,
    find_active_entry,
    record_posting_failure,
    reverse_journal_entry,
)
from accounting.services.ledger_store import VOUCHER_PREFIXES, LedgerStore, ledger_store
from invoicing.models import Invoice, PaymentMethod, PaymentStatus, Voucher

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MONEY_EPSILON = Decimal("0.001")
INVOICE_REFERENCE_PREFIX = "INV-"
RESERVED_REFERENCE_PREFIXES = (INVOICE_REFERENCE_PREFIX, REVERSAL_PREFIX, *VOUCHER_PREFIXES.values())
DOCUMENT_ENTRY_TYPES = (EntryType.INVOICE, EntryType.RECEIPT_VOUCHER, EntryType.PAYMENT_VOUCHER)


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def invoice_reference(invoice: Invoice) -> str:
    return f"{INVOICE_REFERENCE_PREFIX}{invoice.invoice_number}"


def _assert_totals_consistent(invoice: Invoice) -> None:
    subtotal = _money(invoice.subtotal)
    discount = _money(invoice.discount_amount)
    vat = _money(invoice.vat_amount)
    total = _money(invoice.total)

    for label, value in (("subtotal", subtotal), ("discount", discount), ("vat", vat), ("total", total)):
        if value < 0:
            raise PostingRuleError(f"Invoice {invoice.invoice_number}: {label} cannot be negative")

    expected = subtotal + vat - discount
    if abs(expected - total) > MONEY_EPSILON:
        raise PostingRuleError(
            f"Invoice {invoice.invoice_number} totals mismatch: "
            f"subtotal({subtotal}) + vat({vat}) - discount({discount}) != total({total})"
        )


def _line(account: Account, *, debit=None, credit=None, description: str = "") -> dict | None:
    debit = _money(debit)
    credit = _money(credit)
    if debit == 0 and credit == 0:
        return None
    return {"account": account, "debit": debit, "credit": credit, "description": description}


# ---------------------------------------------------------
# Account selection
# ---------------------------------------------------------
def money_account_for(invoice: Invoice) -> Account:
    """
    Cash/bank account money moved through for this invoice.
    """
    if invoice.payment_bank_account_id:
        return invoice.payment_bank_account
    if invoice.payment_method == PaymentMethod.BANK:
        return registry.get_bank_account()
    return registry.get_cash_account()


def entity_account_for(invoice: Invoice) -> Account:
    if invoice.is_sales:
        return registry.get_entity_account(LinkedEntityType.CUSTOMER, invoice.customer_id)
    return registry.get_entity_account(LinkedEntityType.SUPPLIER, invoice.supplier_id)


def _direct_paid_portion(invoice: Invoice, *, via_settlement: bool) -> Decimal:
    """
    How much of the counter side is settled in cash/bank on the invoice itself.

    - via settlement: only what was paid at issuance; vouchers moved the rest
      through the entity account.
    - paid at issuance (no vouchers): the full total.
    """
    total = _money(invoice.total)
    initial = min(_money(invoice.initial_paid_amount), total)

    if via_settlement:
        return initial

    if invoice.payment_status == PaymentStatus.PAID and not invoice.vouchers.exists():
        return total

    return initial


def _counter_lines(invoice: Invoice, *, side: str, via_settlement: bool, label: str) -> list[dict | None]:
    total = _money(invoice.total)
    direct = _direct_paid_portion(invoice, via_settlement=via_settlement)
    deferred = total - direct

    lines = []
    if direct > 0:
        lines.append(_line(money_account_for(invoice), **{side: direct}, description=f"{label} (paid)"))
    if deferred > 0:
        lines.append(_line(entity_account_for(invoice), **{side: deferred}, description=label))
    return lines


def build_invoice_postings(invoice: Invoice, *, via_settlement: bool = False) -> list[dict]:
    subtotal = _money(invoice.subtotal)
    discount = _money(invoice.discount_amount)
    vat = _money(invoice.vat_amount)
    total = _money(invoice.total)
    label = f"Invoice {invoice.invoice_number}"

    if invoice.is_sales and not invoice.is_return:
        lines = [
            *_counter_lines(invoice, side="debit", via_settlement=via_settlement, label=label),
            _line(registry.get_discount_allowed_account(), debit=discount, description=label),
            _line(registry.get_sales_account(), credit=subtotal, description=label),
            _line(registry.get_vat_payable_account(), credit=vat, description=label),
        ]
    elif invoice.is_sales:
        lines = [
            _line(registry.get_sales_account(), debit=subtotal, description=f"Return {label}"),
            _line(registry.get_vat_payable_account(), debit=vat, description=f"Return {label}"),
            _line(registry.get_discount_allowed_account(), credit=discount, description=f"Return {label}"),
            _line(money_account_for(invoice), credit=total, description=f"Refund {label}"),
        ]
    elif not invoice.is_return:
        lines = [
            _line(registry.get_purchases_account(), debit=subtotal, description=label),
            _line(registry.get_vat_paid_account(), debit=vat, description=label),
            _line(registry.get_discount_earned_account(), credit=discount, description=label),
            *_counter_lines(invoice, side="credit", via_settlement=via_settlement, label=label),
        ]
    else:
        lines = [
            _line(money_account_for(invoice), debit=total, description=f"Refund {label}"),
            _line(registry.get_discount_earned_account(), debit=discount, description=f"Return {label}"),
            _line(registry.get_purchases_account(), credit=subtotal, description=f"Return {label}"),
            _line(registry.get_vat_paid_account(), credit=vat, description=f"Return {label}"),
        ]

    return [line for line in lines if line is not None]


def _invoice_description(invoice: Invoice) -> str:
    kind = "Sales" if invoice.is_sales else "Purchase"
    if invoice.is_return:
        kind = f"{kind} return"
    party = invoice.entity
    party_name = party.name if party is not None else "-"
    return f"{kind} invoice {invoice.invoice_number} - {party_name}"


# ---------------------------------------------------------
# Public posting API
# ---------------------------------------------------------
def post_invoice(
    invoice: Invoice,
    *,
    via_settlement: bool = False,
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    """
    Post an invoice to the ledger.

    Returns the new entry, the existing ACTIVE entry (duplicate call), or a
    posting-failure entry (check `entry.is_posting_failure`).
    Raises PostingRuleError if the invoice totals are inconsistent.
    """
    reference = invoice_reference(invoice)
    _assert_totals_consistent(invoice)

    with store.operation("post_invoice", invoice_id=invoice.pk) as payload:
        existing = find_active_entry(reference)
        if existing is not None:
            logger.warning(
                "Invoice already has an active journal entry; skipping re-post",
                extra={"reference": reference, "entry_number": existing.entry_number},
            )
            payload["journal_entry_id"] = existing.pk
            return existing

        try:
            postings = build_invoice_postings(invoice, via_settlement=via_settlement)
        except AccountResolutionError as exc:
            return record_posting_failure(
                description=f"Posting failed for {reference}: {exc}",
                reference=reference,
                entry_date=invoice.date,
                store=store,
            )

        entry = create_journal_entry(
            description=_invoice_description(invoice),
            postings=postings,
            reference=reference,
            entry_type=EntryType.INVOICE,
            entry_date=invoice.date,
            store=store,
        )
        payload["journal_entry_id"] = entry.pk
        return entry


def post_voucher(voucher: Voucher, *, store: LedgerStore = ledger_store) -> JournalEntry:
    """
    Two-line entry for a receipt/payment voucher.
    """
    reference = voucher.voucher_number
    amount = _money(voucher.amount)

    try:
        money_account = voucher.cash_account
        if voucher.is_receipt:
            entity_account = registry.get_entity_account(LinkedEntityType.CUSTOMER, voucher.customer_id)
        else:
            entity_account = registry.get_entity_account(LinkedEntityType.SUPPLIER, voucher.supplier_id)
    except AccountResolutionError as exc:
        return record_posting_failure(
            description=f"Posting failed for voucher {reference}: {exc}",
            reference=reference,
            entry_date=voucher.date,
            related_voucher_id=voucher.pk,
            store=store,
        )

    target = f" for invoice {voucher.invoice.invoice_number}" if voucher.invoice_id else " (opening balance)"

    if voucher.is_receipt:
        entry_type = EntryType.RECEIPT_VOUCHER
        description = f"Receipt voucher {reference}{target}"
        postings = [
            _line(money_account, debit=amount, description=description),
            _line(entity_account, credit=amount, description=description),
        ]
    else:
        entry_type = EntryType.PAYMENT_VOUCHER
        description = f"Payment voucher {reference}{target}"
        postings = [
            _line(entity_account, debit=amount, description=description),
            _line(money_account, credit=amount, description=description),
        ]

    return create_journal_entry(
        description=description,
        postings=postings,
        reference=reference,
        entry_type=entry_type,
        entry_date=voucher.date,
        related_voucher_id=voucher.pk,
        store=store,
    )


def create_manual_entry(
    *,
    entry_date: date | None,
    description: str,
    lines: list[dict],
    reference: str = "",
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    """
    Manual journal entry.

    Each line: {"account": Account} or {"account_code": "1001"} plus
    debit/credit/description. Codes are resolved through the registry.
    """
    reference = (reference or "").strip()
    if reference.upper().startswith(RESERVED_REFERENCE_PREFIXES):
        raise JournalEntryCreationError(
            f"Reference {reference!r} is reserved for invoice and voucher postings"
        )

    postings = []
    for line in lines or []:
        account = line.get("account")
        if account is None:
            account = registry.ensure_account(line.get("account_code") or "")
        postings.append(
            {
                "account": account,
                "debit": line.get("debit"),
                "credit": line.get("credit"),
                "description": line.get("description") or "",
            }
        )

    return create_journal_entry(
        description=description,
        postings=postings,
        reference=reference,
        entry_type=EntryType.MANUAL,
        entry_date=entry_date,
        store=store,
    )


def reverse_manual_entry(
    entry: JournalEntry,
    *,
    description: str | None = None,
    store: LedgerStore = ledger_store,
) -> JournalEntry:
    """
    Reverse a journal entry on request. Invoice and voucher entries stay in
    step with their documents, so they are refused here.
    """
    if entry.entry_type == EntryType.INVOICE:
        raise JournalEntryCreationError(
            f"JE-{entry.entry_number} belongs to invoice posting {entry.reference}; cancel the invoice instead"
        )
    if entry.entry_type in DOCUMENT_ENTRY_TYPES:
        raise JournalEntryCreationError(
            f"JE-{entry.entry_number} belongs to voucher {entry.reference}; reverse the voucher instead"
        )
    return reverse_journal_entry(entry, description=description, store=store)
