# invoicing/services/invoice_service.py

"""
======================================================
PATH: invoicing/services/invoice_service.py
======================================================
INVOICE SERVICE

issue_invoice()
- numbers the invoice (S0001 / P0001)
- derives the initial status from what was paid at issuance
- posts it: paid invoices and returns always, deferred (credit) invoices
  when ACCOUNTING_POST_DEFERRED_ON_ISSUE is on

cancel_invoice()
- refuses while vouchers reference the invoice
- reverses the ACTIVE invoice entry, then deletes the invoice

refresh_overdue_statuses()
- pending or partially paid invoices past due_date become "overdue"

Return invoices carry positive amounts (is_return=True). Any reduction of
the original invoice's total is the caller's decision and happens before
the return is issued.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

from accounting.models.account import Account, AccountType
from accounting.models.journal import JournalEntry
from accounting.services.account_registry import reporting_type
from accounting.services.exceptions import InvoiceCancellationError, InvoiceValidationError
from accounting.services.journal_entry_service import find_active_entry, reverse_journal_entry
from accounting.services.ledger_store import LedgerStore, ledger_store
from accounting.services.posting import invoice_reference, post_invoice
from invoicing.models import (
    Customer,
    Invoice,
    InvoiceType,
    PaymentMethod,
    PaymentStatus,
    Supplier,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MONEY_EPSILON = Decimal("0.001")
ZERO = Decimal("0.00")


def _money(v, *, field: str) -> Decimal:
    if v is None or v == "":
        return ZERO
    try:
        value = Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvoiceValidationError(field, f"Invalid amount: {v!r}") from exc
    if value < 0:
        raise InvoiceValidationError(field, "Amount cannot be negative")
    return value


def initial_status(*, total: Decimal, paid: Decimal, due_date: date | None, today: date) -> str:
    if paid >= total - MONEY_EPSILON:
        return PaymentStatus.PAID
    if due_date and due_date < today:
        return PaymentStatus.OVERDUE
    if paid > ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def issue_invoice(
    *,
    invoice_type: str,
    subtotal,
    customer: Customer | None = None,
    supplier: Supplier | None = None,
    discount_amount=None,
    vat_amount=None,
    total=None,
    paid_amount=None,
    payment_method: str = PaymentMethod.CASH,
    payment_bank_account: Account | None = None,
    is_return: bool = False,
    original_invoice: Invoice | None = None,
    invoice_date: date | None = None,
    due_date: date | None = None,
    notes: str = "",
    store: LedgerStore = ledger_store,
) -> Invoice:
    if invoice_type not in InvoiceType.values:
        raise InvoiceValidationError("invoice_type", "Invoice type must be 'sales' or 'purchase'")
    if payment_method not in PaymentMethod.values:
        raise InvoiceValidationError("payment_method", "Payment method must be cash, bank or credit")

    is_sales = invoice_type == InvoiceType.SALES
    if is_sales and customer is None:
        raise InvoiceValidationError("customer", "A customer is required for a sales invoice")
    if not is_sales and supplier is None:
        raise InvoiceValidationError("supplier", "A supplier is required for a purchase invoice")

    subtotal = _money(subtotal, field="subtotal")
    discount = _money(discount_amount, field="discount_amount")
    vat = _money(vat_amount, field="vat_amount")
    expected_total = subtotal + vat - discount
    if expected_total < ZERO:
        raise InvoiceValidationError("discount_amount", "Discount cannot exceed subtotal + VAT")

    total = expected_total if total in (None, "") else _money(total, field="total")
    if abs(total - expected_total) > MONEY_EPSILON:
        raise InvoiceValidationError(
            "total", f"Total {total} does not equal subtotal + VAT - discount ({expected_total})"
        )

    if payment_bank_account is not None and reporting_type(payment_bank_account) not in (
        AccountType.CASH,
        AccountType.BANK,
    ):
        raise InvoiceValidationError(
            "payment_bank_account", f"Account {payment_bank_account.code} is not a cash or bank account"
        )

    if original_invoice is not None:
        if not is_return:
            raise InvoiceValidationError("original_invoice", "Only return invoices reference an original invoice")
        if original_invoice.invoice_type != invoice_type or original_invoice.is_return:
            raise InvoiceValidationError("original_invoice", "Original invoice must be a non-return invoice of the same type")

    today = timezone.localdate()
    invoice_date = invoice_date or today
    if due_date is not None and due_date < invoice_date:
        raise InvoiceValidationError("due_date", "Due date cannot be before invoice date")

    if is_return:
        # money is refunded on the spot
        paid = total
    elif paid_amount in (None, ""):
        paid = ZERO if payment_method == PaymentMethod.CREDIT else total
    else:
        paid = _money(paid_amount, field="paid_amount")
        if paid > total + MONEY_EPSILON:
            raise InvoiceValidationError("paid_amount", f"Paid amount {paid} exceeds total {total}")
        paid = min(paid, total)

    status = initial_status(total=total, paid=paid, due_date=due_date, today=today)

    with store.operation("issue_invoice") as payload:
        invoice = Invoice(
            invoice_number=store.next_number("invoice", invoice_type),
            invoice_type=invoice_type,
            is_return=is_return,
            original_invoice=original_invoice,
            customer=customer if is_sales else None,
            supplier=None if is_sales else supplier,
            subtotal=subtotal,
            discount_amount=discount,
            vat_amount=vat,
            total=total,
            initial_paid_amount=paid,
            paid_amount=paid,
            payment_status=status,
            payment_method=payment_method,
            payment_bank_account=payment_bank_account,
            date=invoice_date,
            due_date=due_date,
            notes=(notes or "").strip(),
        )
        store.save_collection("invoices", [invoice])
        payload["invoice_id"] = invoice.pk

        should_post = is_return or status == PaymentStatus.PAID or settings.ACCOUNTING_POST_DEFERRED_ON_ISSUE
        if should_post:
            entry = post_invoice(invoice, store=store)
            payload["journal_entry_id"] = entry.pk
            if entry.is_posting_failure:
                logger.error(
                    "Invoice issued but posting failed",
                    extra={"invoice_number": invoice.invoice_number, "entry_number": entry.entry_number},
                )

    logger.info(
        "Invoice issued",
        extra={
            "invoice_number": invoice.invoice_number,
            "invoice_type": invoice.invoice_type,
            "is_return": invoice.is_return,
            "total": str(invoice.total),
            "payment_status": invoice.payment_status,
        },
    )
    return invoice


def post_invoice_now(invoice_id, *, store: LedgerStore = ledger_store) -> JournalEntry:
    """
    Explicit (re)post of an invoice. Duplicate calls return the active entry.
    """
    try:
        invoice = store.get_document("invoices", invoice_id)
    except Invoice.DoesNotExist as exc:
        raise InvoiceValidationError("invoice", f"Invoice {invoice_id} not found") from exc
    return post_invoice(invoice, store=store)


def cancel_invoice(invoice_id, *, store: LedgerStore = ledger_store) -> JournalEntry | None:
    """
    Reverse the invoice posting (if active) and delete the invoice.
    Returns the reversal entry, or None when nothing was posted.
    """
    with store.operation("cancel_invoice", invoice_id=invoice_id) as payload:
        try:
            invoice = store.get_document("invoices", invoice_id, for_update=True)
        except Invoice.DoesNotExist as exc:
            raise InvoiceCancellationError(f"Invoice {invoice_id} not found") from exc

        if store.get_collection("vouchers", invoice_id=invoice.pk):
            raise InvoiceCancellationError(
                f"Invoice {invoice.invoice_number} has vouchers; reverse them first"
            )

        reversal = None
        active = find_active_entry(invoice_reference(invoice))
        if active is not None:
            reversal = reverse_journal_entry(
                active,
                description=f"Cancellation of invoice {invoice.invoice_number}",
                store=store,
            )

        number = invoice.invoice_number
        store.delete_document("invoices", invoice)
        payload["journal_entry_id"] = reversal.pk if reversal else None

    logger.info(
        "Invoice cancelled",
        extra={"invoice_number": number, "reversed": reversal is not None},
    )
    return reversal


def refresh_overdue_statuses(today: date | None = None, *, store: LedgerStore = ledger_store) -> int:
    today = today or timezone.localdate()
    with store.operation("refresh_overdue_statuses") as payload:
        candidates = store.get_collection(
            "invoices",
            payment_status__in=[PaymentStatus.PENDING, PaymentStatus.PARTIAL],
            due_date__lt=today,
        )
        for invoice in candidates:
            invoice.payment_status = PaymentStatus.OVERDUE
        store.save_collection("invoices", candidates, update_fields=["payment_status", "updated_at"])
        payload["updated"] = len(candidates)

    if candidates:
        logger.info("Invoices marked overdue", extra={"count": len(candidates)})
    return len(candidates)
