# accounting/services/settlement_service.py

"""
======================================================
PATH: accounting/services/settlement_service.py
======================================================
SETTLEMENT RECONCILER

Applies receipt/payment vouchers to invoices (or to an entity's opening
balance) and undoes them.

Order of work (every public call runs inside ONE ledger operation):
1) read snapshots (voucher, invoice, entity)
2) validate (VoucherValidationError before any write)
3) post the voucher entry
4) recompute invoice paid_amount / payment_status from the SURVIVING
   voucher set, or adjust the entity opening balance
5) (reverse only) delete the voucher LAST

Discipline:
- User input is validated hard (amount > remaining is rejected).
- Derived values are clamped (paid_amount never exceeds total; the excess
  is reported as overpayment).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone

from accounting.models.account import Account, AccountType, LinkedEntityType
from accounting.models.journal import EntryType, JournalEntry
from accounting.services.account_registry import reporting_type
from accounting.services.exceptions import SettlementError, VoucherValidationError
from accounting.services.journal_entry_service import (
    find_active_entry,
    is_reversed,
    reverse_journal_entry,
)
from accounting.services.ledger_store import LedgerStore, ledger_store
from accounting.services.posting import invoice_reference, post_invoice, post_voucher
from invoicing.models import (
    Customer,
    Invoice,
    InvoiceType,
    PaymentStatus,
    Supplier,
    Voucher,
    VoucherType,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MONEY_EPSILON = Decimal("0.001")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------
# Result types
# ---------------------------------------------------------
@dataclass(frozen=True)
class InvoiceUpdate:
    invoice_id: int
    invoice_number: str
    status: str
    paid_amount: Decimal
    overpayment: Decimal = ZERO
    posted_entry: JournalEntry | None = None

    def as_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "status": self.status,
            "paid_amount": str(self.paid_amount),
            "overpayment": str(self.overpayment),
            "posted_entry_id": self.posted_entry.pk if self.posted_entry else None,
        }


@dataclass(frozen=True)
class EntityBalanceUpdate:
    entity_type: str
    entity_id: int
    previous_balance: Decimal
    balance: Decimal

    def as_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "previous_balance": str(self.previous_balance),
            "balance": str(self.balance),
        }


@dataclass(frozen=True)
class SettlementResult:
    voucher: Voucher
    journal_entry: JournalEntry
    invoice_update: InvoiceUpdate | None = None
    entity_balance_update: EntityBalanceUpdate | None = None

    def as_dict(self) -> dict:
        return {
            "voucher_id": self.voucher.pk,
            "voucher_number": self.voucher.voucher_number,
            "journal_entry_id": self.journal_entry.pk,
            "posting_failed": self.journal_entry.is_posting_failure,
            "invoice_update": self.invoice_update.as_dict() if self.invoice_update else None,
            "entity_balance_update": (
                self.entity_balance_update.as_dict() if self.entity_balance_update else None
            ),
        }


@dataclass(frozen=True)
class ReversalResult:
    voucher_id: int
    voucher_number: str
    journal_entry: JournalEntry | None = None
    invoice_update: InvoiceUpdate | None = None
    entity_balance_update: EntityBalanceUpdate | None = None

    def as_dict(self) -> dict:
        return {
            "voucher_id": self.voucher_id,
            "voucher_number": self.voucher_number,
            "journal_entry_id": self.journal_entry.pk if self.journal_entry else None,
            "invoice_update": self.invoice_update.as_dict() if self.invoice_update else None,
            "entity_balance_update": (
                self.entity_balance_update.as_dict() if self.entity_balance_update else None
            ),
        }


# ---------------------------------------------------------
# Validation
# ---------------------------------------------------------
def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise VoucherValidationError("amount", f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise VoucherValidationError("amount", f"Invalid amount: {amount!r}")
    return value


def validate_voucher(
    *,
    voucher_type: str,
    amount,
    cash_account: Account | None,
    customer: Customer | None = None,
    supplier: Supplier | None = None,
    invoice: Invoice | None = None,
) -> Decimal:
    """
    Pre-condition checks. Returns the normalized amount.
    Raises VoucherValidationError(field, message); never writes.
    """
    if voucher_type not in VoucherType.values:
        raise VoucherValidationError("voucher_type", "Voucher type must be 'receipt' or 'payment'")

    is_receipt = voucher_type == VoucherType.RECEIPT

    if is_receipt and customer is None:
        raise VoucherValidationError("customer", "A customer is required for a receipt voucher")
    if not is_receipt and supplier is None:
        raise VoucherValidationError("supplier", "A supplier is required for a payment voucher")
    if is_receipt and supplier is not None:
        raise VoucherValidationError("supplier", "A receipt voucher cannot reference a supplier")
    if not is_receipt and customer is not None:
        raise VoucherValidationError("customer", "A payment voucher cannot reference a customer")

    value = _parse_amount(amount)
    if value <= ZERO:
        raise VoucherValidationError("amount", "Amount must be greater than zero")

    if cash_account is None:
        raise VoucherValidationError("cash_account", "A cash or bank account is required")
    if reporting_type(cash_account) not in (AccountType.CASH, AccountType.BANK):
        raise VoucherValidationError(
            "cash_account", f"Account {cash_account.code} is not a cash or bank account"
        )

    entity = customer if is_receipt else supplier

    if invoice is not None:
        expected_type = InvoiceType.SALES if is_receipt else InvoiceType.PURCHASE
        if invoice.invoice_type != expected_type:
            raise VoucherValidationError(
                "invoice", f"Invoice {invoice.invoice_number} is not a {expected_type} invoice"
            )
        if invoice.is_return:
            raise VoucherValidationError("invoice", "Return invoices cannot be settled by vouchers")
        if invoice.entity_id != entity.pk:
            raise VoucherValidationError(
                "invoice", f"Invoice {invoice.invoice_number} does not belong to {entity.name}"
            )

        remaining = _money(invoice.total) - _money(invoice.paid_amount)
        if value > remaining + MONEY_EPSILON:
            raise VoucherValidationError(
                "amount",
                f"Amount {value} exceeds the remaining amount {max(remaining, ZERO)} "
                f"on invoice {invoice.invoice_number}",
            )
    else:
        magnitude = abs(_money(entity.balance))
        if value > magnitude + MONEY_EPSILON:
            raise VoucherValidationError(
                "amount",
                f"Amount {value} exceeds the opening balance {magnitude} of {entity.name}",
            )

    return value


# ---------------------------------------------------------
# Invoice reconciliation
# ---------------------------------------------------------
def _open_status(invoice: Invoice, today: date, *, partly_paid: bool) -> str:
    """Past due wins over partial/pending, same rule as refresh_overdue_statuses."""
    if invoice.due_date and invoice.due_date < today:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PARTIAL if partly_paid else PaymentStatus.PENDING


def _recompute_invoice(
    invoice: Invoice,
    voucher_type: str,
    *,
    include: Voucher | None = None,
    exclude_voucher_id=None,
    store: LedgerStore = ledger_store,
) -> InvoiceUpdate:
    vouchers = store.get_collection("vouchers", invoice_id=invoice.pk, voucher_type=voucher_type)
    if exclude_voucher_id is not None:
        vouchers = [v for v in vouchers if v.pk != exclude_voucher_id]
    if include is not None and all(v.pk != include.pk for v in vouchers):
        vouchers.append(include)

    via_vouchers = sum((_money(v.amount) for v in vouchers), ZERO)
    total_paid = _money(invoice.initial_paid_amount) + via_vouchers
    net_payable = _money(invoice.total)
    was_paid = invoice.payment_status == PaymentStatus.PAID

    overpayment = ZERO
    posted_entry = None

    if total_paid >= net_payable - MONEY_EPSILON or net_payable <= ZERO:
        status = PaymentStatus.PAID
        paid_amount = max(net_payable, ZERO)
        overpayment = max(total_paid - net_payable, ZERO)
        if overpayment > MONEY_EPSILON:
            logger.warning(
                "Invoice overpaid; excess reported as entity credit",
                extra={"invoice_number": invoice.invoice_number, "overpayment": str(overpayment)},
            )
    elif total_paid > MONEY_EPSILON:
        status = _open_status(invoice, timezone.localdate(), partly_paid=True)
        paid_amount = total_paid
    else:
        status = _open_status(invoice, timezone.localdate(), partly_paid=False)
        paid_amount = ZERO

    invoice.payment_status = status
    invoice.paid_amount = paid_amount
    store.save_collection(
        "invoices",
        [invoice],
        update_fields=["payment_status", "paid_amount", "updated_at"],
    )

    # Deferred invoice fully settled for the first time
    if status == PaymentStatus.PAID and not was_paid:
        if find_active_entry(invoice_reference(invoice)) is None:
            posted_entry = post_invoice(invoice, via_settlement=True, store=store)

    return InvoiceUpdate(
        invoice_id=invoice.pk,
        invoice_number=invoice.invoice_number,
        status=status,
        paid_amount=paid_amount,
        overpayment=overpayment,
        posted_entry=posted_entry,
    )


def apply_voucher_to_invoice(
    voucher: Voucher,
    invoice: Invoice,
    *,
    store: LedgerStore = ledger_store,
) -> InvoiceUpdate:
    """
    total paid = initial paid + every same-type voucher on the invoice
    (the new one included); paid/partial is derived from that.
    """
    with store.operation("apply_voucher_to_invoice", invoice_id=invoice.pk):
        return _recompute_invoice(invoice, voucher.voucher_type, include=voucher, store=store)


# ---------------------------------------------------------
# Opening balances
# ---------------------------------------------------------
def _adjust_opening_balance(
    voucher: Voucher,
    *,
    reverse: bool,
    store: LedgerStore = ledger_store,
) -> EntityBalanceUpdate:
    """
    customer receipt -> balance decreases
    supplier payment -> balance increases (owed balances are negative)
    """
    if voucher.is_receipt:
        collection, entity_type, entity_id = "customers", LinkedEntityType.CUSTOMER, voucher.customer_id
        delta = -_money(voucher.amount)
    else:
        collection, entity_type, entity_id = "suppliers", LinkedEntityType.SUPPLIER, voucher.supplier_id
        delta = _money(voucher.amount)

    if reverse:
        delta = -delta

    entity = store.get_document(collection, entity_id, for_update=True)
    previous = _money(entity.balance)
    entity.balance = previous + delta
    store.save_collection(collection, [entity], update_fields=["balance"])

    return EntityBalanceUpdate(
        entity_type=entity_type,
        entity_id=entity.pk,
        previous_balance=previous,
        balance=_money(entity.balance),
    )


# ---------------------------------------------------------
# Public API
# ---------------------------------------------------------
def settle_voucher(
    *,
    voucher_type: str,
    amount,
    cash_account: Account | None,
    customer: Customer | None = None,
    supplier: Supplier | None = None,
    invoice: Invoice | None = None,
    voucher_date: date | None = None,
    description: str = "",
    store: LedgerStore = ledger_store,
) -> SettlementResult:
    logger.info(
        "Initiating voucher settlement",
        extra={
            "voucher_type": voucher_type,
            "amount": str(amount),
            "invoice_id": getattr(invoice, "pk", None),
        },
    )

    with store.operation("settle_voucher") as payload:
        # fresh snapshots before validation
        if invoice is not None:
            invoice = store.get_document("invoices", invoice.pk, for_update=True)
        if customer is not None:
            customer = store.get_document("customers", customer.pk, for_update=True)
        if supplier is not None:
            supplier = store.get_document("suppliers", supplier.pk, for_update=True)

        value = validate_voucher(
            voucher_type=voucher_type,
            amount=amount,
            cash_account=cash_account,
            customer=customer,
            supplier=supplier,
            invoice=invoice,
        )

        voucher = Voucher(
            voucher_number=store.next_number("voucher", voucher_type),
            voucher_type=voucher_type,
            customer=customer,
            supplier=supplier,
            invoice=invoice,
            amount=value,
            date=voucher_date or timezone.localdate(),
            cash_account=cash_account,
            description=(description or "").strip(),
        )
        store.save_collection("vouchers", [voucher])

        entry = post_voucher(voucher, store=store)
        if entry.is_posting_failure:
            logger.error(
                "Voucher posting failed; settlement continues with a failure record",
                extra={"voucher_number": voucher.voucher_number},
            )

        invoice_update = None
        balance_update = None
        if invoice is not None:
            invoice_update = _recompute_invoice(invoice, voucher.voucher_type, include=voucher, store=store)
        else:
            balance_update = _adjust_opening_balance(voucher, reverse=False, store=store)

        payload.update(voucher_id=voucher.pk, journal_entry_id=entry.pk)

    logger.info(
        "Voucher settled",
        extra={
            "voucher_number": voucher.voucher_number,
            "journal_entry_id": entry.pk,
            "invoice_status": invoice_update.status if invoice_update else None,
        },
    )
    return SettlementResult(
        voucher=voucher,
        journal_entry=entry,
        invoice_update=invoice_update,
        entity_balance_update=balance_update,
    )


def _voucher_entry_to_reverse(voucher: Voucher, store: LedgerStore) -> JournalEntry | None:
    entries = store.get_collection(
        "journalEntries",
        related_voucher_id=voucher.pk,
        entry_type__in=[EntryType.RECEIPT_VOUCHER, EntryType.PAYMENT_VOUCHER],
        order_by=["-entry_number"],
    )
    for entry in entries:
        if not is_reversed(entry):
            return entry
    return None


def reverse_voucher(voucher_id, *, store: LedgerStore = ledger_store) -> ReversalResult:
    """
    Undo a voucher: reverse its entry, recompute the invoice from the
    remaining vouchers (or roll back the opening balance), delete it last.
    """
    with store.operation("reverse_voucher", voucher_id=voucher_id) as payload:
        # reads
        try:
            voucher = store.get_document("vouchers", voucher_id, for_update=True)
        except Voucher.DoesNotExist as exc:
            raise SettlementError(f"Voucher {voucher_id} not found") from exc

        original = _voucher_entry_to_reverse(voucher, store)
        invoice = (
            store.get_document("invoices", voucher.invoice_id, for_update=True)
            if voucher.invoice_id
            else None
        )

        # writes
        reversal = None
        if original is not None:
            reversal = reverse_journal_entry(
                original,
                description=f"Reversal of voucher {voucher.voucher_number}",
                store=store,
            )
        else:
            logger.warning(
                "No active journal entry found for voucher; nothing to reverse",
                extra={"voucher_number": voucher.voucher_number},
            )

        invoice_update = None
        balance_update = None
        if invoice is not None:
            invoice_update = _recompute_invoice(
                invoice, voucher.voucher_type, exclude_voucher_id=voucher.pk, store=store
            )
        else:
            balance_update = _adjust_opening_balance(voucher, reverse=True, store=store)

        voucher_number = voucher.voucher_number
        store.delete_document("vouchers", voucher)
        payload["journal_entry_id"] = reversal.pk if reversal else None

    logger.info(
        "Voucher reversed",
        extra={"voucher_number": voucher_number, "voucher_id": voucher_id},
    )
    return ReversalResult(
        voucher_id=voucher_id,
        voucher_number=voucher_number,
        journal_entry=reversal,
        invoice_update=invoice_update,
        entity_balance_update=balance_update,
    )
