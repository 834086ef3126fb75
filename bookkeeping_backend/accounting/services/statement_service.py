# accounting/services/statement_service.py

"""
======================================================
PATH: accounting/services/statement_service.py
======================================================
STATEMENT GENERATOR

Two views of the same ledger:

account_statement()
- Journal lines of an account (+ descendants when requested)
- Lines before `start` fold into the opening balance
- Customer/supplier accounts (1101 / 2001 and their sub-accounts) also show
  invoices and vouchers that have NO active posting yet, so deferred
  activity is visible

entity_statement()
- Seeded from the customer's/supplier's stored opening balance
- Invoices and vouchers of the entity, signed from the entity's side:
    customer: sales invoice = debit, return = credit, receipt = credit
    supplier: purchase invoice = credit, return = debit, payment = debit
- A return is listed together with its cash refund so it nets to zero
- Amounts paid directly on an invoice are listed as settlement lines

Both: balance = opening + debit - credit, running in date order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.account import Account, LinkedEntityType
from accounting.models.ledger import JournalLine
from accounting.services import account_registry as registry
from accounting.services.exceptions import AccountingServiceError, AccountResolutionError
from accounting.services.journal_entry_service import is_reference_active
from accounting.services.posting import invoice_reference
from invoicing.models import Customer, Invoice, PaymentStatus, Supplier, Voucher

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class StatementLine:
    date: date
    kind: str
    reference: str
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    source_id: int | None = None

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "kind": self.kind,
            "reference": self.reference,
            "description": self.description,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "balance": str(self.balance),
            "source_id": self.source_id,
        }


@dataclass(frozen=True)
class Statement:
    subject: dict
    start: date | None
    end: date | None
    opening_balance: Decimal
    lines: tuple[StatementLine, ...]
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal
    summary: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "subject": self.subject,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "opening_balance": str(self.opening_balance),
            "lines": [line.as_dict() for line in self.lines],
            "total_debit": str(self.total_debit),
            "total_credit": str(self.total_credit),
            "closing_balance": str(self.closing_balance),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class _Candidate:
    date: date
    order: int
    kind: str
    reference: str
    description: str
    debit: Decimal
    credit: Decimal
    source_id: int | None = None


def _before(d: date, start: date | None) -> bool:
    return start is not None and d < start


def _within(d: date, start: date | None, end: date | None) -> bool:
    if start is not None and d < start:
        return False
    if end is not None and d > end:
        return False
    return True


def _build(
    *,
    subject: dict,
    start: date | None,
    end: date | None,
    opening: Decimal,
    candidates: list[_Candidate],
    summary: dict,
) -> Statement:
    """
    Fold pre-window candidates into the opening balance, list in-window
    candidates in date order with a running balance.
    """
    opening = _money(opening)
    window: list[_Candidate] = []
    for c in candidates:
        if _before(c.date, start):
            opening += c.debit - c.credit
        elif _within(c.date, start, end):
            window.append(c)

    window.sort(key=lambda c: (c.date, c.order))

    running = opening
    total_debit = ZERO
    total_credit = ZERO
    lines: list[StatementLine] = []
    for c in window:
        running += c.debit - c.credit
        total_debit += c.debit
        total_credit += c.credit
        lines.append(
            StatementLine(
                date=c.date,
                kind=c.kind,
                reference=c.reference,
                description=c.description,
                debit=c.debit,
                credit=c.credit,
                balance=running,
                source_id=c.source_id,
            )
        )

    return Statement(
        subject=subject,
        start=start,
        end=end,
        opening_balance=opening,
        lines=tuple(lines),
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=opening + total_debit - total_credit,
        summary={**summary, "transaction_count": len(lines)},
    )


# ---------------------------------------------------------
# Account statement
# ---------------------------------------------------------
def _aggregate_entity_type(account: Account) -> str | None:
    for entity_type, parent_code in registry.ENTITY_PARENT_CODES.items():
        if account.code == parent_code or account.code.startswith(f"{parent_code}-"):
            return entity_type
        if account.parent_code == parent_code:
            return entity_type
    return None


def _entities_posting_to(accounts: list[Account], entity_type: str) -> list[int]:
    """
    Ids of the customers/suppliers whose postings land in `accounts`.
    """
    codes = {a.code for a in accounts}
    linked = {
        a.linked_entity_id
        for a in accounts
        if a.linked_entity_type == entity_type and a.linked_entity_id
    }
    parent_code = registry.ENTITY_PARENT_CODES[entity_type]
    if parent_code in codes:
        # entities without a dedicated sub-account post to the shared parent
        all_linked = set(
            Account.objects.filter(linked_entity_type=entity_type).values_list(
                "linked_entity_id", flat=True
            )
        )
        model = Customer if entity_type == LinkedEntityType.CUSTOMER else Supplier
        linked |= set(model.objects.exclude(pk__in=all_linked).values_list("pk", flat=True))
    return sorted(linked)


def _unposted_candidates(accounts: list[Account], entity_type: str) -> list[_Candidate]:
    entity_ids = _entities_posting_to(accounts, entity_type)
    if not entity_ids:
        return []

    is_customer = entity_type == LinkedEntityType.CUSTOMER
    entity_filter = {"customer_id__in": entity_ids} if is_customer else {"supplier_id__in": entity_ids}

    out: list[_Candidate] = []
    invoices = Invoice.objects.filter(is_return=False, **entity_filter).order_by("date", "id")
    for inv in invoices:
        if is_reference_active(invoice_reference(inv)):
            continue
        total = _money(inv.total)
        initial = min(_money(inv.initial_paid_amount), total)
        desc = f"Invoice {inv.invoice_number} (not posted)"
        if is_customer:
            out.append(_Candidate(inv.date, 1, "invoice", inv.invoice_number, desc, total, ZERO, inv.pk))
            if initial > 0:
                out.append(_Candidate(inv.date, 2, "initial_payment", inv.invoice_number, desc, ZERO, initial, inv.pk))
        else:
            out.append(_Candidate(inv.date, 1, "invoice", inv.invoice_number, desc, ZERO, total, inv.pk))
            if initial > 0:
                out.append(_Candidate(inv.date, 2, "initial_payment", inv.invoice_number, desc, initial, ZERO, inv.pk))

    for v in Voucher.objects.filter(**entity_filter).order_by("date", "id"):
        if is_reference_active(v.voucher_number):
            continue
        amount = _money(v.amount)
        desc = f"Voucher {v.voucher_number} (not posted)"
        if v.is_receipt:
            out.append(_Candidate(v.date, 3, "voucher", v.voucher_number, desc, ZERO, amount, v.pk))
        else:
            out.append(_Candidate(v.date, 3, "voucher", v.voucher_number, desc, amount, ZERO, v.pk))
    return out


def account_statement(
    account_id,
    start: date | None = None,
    end: date | None = None,
    include_sub_accounts: bool = True,
) -> Statement:
    try:
        account = Account.objects.get(pk=account_id)
    except Account.DoesNotExist as exc:
        raise AccountResolutionError(f"Account {account_id} not found") from exc

    accounts = registry.account_with_descendants(account) if include_sub_accounts else [account]

    candidates: list[_Candidate] = []
    lines = (
        JournalLine.objects.filter(account__in=accounts)
        .select_related("journal_entry", "account")
        .order_by("journal_entry__date", "journal_entry__entry_number", "id")
    )
    for line in lines:
        entry = line.journal_entry
        candidates.append(
            _Candidate(
                date=entry.date,
                order=0,
                kind=entry.entry_type,
                reference=entry.reference or f"JE-{entry.entry_number}",
                description=line.description or entry.description,
                debit=_money(line.debit),
                credit=_money(line.credit),
                source_id=entry.pk,
            )
        )

    entity_type = _aggregate_entity_type(account)
    if entity_type is not None:
        candidates.extend(_unposted_candidates(accounts, entity_type))

    subject = {
        "account_id": account.pk,
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "include_sub_accounts": include_sub_accounts,
        "account_codes": [a.code for a in accounts],
    }
    return _build(subject=subject, start=start, end=end, opening=ZERO, candidates=candidates, summary={})


# ---------------------------------------------------------
# Entity statement
# ---------------------------------------------------------
def _entity(entity_type: str, entity_id):
    model = Customer if entity_type == LinkedEntityType.CUSTOMER else Supplier
    if entity_type not in LinkedEntityType.values:
        raise AccountingServiceError(f"Unknown entity type: {entity_type!r}")
    try:
        return model.objects.get(pk=entity_id)
    except model.DoesNotExist as exc:
        raise AccountingServiceError(f"{entity_type.title()} {entity_id} not found") from exc


def _status_summary(invoices: list[Invoice], vouchers: list[Voucher]) -> dict:
    by_status = {
        status: {"count": 0, "total": ZERO, "paid": ZERO}
        for status in PaymentStatus.values
    }
    for inv in invoices:
        if inv.is_return:
            continue
        bucket = by_status[inv.payment_status]
        bucket["count"] += 1
        bucket["total"] += _money(inv.total)
        bucket["paid"] += _money(inv.paid_amount)

    return {
        "by_status": {
            status: {"count": b["count"], "total": str(b["total"]), "paid": str(b["paid"])}
            for status, b in by_status.items()
        },
        "invoice_count": sum(1 for inv in invoices if not inv.is_return),
        "return_count": sum(1 for inv in invoices if inv.is_return),
        "voucher_count": len(vouchers),
        "total_invoiced": str(sum((_money(i.total) for i in invoices if not i.is_return), ZERO)),
        "total_returned": str(sum((_money(i.total) for i in invoices if i.is_return), ZERO)),
        "total_settled": str(sum((_money(v.amount) for v in vouchers), ZERO)),
    }


def entity_statement(
    entity_id,
    entity_type: str,
    start: date | None = None,
    end: date | None = None,
) -> Statement:
    entity = _entity(entity_type, entity_id)
    is_customer = entity_type == LinkedEntityType.CUSTOMER

    if is_customer:
        invoices = list(Invoice.objects.filter(customer=entity).order_by("date", "id"))
        vouchers = list(Voucher.objects.filter(customer=entity).order_by("date", "id"))
    else:
        invoices = list(Invoice.objects.filter(supplier=entity).order_by("date", "id"))
        vouchers = list(Voucher.objects.filter(supplier=entity).order_by("date", "id"))

    # vouchers without an invoice already moved the stored balance;
    # add them back so they can be listed without double counting
    opening_vouchers = sum((_money(v.amount) for v in vouchers if v.invoice_id is None), ZERO)
    opening = _money(entity.balance) + (opening_vouchers if is_customer else -opening_vouchers)

    def signed(amount: Decimal, *, increases_debt: bool) -> tuple[Decimal, Decimal]:
        # customers owe on the debit side, suppliers on the credit side
        if increases_debt == is_customer:
            return amount, ZERO
        return ZERO, amount

    candidates: list[_Candidate] = []
    for inv in invoices:
        total = _money(inv.total)
        if inv.is_return:
            dr, cr = signed(total, increases_debt=False)
            candidates.append(_Candidate(inv.date, 1, "return", inv.invoice_number, f"Return {inv.invoice_number}", dr, cr, inv.pk))
            candidates.append(_Candidate(inv.date, 2, "refund", inv.invoice_number, f"Cash refund {inv.invoice_number}", cr, dr, inv.pk))
            continue

        dr, cr = signed(total, increases_debt=True)
        candidates.append(_Candidate(inv.date, 1, "invoice", inv.invoice_number, f"Invoice {inv.invoice_number}", dr, cr, inv.pk))

        initial = min(_money(inv.initial_paid_amount), total)
        if initial > 0:
            dr, cr = signed(initial, increases_debt=False)
            candidates.append(
                _Candidate(inv.date, 2, "initial_payment", inv.invoice_number, f"Paid on invoice {inv.invoice_number}", dr, cr, inv.pk)
            )

    for v in vouchers:
        amount = _money(v.amount)
        dr, cr = signed(amount, increases_debt=False)
        target = f"invoice {v.invoice.invoice_number}" if v.invoice_id else "opening balance"
        candidates.append(_Candidate(v.date, 3, "voucher", v.voucher_number, f"Voucher {v.voucher_number} ({target})", dr, cr, v.pk))

    window_invoices = [i for i in invoices if _within(i.date, start, end)]
    window_vouchers = [v for v in vouchers if _within(v.date, start, end)]

    subject = {
        "entity_type": entity_type,
        "entity_id": entity.pk,
        "name": entity.name,
        "stored_balance": str(_money(entity.balance)),
    }
    return _build(
        subject=subject,
        start=start,
        end=end,
        opening=opening,
        candidates=candidates,
        summary=_status_summary(window_invoices, window_vouchers),
    )
