# accounting/services/report_service.py

"""
======================================================
PATH: accounting/services/report_service.py
======================================================
FINANCIAL REPORTS

Trial balance, income statement, balance sheet and cash flow, all
computed from journal lines.

Guarantees:
- Aggregates in bulk per account (no N+1)
- Sub-accounts roll up into their root parent's type
- cash / bank accounts report as assets
- Returns JSON-safe numeric values (float major + int minor, no Decimals)
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Q, Sum

from accounting.models.account import Account, AccountType
from accounting.models.journal import EntryType
from accounting.models.ledger import JournalLine
from accounting.services.account_registry import reporting_type

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

ASSET_TYPES = (AccountType.ASSET, AccountType.CASH, AccountType.BANK)
MONEY_TYPES = (AccountType.CASH, AccountType.BANK)


def _q2(amount) -> Decimal:
    return (amount or ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _date_filter(start: date | None, end: date | None) -> Q:
    q = Q()
    if start is not None:
        q &= Q(journal_entry__date__gte=start)
    if end is not None:
        q &= Q(journal_entry__date__lte=end)
    return q


def _totals_by_account(start: date | None = None, end: date | None = None) -> dict[int, tuple[Decimal, Decimal]]:
    rows = (
        JournalLine.objects.filter(_date_filter(start, end))
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return {r["account_id"]: (_q2(r["debit"]), _q2(r["credit"])) for r in rows}


def _accounts_with_types() -> list[tuple[Account, str]]:
    accounts = list(Account.objects.all().order_by("code"))
    by_code = {a.code: a for a in accounts}
    return [(a, reporting_type(a, by_code=by_code)) for a in accounts]


def _row(acc: Account, amount: Decimal) -> dict:
    return {
        "account_id": acc.id,
        "account_code": acc.code,
        "account_name": acc.name,
        "amount": _to_major_number(amount),
        "amount_minor": _to_minor_int(amount),
    }


def _section(rows: list[dict], total: Decimal) -> dict:
    return {
        "accounts": rows,
        "total": _to_major_number(total),
        "total_minor": _to_minor_int(total),
    }


# ---------------------------------------------------------
# Trial balance
# ---------------------------------------------------------
def trial_balance(as_of: date | None = None) -> dict:
    totals = _totals_by_account(end=as_of)

    accounts_output = []
    total_debit = ZERO
    total_credit = ZERO

    for acc, rtype in _accounts_with_types():
        debit, credit = totals.get(acc.id, (ZERO, ZERO))
        if debit == ZERO and credit == ZERO:
            continue

        net = debit - credit
        debit_balance = net if net > 0 else ZERO
        credit_balance = -net if net < 0 else ZERO

        accounts_output.append(
            {
                "account_id": acc.id,
                "account_code": acc.code,
                "account_name": acc.name,
                "reporting_type": rtype,
                "debit": _to_major_number(debit_balance),
                "credit": _to_major_number(credit_balance),
                "debit_minor": _to_minor_int(debit_balance),
                "credit_minor": _to_minor_int(credit_balance),
            }
        )
        total_debit += debit_balance
        total_credit += credit_balance

    return {
        "as_of": as_of.isoformat() if as_of else None,
        "accounts": accounts_output,
        "totals": {
            "debit": _to_major_number(total_debit),
            "credit": _to_major_number(total_credit),
            "debit_minor": _to_minor_int(total_debit),
            "credit_minor": _to_minor_int(total_credit),
            "balanced": _to_minor_int(total_debit) == _to_minor_int(total_credit),
        },
    }


# ---------------------------------------------------------
# Income statement
# ---------------------------------------------------------
def _profit_parts(start: date | None, end: date | None):
    totals = _totals_by_account(start, end)
    revenue_rows, expense_rows = [], []
    revenue_total = ZERO
    expense_total = ZERO

    for acc, rtype in _accounts_with_types():
        if acc.id not in totals:
            continue
        debit, credit = totals[acc.id]
        if rtype == AccountType.REVENUE:
            amount = credit - debit
            revenue_rows.append(_row(acc, amount))
            revenue_total += amount
        elif rtype == AccountType.EXPENSE:
            amount = debit - credit
            expense_rows.append(_row(acc, amount))
            expense_total += amount

    return revenue_rows, revenue_total, expense_rows, expense_total


def income_statement(start: date | None = None, end: date | None = None) -> dict:
    revenue_rows, revenue_total, expense_rows, expense_total = _profit_parts(start, end)
    net_income = revenue_total - expense_total

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "revenue": _section(revenue_rows, revenue_total),
        "expenses": _section(expense_rows, expense_total),
        "net_income": _to_major_number(net_income),
        "net_income_minor": _to_minor_int(net_income),
    }


# ---------------------------------------------------------
# Balance sheet
# ---------------------------------------------------------
def balance_sheet(as_of: date | None = None) -> dict:
    totals = _totals_by_account(end=as_of)

    assets, liabilities, equity = [], [], []
    assets_total = liabilities_total = equity_total = ZERO

    for acc, rtype in _accounts_with_types():
        if acc.id not in totals:
            continue
        debit, credit = totals[acc.id]
        if rtype in ASSET_TYPES:
            amount = debit - credit
            assets.append(_row(acc, amount))
            assets_total += amount
        elif rtype == AccountType.LIABILITY:
            amount = credit - debit
            liabilities.append(_row(acc, amount))
            liabilities_total += amount
        elif rtype == AccountType.EQUITY:
            amount = credit - debit
            equity.append(_row(acc, amount))
            equity_total += amount

    _, revenue_total, _, expense_total = _profit_parts(None, as_of)
    earnings = revenue_total - expense_total
    equity_with_earnings = equity_total + earnings
    liabilities_and_equity = liabilities_total + equity_with_earnings

    return {
        "as_of": as_of.isoformat() if as_of else None,
        "assets": _section(assets, assets_total),
        "liabilities": _section(liabilities, liabilities_total),
        "equity": {
            **_section(equity, equity_with_earnings),
            "current_earnings": _to_major_number(earnings),
            "current_earnings_minor": _to_minor_int(earnings),
        },
        "total_liabilities_and_equity": _to_major_number(liabilities_and_equity),
        "total_liabilities_and_equity_minor": _to_minor_int(liabilities_and_equity),
        "balanced": _to_minor_int(assets_total) == _to_minor_int(liabilities_and_equity),
    }


# ---------------------------------------------------------
# Cash flow
# ---------------------------------------------------------
def cash_flow(start: date | None = None, end: date | None = None) -> dict:
    money_accounts = [acc for acc, rtype in _accounts_with_types() if rtype in MONEY_TYPES]
    ids = [a.id for a in money_accounts]

    opening = ZERO
    if start is not None:
        before = JournalLine.objects.filter(
            account_id__in=ids, journal_entry__date__lt=start
        ).aggregate(debit=Sum("debit"), credit=Sum("credit"))
        opening = _q2(before["debit"]) - _q2(before["credit"])

    window = JournalLine.objects.filter(Q(account_id__in=ids) & _date_filter(start, end))

    per_account = {
        r["account_id"]: (_q2(r["debit"]), _q2(r["credit"]))
        for r in window.values("account_id").annotate(debit=Sum("debit"), credit=Sum("credit"))
    }
    by_source = {}
    for r in window.values("journal_entry__entry_type").annotate(debit=Sum("debit"), credit=Sum("credit")):
        inflow, outflow = _q2(r["debit"]), _q2(r["credit"])
        by_source[r["journal_entry__entry_type"]] = {
            "label": EntryType(r["journal_entry__entry_type"]).label,
            "inflow": _to_major_number(inflow),
            "outflow": _to_major_number(outflow),
            "net": _to_major_number(inflow - outflow),
        }

    inflow_total = sum((d for d, _ in per_account.values()), ZERO)
    outflow_total = sum((c for _, c in per_account.values()), ZERO)
    net = inflow_total - outflow_total

    accounts_output = []
    for acc in money_accounts:
        debit, credit = per_account.get(acc.id, (ZERO, ZERO))
        if debit == ZERO and credit == ZERO:
            continue
        accounts_output.append(
            {
                "account_id": acc.id,
                "account_code": acc.code,
                "account_name": acc.name,
                "inflow": _to_major_number(debit),
                "outflow": _to_major_number(credit),
                "net": _to_major_number(debit - credit),
            }
        )

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "opening_cash": _to_major_number(opening),
        "inflow": _to_major_number(inflow_total),
        "outflow": _to_major_number(outflow_total),
        "net_change": _to_major_number(net),
        "net_change_minor": _to_minor_int(net),
        "closing_cash": _to_major_number(opening + net),
        "accounts": accounts_output,
        "by_source": by_source,
    }
