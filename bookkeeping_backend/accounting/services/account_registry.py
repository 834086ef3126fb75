# PATH: accounting/services/account_registry.py

"""
PATH: accounting/services/account_registry.py

ACCOUNT REGISTRY (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Rules:
- Every account code the posting engine needs has a template
  (ACCOUNT_TEMPLATES). ensure_account(code) returns the existing account
  or materializes it from the template, so posting never fails solely
  because the ledger is empty.
- Unknown codes with no template hard-fail (AccountResolutionError).
- Customers (1101) / Suppliers (2001) may carry per-entity sub-accounts
  (`<parent>-<NNNN>`) linked to one customer or supplier.
- Parent/child walks (descendants, reporting_type) track visited codes;
  a cycle is logged and the walk stops.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass

from django.db import IntegrityError, transaction

from accounting.models.account import Account, AccountType, LinkedEntityType
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# TEMPLATES
# ------------------------------------------------------------


@dataclass(frozen=True)
class AccountTemplate:
    code: str
    name: str
    account_type: str
    parent_code: str | None = None


CASH = "1001"
BANK = "1002"
CUSTOMERS = "1101"
INVENTORY = "1201"
VAT_PAID = "1301"
SUPPLIERS = "2001"
VAT_PAYABLE = "2102"
CAPITAL = "3001"
RETAINED_EARNINGS = "3101"
SALES = "4001"
DISCOUNT_EARNED = "4201"
PURCHASES = "5001"
DISCOUNT_ALLOWED = "5401"

ACCOUNT_TEMPLATES: dict[str, AccountTemplate] = {
    t.code: t
    for t in (
        # Assets
        AccountTemplate(CASH, "Cash", AccountType.CASH),
        AccountTemplate(BANK, "Bank", AccountType.BANK),
        AccountTemplate(CUSTOMERS, "Customers", AccountType.ASSET),
        AccountTemplate(INVENTORY, "Inventory", AccountType.ASSET),
        AccountTemplate(VAT_PAID, "VAT Paid (Input)", AccountType.ASSET),
        AccountTemplate("1501", "Furniture & Equipment", AccountType.ASSET),
        # Liabilities
        AccountTemplate(SUPPLIERS, "Suppliers", AccountType.LIABILITY),
        AccountTemplate("2101", "Short-term Loans", AccountType.LIABILITY),
        AccountTemplate(VAT_PAYABLE, "VAT Payable (Output)", AccountType.LIABILITY),
        AccountTemplate("2501", "Long-term Loans", AccountType.LIABILITY),
        # Equity
        AccountTemplate(CAPITAL, "Capital", AccountType.EQUITY),
        AccountTemplate(RETAINED_EARNINGS, "Retained Earnings", AccountType.EQUITY),
        # Revenue
        AccountTemplate(SALES, "Sales", AccountType.REVENUE),
        AccountTemplate("4101", "Other Revenue", AccountType.REVENUE),
        AccountTemplate(DISCOUNT_EARNED, "Discount Earned", AccountType.REVENUE),
        # Expenses
        AccountTemplate(PURCHASES, "Purchases / Cost of Goods Sold", AccountType.EXPENSE),
        AccountTemplate("5101", "Operating Expenses", AccountType.EXPENSE),
        AccountTemplate("5201", "Rent Expense", AccountType.EXPENSE),
        AccountTemplate("5301", "Utilities Expense", AccountType.EXPENSE),
        AccountTemplate(DISCOUNT_ALLOWED, "Discount Allowed", AccountType.EXPENSE),
    )
}

ENTITY_PARENT_CODES = {
    LinkedEntityType.CUSTOMER: CUSTOMERS,
    LinkedEntityType.SUPPLIER: SUPPLIERS,
}

SUB_ACCOUNT_WIDTH = 4


# ------------------------------------------------------------
# ENSURE / RESOLVE
# ------------------------------------------------------------


def ensure_account(code: str, template: AccountTemplate | None = None) -> Account:
    """
    Return the account with `code`, creating it from its template if absent.
    """
    code = (code or "").strip()
    if not code:
        raise AccountResolutionError("Account code is required")

    account = Account.objects.filter(code=code).first()
    if account is not None:
        return account

    template = template or ACCOUNT_TEMPLATES.get(code)
    if template is None:
        raise AccountResolutionError(
            f"Account with code={code} does not exist and has no template to create it from."
        )

    try:
        with transaction.atomic():
            account = Account.objects.create(
                code=template.code,
                name=template.name,
                account_type=template.account_type,
                parent_code=template.parent_code,
            )
    except IntegrityError:
        # created concurrently
        account = Account.objects.filter(code=code).first()
        if account is None:
            raise AccountResolutionError(f"Could not create account code={code}")
        return account

    logger.info(
        "Account auto-created from template",
        extra={"account_code": account.code, "account_type": account.account_type},
    )
    return account


resolve = ensure_account


def get_cash_account() -> Account:
    return ensure_account(CASH)


def get_bank_account() -> Account:
    return ensure_account(BANK)


def get_customers_account() -> Account:
    return ensure_account(CUSTOMERS)


def get_suppliers_account() -> Account:
    return ensure_account(SUPPLIERS)


def get_sales_account() -> Account:
    return ensure_account(SALES)


def get_purchases_account() -> Account:
    return ensure_account(PURCHASES)


def get_vat_payable_account() -> Account:
    return ensure_account(VAT_PAYABLE)


def get_vat_paid_account() -> Account:
    return ensure_account(VAT_PAID)


def get_discount_allowed_account() -> Account:
    return ensure_account(DISCOUNT_ALLOWED)


def get_discount_earned_account() -> Account:
    return ensure_account(DISCOUNT_EARNED)


# ------------------------------------------------------------
# ENTITY ACCOUNTS
# ------------------------------------------------------------


def find_linked_account(entity_type: str, entity_id) -> Account | None:
    if not entity_type or entity_id is None:
        return None
    return (
        Account.objects.filter(
            linked_entity_type=entity_type,
            linked_entity_id=entity_id,
        )
        .order_by("id")
        .first()
    )


def _entity_parent_code(entity_type: str) -> str:
    try:
        return ENTITY_PARENT_CODES[entity_type]
    except KeyError as exc:
        raise AccountResolutionError(f"Unknown entity type: {entity_type!r}") from exc


def get_entity_account(entity_type: str, entity_id) -> Account:
    """
    Dedicated sub-account for the entity if one exists, else the shared
    Customers / Suppliers account.
    """
    linked = find_linked_account(entity_type, entity_id)
    if linked is not None:
        return linked
    return ensure_account(_entity_parent_code(entity_type))


@transaction.atomic
def open_entity_account(entity_type: str, entity) -> Account:
    """
    Create (idempotently) a dedicated `<parent>-<NNNN>` sub-account for a
    customer or supplier.
    """
    existing = find_linked_account(entity_type, entity.pk)
    if existing is not None:
        return existing

    parent = ensure_account(_entity_parent_code(entity_type))

    pattern = re.compile(rf"^{re.escape(parent.code)}-(\d+)$")
    used = [
        int(m.group(1))
        for m in (
            pattern.match(c)
            for c in Account.objects.filter(parent_code=parent.code).values_list("code", flat=True)
        )
        if m
    ]
    code = f"{parent.code}-{(max(used) + 1 if used else 1):0{SUB_ACCOUNT_WIDTH}d}"

    account = Account.objects.create(
        code=code,
        name=f"{parent.name} - {entity.name}",
        account_type=parent.account_type,
        parent_code=parent.code,
        linked_entity_type=entity_type,
        linked_entity_id=entity.pk,
    )
    logger.info(
        "Entity sub-account opened",
        extra={"account_code": code, "entity_type": entity_type, "entity_id": entity.pk},
    )
    return account


# ------------------------------------------------------------
# HIERARCHY
# ------------------------------------------------------------


def _children_index() -> dict[str, list[Account]]:
    index: dict[str, list[Account]] = defaultdict(list)
    for acc in Account.objects.exclude(parent_code__isnull=True).exclude(parent_code="").order_by("code"):
        index[acc.parent_code].append(acc)
    return index


def descendants(code: str) -> list[Account]:
    """
    All accounts below `code` (children, grandchildren, ...).

    Terminates on malformed hierarchies: a code seen twice is a cycle,
    logged and not walked again.
    """
    index = _children_index()
    visited = {code}
    out: list[Account] = []
    stack = [code]

    while stack:
        current = stack.pop()
        for child in index.get(current, []):
            if child.code in visited:
                logger.warning(
                    "Account hierarchy cycle detected",
                    extra={"account_code": child.code, "parent_code": current, "root_code": code},
                )
                continue
            visited.add(child.code)
            out.append(child)
            stack.append(child.code)

    return sorted(out, key=lambda a: a.code)


def account_with_descendants(account: Account) -> list[Account]:
    return [account, *descendants(account.code)]


def reporting_type(account: Account, *, by_code: dict[str, Account] | None = None) -> str:
    """
    Type used for roll-ups: the root parent's type (sub-accounts inherit).
    """
    if not account.parent_code:
        return account.account_type

    if by_code is None:
        by_code = {a.code: a for a in Account.objects.all()}

    visited = {account.code}
    current = account
    while current.parent_code:
        parent = by_code.get(current.parent_code)
        if parent is None:
            break
        if parent.code in visited:
            logger.warning(
                "Account hierarchy cycle detected",
                extra={"account_code": account.code, "parent_code": parent.code},
            )
            break
        visited.add(parent.code)
        current = parent

    return current.account_type


# ------------------------------------------------------------
# SEEDING
# ------------------------------------------------------------


@transaction.atomic
def seed_default_chart() -> list[Account]:
    """
    Create every template account that does not exist yet.
    Returns the newly created accounts.
    """
    existing = set(Account.objects.values_list("code", flat=True))
    created = []
    for template in ACCOUNT_TEMPLATES.values():
        if template.code in existing:
            continue
        created.append(ensure_account(template.code))
    return created
