# accounting/api/views/__init__.py

"""
accounting.api.views package

Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountListCreateView
from accounting.api.views.journal_entries import JournalEntryViewSet, JournalLineViewSet
from accounting.api.views.reports import (
    BalanceSheetView,
    CashFlowView,
    IncomeStatementView,
    TrialBalanceView,
)
from accounting.api.views.statements import AccountStatementView, EntityStatementView

__all__ = [
    "AccountListCreateView",
    "JournalEntryViewSet",
    "JournalLineViewSet",
    "TrialBalanceView",
    "IncomeStatementView",
    "BalanceSheetView",
    "CashFlowView",
    "AccountStatementView",
    "EntityStatementView",
]
