# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    AccountListCreateView,
    AccountStatementView,
    BalanceSheetView,
    CashFlowView,
    EntityStatementView,
    IncomeStatementView,
    JournalEntryViewSet,
    JournalLineViewSet,
    TrialBalanceView,
)

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("journal-lines", JournalLineViewSet, basename="journal-line")

urlpatterns = [
    path("", include(router.urls)),
    # Chart of accounts
    path("accounts/", AccountListCreateView.as_view(), name="accounts"),
    path("accounts/<int:account_id>/statement/", AccountStatementView.as_view(), name="account-statement"),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("cash-flow/", CashFlowView.as_view(), name="cash-flow"),
    # Customer / supplier statements
    path(
        "statements/<str:entity_type>/<int:entity_id>/",
        EntityStatementView.as_view(),
        name="entity-statement",
    ),
]
