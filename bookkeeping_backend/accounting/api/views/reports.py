# accounting/api/views/reports.py

"""
PATH: accounting/api/views/reports.py

FINANCIAL REPORT VIEWS (READ-ONLY)

All reports are permission-gated on accounting.view_journalline and take
plain YYYY-MM-DD dates:

- trial-balance/      ?as_of=
- income-statement/   ?start=&end=
- balance-sheet/      ?as_of=
- cash-flow/          ?start=&end=
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.errors import DateParamError, date_param, forbidden
from accounting.services import report_service

AS_OF = OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD (inclusive).")
START = OpenApiParameter(name="start", type=str, required=False, description="YYYY-MM-DD (inclusive).")
END = OpenApiParameter(name="end", type=str, required=False, description="YYYY-MM-DD (inclusive).")


class _ReportView(APIView):
    permission_classes = [IsAuthenticated]
    params: tuple[str, ...] = ()
    report_name = "reports"

    def build(self, **dates) -> dict:
        raise NotImplementedError

    def get(self, request):
        if not request.user.has_perm("accounting.view_journalline"):
            return forbidden(f"You do not have permission to view {self.report_name}.")

        try:
            dates = {name: date_param(request, name) for name in self.params}
        except DateParamError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        start, end = dates.get("start"), dates.get("end")
        if start and end and start > end:
            return Response(
                {"detail": "start must be on or before end"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(self.build(**dates), status=status.HTTP_200_OK)


@extend_schema(tags=["accounting"], parameters=[AS_OF], responses={200: dict})
class TrialBalanceView(_ReportView):
    params = ("as_of",)
    report_name = "trial balance"

    def build(self, **dates):
        return report_service.trial_balance(dates["as_of"])


@extend_schema(tags=["accounting"], parameters=[START, END], responses={200: dict})
class IncomeStatementView(_ReportView):
    params = ("start", "end")
    report_name = "income statement"

    def build(self, **dates):
        return report_service.income_statement(dates["start"], dates["end"])


@extend_schema(tags=["accounting"], parameters=[AS_OF], responses={200: dict})
class BalanceSheetView(_ReportView):
    params = ("as_of",)
    report_name = "balance sheet"

    def build(self, **dates):
        return report_service.balance_sheet(dates["as_of"])


@extend_schema(tags=["accounting"], parameters=[START, END], responses={200: dict})
class CashFlowView(_ReportView):
    params = ("start", "end")
    report_name = "cash flow"

    def build(self, **dates):
        return report_service.cash_flow(dates["start"], dates["end"])
