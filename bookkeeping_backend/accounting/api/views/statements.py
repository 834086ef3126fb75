# accounting/api/views/statements.py

"""
PATH: accounting/api/views/statements.py

STATEMENT VIEWS

GET /api/accounting/accounts/<id>/statement/?start=&end=&include_sub_accounts=
GET /api/accounting/statements/<customer|supplier>/<id>/?start=&end=
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.errors import DateParamError, date_param, forbidden
from accounting.models.account import LinkedEntityType
from accounting.services.exceptions import AccountResolutionError, AccountingServiceError
from accounting.services.statement_service import account_statement, entity_statement


def _window(request):
    start = date_param(request, "start")
    end = date_param(request, "end")
    if start and end and start > end:
        raise DateParamError("start must be on or before end")
    return start, end


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="start", type=str, required=False),
        OpenApiParameter(name="end", type=str, required=False),
        OpenApiParameter(name="include_sub_accounts", type=bool, required=False),
    ],
    responses={200: dict},
)
class AccountStatementView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, account_id: int):
        if not request.user.has_perm("accounting.view_journalline"):
            return forbidden("You do not have permission to view account statements.")

        try:
            start, end = _window(request)
        except DateParamError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        include_sub = str(request.query_params.get("include_sub_accounts", "true")).lower() not in ("false", "0")

        try:
            statement = account_statement(account_id, start, end, include_sub_accounts=include_sub)
        except AccountResolutionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(statement.as_dict(), status=status.HTTP_200_OK)


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="start", type=str, required=False),
        OpenApiParameter(name="end", type=str, required=False),
    ],
    responses={200: dict},
)
class EntityStatementView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, entity_type: str, entity_id: int):
        if entity_type not in LinkedEntityType.values:
            return Response({"detail": f"Unknown entity type: {entity_type}"}, status=status.HTTP_404_NOT_FOUND)

        if not request.user.has_perm(f"invoicing.view_{entity_type}"):
            return forbidden(f"You do not have permission to view {entity_type} statements.")

        try:
            start, end = _window(request)
        except DateParamError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            statement = entity_statement(entity_id, entity_type, start, end)
        except AccountingServiceError as exc:
            # unknown entity is the only failure mode here
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(statement.as_dict(), status=status.HTTP_200_OK)
