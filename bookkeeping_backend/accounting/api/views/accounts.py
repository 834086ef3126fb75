# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API

GET  /api/accounting/accounts/   (accounting.view_account)
POST /api/accounting/accounts/   (accounting.add_account)

Filters:
- ?account_type=asset
- ?parent_code=1101
- ?active=true
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accounts import AccountCreateSerializer, AccountListSerializer
from accounting.api.views.errors import forbidden
from accounting.models.account import Account


class AccountListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="account_type", type=str, required=False),
            OpenApiParameter(name="parent_code", type=str, required=False),
            OpenApiParameter(name="active", type=bool, required=False),
        ],
        responses=AccountListSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm("accounting.view_account"):
            return forbidden("You do not have permission to view accounts.")

        qs = Account.objects.all().order_by("code")

        account_type = (request.query_params.get("account_type") or "").strip()
        if account_type:
            qs = qs.filter(account_type=account_type)

        parent_code = (request.query_params.get("parent_code") or "").strip()
        if parent_code:
            qs = qs.filter(parent_code=parent_code)

        active = (request.query_params.get("active") or "").strip().lower()
        if active in ("true", "1"):
            qs = qs.filter(is_active=True)
        elif active in ("false", "0"):
            qs = qs.filter(is_active=False)

        return Response(AccountListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["accounting"],
        request=AccountCreateSerializer,
        responses={201: AccountListSerializer},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm("accounting.add_account"):
            return forbidden("You do not have permission to create accounts.")

        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = serializer.save()
        return Response(AccountListSerializer(account).data, status=status.HTTP_201_CREATED)
