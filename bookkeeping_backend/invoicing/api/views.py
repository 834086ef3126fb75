# invoicing/api/views.py

"""
PATH: invoicing/api/views.py

INVOICING API

- customers / suppliers: CRUD + open-account (dedicated ledger sub-account)
- invoices: issue (POST), cancel (DELETE), explicit post, overdue refresh,
  due-date notifications
- vouchers: settle (POST), reverse (DELETE)

Invoices and vouchers are never edited through the API; every money
movement goes through the accounting services so the ledger stays in step.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet, ModelViewSet

from accounting.api.serializers import AccountListSerializer, JournalEntrySerializer
from accounting.api.views.errors import DateParamError, date_param, service_error_response
from accounting.models.account import Account, LinkedEntityType
from accounting.services.account_registry import open_entity_account
from accounting.services.exceptions import (
    AccountingServiceError,
    InvoiceValidationError,
    VoucherValidationError,
)
from accounting.services.settlement_service import reverse_voucher, settle_voucher
from invoicing.api.serializers import (
    CustomerSerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    SupplierSerializer,
    VoucherCreateSerializer,
    VoucherSerializer,
)
from invoicing.models import Customer, Invoice, Supplier, Voucher
from invoicing.services.invoice_service import (
    cancel_invoice,
    issue_invoice,
    post_invoice_now,
    refresh_overdue_statuses,
)
from invoicing.services.notification_service import invoice_notifications

ACTION_PERMS = {
    "list": "view",
    "retrieve": "view",
    "create": "add",
    "update": "change",
    "partial_update": "change",
    "destroy": "delete",
}


class _PermissionMappedViewSet(GenericViewSet):
    """
    Maps each action onto the model's Django permission
    (invoicing.view_invoice, invoicing.add_voucher, ...).
    """

    permission_classes = [IsAuthenticated]
    extra_action_perms: dict[str, str] = {}

    def check_permissions(self, request):
        super().check_permissions(request)
        verb = self.extra_action_perms.get(self.action) or ACTION_PERMS.get(self.action)
        if verb is None:
            return
        opts = self.queryset.model._meta
        if not request.user.has_perm(f"{opts.app_label}.{verb}_{opts.model_name}"):
            raise PermissionDenied(f"You do not have permission to {verb} {opts.verbose_name_plural}.")


def _lookup(model, pk, *, field: str, error):
    if pk in (None, ""):
        return None
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist as exc:
        raise error(field, f"{model._meta.verbose_name.title()} {pk} not found") from exc


# ---------------------------------------------------------
# Customers / suppliers
# ---------------------------------------------------------
class _PartyViewSet(_PermissionMappedViewSet, ModelViewSet):
    entity_type: str = ""
    extra_action_perms = {"open_account": "change"}

    def get_queryset(self):
        qs = super().get_queryset().order_by("name")
        active = (self.request.query_params.get("active") or "").strip().lower()
        if active in ("true", "1"):
            qs = qs.filter(is_active=True)
        return qs

    def destroy(self, request, *args, **kwargs):
        party = self.get_object()
        if party.invoices.exists() or party.vouchers.exists():
            # history stays; deactivate instead
            party.is_active = False
            party.save(update_fields=["is_active"])
            return Response(self.get_serializer(party).data, status=status.HTTP_200_OK)
        return super().destroy(request, *args, **kwargs)

    @extend_schema(request=None, responses={200: AccountListSerializer})
    @action(detail=True, methods=["post"], url_path="open-account")
    def open_account(self, request, pk=None):
        party = self.get_object()
        try:
            account = open_entity_account(self.entity_type, party)
        except AccountingServiceError as exc:
            return service_error_response(exc)
        return Response(AccountListSerializer(account).data, status=status.HTTP_200_OK)


@extend_schema(tags=["invoicing"])
class CustomerViewSet(_PartyViewSet):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer
    entity_type = LinkedEntityType.CUSTOMER


@extend_schema(tags=["invoicing"])
class SupplierViewSet(_PartyViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    entity_type = LinkedEntityType.SUPPLIER


# ---------------------------------------------------------
# Invoices
# ---------------------------------------------------------
@extend_schema(tags=["invoicing"])
class InvoiceViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    _PermissionMappedViewSet,
):
    serializer_class = InvoiceSerializer
    filterset_fields = ["invoice_type", "payment_status", "payment_method", "is_return", "customer", "supplier"]
    extra_action_perms = {
        "post_entry": "change",
        "refresh_overdue": "change",
        "notifications": "view",
    }

    queryset = Invoice.objects.select_related("customer", "supplier", "payment_bank_account").order_by(
        "-date", "-id"
    )

    @extend_schema(request=InvoiceCreateSerializer, responses={201: InvoiceSerializer})
    def create(self, request, *args, **kwargs):
        s = InvoiceCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            invoice = issue_invoice(
                invoice_type=data["invoice_type"],
                customer=_lookup(Customer, data.get("customer_id"), field="customer", error=InvoiceValidationError),
                supplier=_lookup(Supplier, data.get("supplier_id"), field="supplier", error=InvoiceValidationError),
                subtotal=data["subtotal"],
                discount_amount=data.get("discount_amount"),
                vat_amount=data.get("vat_amount"),
                total=data.get("total"),
                paid_amount=data.get("paid_amount"),
                payment_method=data["payment_method"],
                payment_bank_account=_lookup(
                    Account,
                    data.get("payment_bank_account_id"),
                    field="payment_bank_account",
                    error=InvoiceValidationError,
                ),
                is_return=data["is_return"],
                original_invoice=_lookup(
                    Invoice,
                    data.get("original_invoice_id"),
                    field="original_invoice",
                    error=InvoiceValidationError,
                ),
                invoice_date=data.get("date"),
                due_date=data.get("due_date"),
                notes=data.get("notes") or "",
            )
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: JournalEntrySerializer, 204: None})
    def destroy(self, request, *args, **kwargs):
        invoice = self.get_object()
        try:
            reversal = cancel_invoice(invoice.pk)
        except AccountingServiceError as exc:
            return service_error_response(exc)

        if reversal is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(JournalEntrySerializer(reversal).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: JournalEntrySerializer})
    @action(detail=True, methods=["post"], url_path="post")
    def post_entry(self, request, pk=None):
        invoice = self.get_object()
        try:
            entry = post_invoice_now(invoice.pk)
        except AccountingServiceError as exc:
            return service_error_response(exc)
        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: dict})
    @action(detail=False, methods=["post"], url_path="refresh-overdue")
    def refresh_overdue(self, request):
        updated = refresh_overdue_statuses()
        return Response({"updated": updated}, status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[
            OpenApiParameter(name="days", type=int, required=False),
            OpenApiParameter(name="today", type=str, required=False),
        ],
        responses={200: dict},
    )
    @action(detail=False, methods=["get"])
    def notifications(self, request):
        try:
            today = date_param(request, "today")
        except DateParamError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        days = request.query_params.get("days")
        if days not in (None, ""):
            try:
                days = int(days)
            except (TypeError, ValueError):
                return Response({"detail": "days must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
            if days < 0:
                return Response({"detail": "days cannot be negative"}, status=status.HTTP_400_BAD_REQUEST)
        else:
            days = None

        return Response(invoice_notifications(today=today, days=days), status=status.HTTP_200_OK)


# ---------------------------------------------------------
# Vouchers
# ---------------------------------------------------------
@extend_schema(tags=["invoicing"])
class VoucherViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    _PermissionMappedViewSet,
):
    serializer_class = VoucherSerializer
    filterset_fields = ["voucher_type", "customer", "supplier", "invoice"]

    queryset = Voucher.objects.select_related("invoice", "cash_account", "customer", "supplier").order_by(
        "-date", "-id"
    )

    @extend_schema(request=VoucherCreateSerializer, responses={201: dict})
    def create(self, request, *args, **kwargs):
        s = VoucherCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = settle_voucher(
                voucher_type=data["voucher_type"],
                amount=data["amount"],
                cash_account=_lookup(
                    Account, data["cash_account_id"], field="cash_account", error=VoucherValidationError
                ),
                customer=_lookup(Customer, data.get("customer_id"), field="customer", error=VoucherValidationError),
                supplier=_lookup(Supplier, data.get("supplier_id"), field="supplier", error=VoucherValidationError),
                invoice=_lookup(Invoice, data.get("invoice_id"), field="invoice", error=VoucherValidationError),
                voucher_date=data.get("date"),
                description=data.get("description") or "",
            )
        except AccountingServiceError as exc:
            return service_error_response(exc)

        body = result.as_dict()
        body["voucher"] = VoucherSerializer(result.voucher).data
        return Response(body, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: dict})
    def destroy(self, request, *args, **kwargs):
        voucher = self.get_object()
        try:
            result = reverse_voucher(voucher.pk)
        except AccountingServiceError as exc:
            return service_error_response(exc)
        return Response(result.as_dict(), status=status.HTTP_200_OK)
