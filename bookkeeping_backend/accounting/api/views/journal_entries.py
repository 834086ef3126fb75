# accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL API (AUDIT SAFE)

- Journal entries are read-only except for manual entry creation.
  Reversal is the only correction path; nothing is edited or deleted.
  Invoice and voucher entries are reversed through their documents.
- Journal lines are read-only, filterable via django-filter:
    /api/accounting/journal-lines/?journal_entry=30
    /api/accounting/journal-lines/?account=28
"""

from django.db.models import Prefetch
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet, ReadOnlyModelViewSet

from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalLineSerializer,
    ManualJournalEntrySerializer,
)
from accounting.api.views.errors import forbidden, service_error_response
from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.exceptions import AccountingServiceError
from accounting.services.posting import create_manual_entry, reverse_manual_entry


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(mixins.CreateModelMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_fields = ["entry_type", "reference", "date", "related_voucher_id"]
    http_method_names = ["get", "post", "head", "options"]

    queryset = (
        JournalEntry.objects.prefetch_related(
            Prefetch("lines", queryset=JournalLine.objects.select_related("account").order_by("id"))
        ).order_by("-date", "-entry_number")
    )

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_journalentry"):
            raise PermissionDenied("You do not have permission to view journal entries.")
        return super().get_queryset()

    @extend_schema(request=ManualJournalEntrySerializer, responses={201: JournalEntrySerializer})
    def create(self, request, *args, **kwargs):
        if not request.user.has_perm("accounting.add_journalentry"):
            return forbidden("You do not have permission to create journal entries.")

        serializer = ManualJournalEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        lines = []
        for line in data["lines"]:
            account = None
            if line.get("account_id"):
                account = Account.objects.filter(pk=line["account_id"]).first()
                if account is None:
                    return Response(
                        {"detail": f"Account {line['account_id']} not found"},
                        status=status.HTTP_400_BAD_REQUEST,
                    )
            lines.append(
                {
                    "account": account,
                    "account_code": line.get("account_code"),
                    "debit": line.get("debit"),
                    "credit": line.get("credit"),
                    "description": line.get("description"),
                }
            )

        try:
            entry = create_manual_entry(
                entry_date=data.get("date"),
                description=data["description"],
                reference=data.get("reference") or "",
                lines=lines,
            )
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={201: JournalEntrySerializer})
    @action(detail=True, methods=["post"])
    def reverse(self, request, pk=None):
        if not request.user.has_perm("accounting.add_journalentry"):
            return forbidden("You do not have permission to reverse journal entries.")

        entry = self.get_object()
        try:
            reversal = reverse_manual_entry(entry)
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(JournalEntrySerializer(reversal).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["accounting"])
class JournalLineViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalLineSerializer
    filterset_fields = ["journal_entry", "account"]

    queryset = JournalLine.objects.select_related("journal_entry", "account").order_by("-id")

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_journalline"):
            raise PermissionDenied("You do not have permission to view journal lines.")
        return super().get_queryset()
