# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountCreateSerializer, AccountListSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalLineSerializer,
    ManualJournalEntrySerializer,
)

__all__ = [
    "AccountListSerializer",
    "AccountCreateSerializer",
    "JournalEntrySerializer",
    "JournalLineSerializer",
    "ManualJournalEntrySerializer",
]
