# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from accounting.models.account import Account, AccountType, LinkedEntityType
from accounting.models.journal import REVERSAL_PREFIX, EntryType, JournalEntry
from accounting.models.ledger import JournalLine
from accounting.models.sequence import NumberSequence

__all__ = [
    "Account",
    "AccountType",
    "LinkedEntityType",
    "JournalEntry",
    "EntryType",
    "REVERSAL_PREFIX",
    "JournalLine",
    "NumberSequence",
]
