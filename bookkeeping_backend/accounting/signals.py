# accounting/signals.py

"""
ACCOUNTING SIGNALS

ledger_changed:
- Sent once per completed ledger mutation (after commit).
- kwargs: operation (str), plus whatever identifiers the operation reports.
"""

from django.dispatch import Signal

ledger_changed = Signal()
