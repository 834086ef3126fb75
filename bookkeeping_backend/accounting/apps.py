# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry core:
- Chart of accounts (registry + templates)
- Journal entries / lines (immutable)
- Invoice + voucher posting, settlement, reversal
- Statements and financial reports
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting"
