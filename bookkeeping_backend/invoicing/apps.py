# invoicing/apps.py

"""
INVOICING APP CONFIG

Customers, suppliers, sales/purchase invoices and settlement vouchers.
Ledger effects live in accounting.services.
"""

from django.apps import AppConfig


class InvoicingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "invoicing"
    verbose_name = "Invoicing"
