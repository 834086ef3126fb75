# invoicing/services/notification_service.py

"""
INVOICE DUE-DATE NOTIFICATIONS

- overdue:   not paid, due_date < today
- due_soon:  not paid, today <= due_date <= today + days
- due_today: not paid, due_date == today

Amounts are reported as invoice totals plus the outstanding part.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from invoicing.models import Invoice, PaymentStatus

ZERO = Decimal("0.00")


def _bucket(invoices: list[Invoice]) -> dict:
    return {
        "count": len(invoices),
        "amount": str(sum((inv.total for inv in invoices), ZERO)),
        "outstanding": str(sum((inv.remaining_amount for inv in invoices), ZERO)),
        "invoices": [
            {
                "id": inv.pk,
                "invoice_number": inv.invoice_number,
                "invoice_type": inv.invoice_type,
                "due_date": inv.due_date.isoformat(),
                "total": str(inv.total),
                "paid_amount": str(inv.paid_amount),
            }
            for inv in invoices
        ],
    }


def invoice_notifications(today: date | None = None, days: int | None = None) -> dict:
    today = today or timezone.localdate()
    days = settings.INVOICE_DUE_SOON_DAYS if days is None else int(days)

    unpaid = list(
        Invoice.objects.filter(is_return=False, due_date__isnull=False)
        .exclude(payment_status=PaymentStatus.PAID)
        .order_by("due_date", "id")
    )

    horizon = today + timedelta(days=days)
    overdue = [inv for inv in unpaid if inv.due_date < today]
    due_soon = [inv for inv in unpaid if today <= inv.due_date <= horizon]
    due_today = [inv for inv in unpaid if inv.due_date == today]

    return {
        "today": today.isoformat(),
        "days": days,
        "overdue": _bucket(overdue),
        "due_soon": _bucket(due_soon),
        "due_today": _bucket(due_today),
    }
