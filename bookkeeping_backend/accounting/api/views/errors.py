# accounting/api/views/errors.py

"""
Shared helpers for accounting/invoicing API views.

- service errors -> 400 responses
- field-level validation errors keep {"field", "message"} so the UI can
  highlight the offending input
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import (
    AccountingServiceError,
    InvoiceValidationError,
    VoucherValidationError,
)


def service_error_response(exc: AccountingServiceError) -> Response:
    if isinstance(exc, (VoucherValidationError, InvoiceValidationError)):
        return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def forbidden(message: str) -> Response:
    return Response({"detail": message}, status=status.HTTP_403_FORBIDDEN)


class DateParamError(ValueError):
    pass


def date_param(request, name: str):
    """
    Optional YYYY-MM-DD query param. Empty -> None, garbage -> DateParamError.
    """
    raw = str(request.query_params.get(name) or "").strip()
    if not raw:
        return None
    try:
        d = parse_date(raw)
    except ValueError:
        d = None
    if d is None:
        raise DateParamError(f"Invalid {name} (expected YYYY-MM-DD)")
    return d
