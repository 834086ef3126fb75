# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class PostingRuleError(AccountingServiceError):
    """Raised when a posting rule cannot be applied."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""


class UnbalancedEntryError(JournalEntryCreationError):
    """Raised when total debits do not equal total credits."""


class SettlementError(AccountingServiceError):
    """Raised when a voucher cannot be settled or reversed."""


class VoucherValidationError(SettlementError):
    """
    Raised before any write when voucher input is invalid.

    `field` names the offending input so the API can point at it.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class InvoiceCancellationError(AccountingServiceError):
    """Raised when an invoice cannot be cancelled (e.g. vouchers reference it)."""


class InvoiceValidationError(AccountingServiceError):
    """Raised before any write when invoice input is invalid."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}
