"""
Domain-specific exceptions for the ledger services.

These exceptions represent business rule violations. They are raised by the
service layer and converted to HTTP responses by the handlers in main.py.
"""


class LedgerServiceError(Exception):
    """Base exception for all ledger service errors."""
    pass


class NotFoundError(LedgerServiceError):
    """Raised when a person, group, entry, term, allocation or payment does not exist."""
    pass


class EntryValidationError(LedgerServiceError):
    """Raised when submitted entry or payment data fails validation."""
    pass


class FieldLockedError(LedgerServiceError):
    """Raised when a frozen field is changed after payments were recorded."""
    pass


class PaymentLimitExceededError(LedgerServiceError):
    """Raised when a payment is above the remaining balance or allocation cap."""
    pass


class TermActionError(LedgerServiceError):
    """Raised when an installment term does not allow the requested action."""
    pass


class ConflictError(LedgerServiceError):
    """Raised when a record cannot be removed because others still reference it."""
    pass
