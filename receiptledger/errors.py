"""
Domain error taxonomy.

Every error carries the HTTP status it maps to so routers can let them
propagate and ``main`` renders the JSON error envelope in one place.
"""
from __future__ import annotations

from typing import Any, Optional


class ReceiptLedgerError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidArgument(ReceiptLedgerError):
    status_code = 400


class NotFound(ReceiptLedgerError):
    status_code = 404


class Conflict(ReceiptLedgerError):
    status_code = 409


class AlreadyApproved(Conflict):
    """Raised when a job has already been turned into ledger rows."""


class InvalidJobState(Conflict):
    """Raised on a job transition the state machine does not allow."""


class PayloadTooLarge(ReceiptLedgerError):
    status_code = 413


class CollaboratorError(ReceiptLedgerError):
    """OCR, LLM or storage call failed."""

    status_code = 500


class CollaboratorTimeout(CollaboratorError):
    pass


class MalformedAIResponse(CollaboratorError):
    """The categorization model returned output that does not fit the schema."""


class LedgerWriteError(ReceiptLedgerError):
    """A ledger insert failed; the surrounding transaction was rolled back."""

    status_code = 500
