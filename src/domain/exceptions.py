"""Domain exceptions

Raised inside the credit engine and converted to Result errors (or
acknowledged webhook outcomes) at the use case boundary.
"""

from typing import Optional


class CreditEngineError(Exception):
    """Base class for credit engine failures"""
    code = "CREDIT_ENGINE_ERROR"


class InsufficientCredit(CreditEngineError):
    """Admission rejected by the credit evaluator"""
    code = "INSUFFICIENT_CREDIT"

    def __init__(self, message: str, limiting_factor: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.limiting_factor = limiting_factor


class LedgerWriteConflict(CreditEngineError):
    """Concurrent mutation of the same company/order detected at write time"""
    code = "LEDGER_WRITE_CONFLICT"


class MalformedPayload(CreditEngineError):
    """Webhook payload is missing the fields needed to correlate it"""
    code = "MALFORMED_PAYLOAD"
