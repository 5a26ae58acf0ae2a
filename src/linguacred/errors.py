"""Error taxonomy for the credit, streak and reward core.

Every failure is a subclass of ``LinguaError`` carrying a stable ``code`` so
callers can decide between retrying and surfacing the error without parsing
messages. Only ``StorageConflictError`` is retryable.
"""

from __future__ import annotations


class LinguaError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 400
    retryable = False
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticatedError(LinguaError):
    code = "not_authenticated"
    status_code = 401
    default_message = "Not authenticated"


class UserNotFoundError(LinguaError):
    code = "user_not_found"
    status_code = 404
    default_message = "User not found"


class InvalidAmountError(LinguaError):
    code = "invalid_amount"
    status_code = 422
    default_message = "Amount must be non-zero"


class InsufficientCreditsError(LinguaError):
    code = "insufficient_credits"
    status_code = 402
    default_message = "Insufficient credits"

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits: need {required}, have {available}")


class AlreadyProcessedError(LinguaError):
    code = "already_processed"
    status_code = 409
    default_message = "Transaction already processed"


class TransactionNotFoundError(LinguaError):
    code = "transaction_not_found"
    status_code = 404
    default_message = "Transaction not found"


class NotOwnedError(LinguaError):
    code = "not_owned"
    status_code = 403
    default_message = "Transaction belongs to another user"


class UnknownMilestoneError(LinguaError):
    code = "unknown_milestone"
    status_code = 422
    default_message = "Unknown milestone type"


class StorageConflictError(LinguaError):
    code = "storage_conflict"
    status_code = 409
    retryable = True
    default_message = "Concurrent update conflict, please retry"


class ConversationNotFoundError(LinguaError):
    code = "conversation_not_found"
    status_code = 404
    default_message = "Conversation session not found"


class FoundationModuleNotFoundError(LinguaError):
    code = "module_not_found"
    status_code = 404
    default_message = "Module not found"
