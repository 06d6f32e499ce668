"""Custom exceptions for SplitLedger."""

from decimal import Decimal


class SplitLedgerError(Exception):
    """Base exception for all SplitLedger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class SplitValidationError(SplitLedgerError, ValueError):
    """Raised when an expense cannot be split with the given inputs."""

    pass


class SettlementValidationError(SplitLedgerError, ValueError):
    """Raised when a settlement payment is malformed."""

    pass


class ShareMismatchError(SplitLedgerError):
    """Raised when participant shares don't add up to the expense amount."""

    def __init__(
        self,
        expense_id: str,
        amount: Decimal,
        share_total: Decimal,
        message: str | None = None,
    ):
        self.expense_id = expense_id
        self.amount = amount
        self.share_total = share_total
        super().__init__(
            message
            or f"Participant shares for expense {expense_id} total {share_total}, "
            f"expected {amount}"
        )


class NotFoundError(SplitLedgerError):
    """Base class for missing-record errors."""

    kind = "Record"

    def __init__(self, record_id: str, message: str | None = None):
        self.record_id = record_id
        super().__init__(message or f"{self.kind} {record_id} not found")


class UserNotFoundError(NotFoundError):
    """Raised when a user id doesn't exist."""

    kind = "User"


class GroupNotFoundError(NotFoundError):
    """Raised when a group id doesn't exist."""

    kind = "Group"


class ExpenseNotFoundError(NotFoundError):
    """Raised when an expense id doesn't exist."""

    kind = "Expense"


class SettlementNotFoundError(NotFoundError):
    """Raised when a settlement record doesn't exist."""

    kind = "Settlement"
