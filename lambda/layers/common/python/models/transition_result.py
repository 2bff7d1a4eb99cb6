"""
Transition Result Data Model
============================

Typed outcome of an expense lifecycle operation. Rule violations are
reported as values, never raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .expense import Expense


class TransitionError(str, Enum):
    """Why a lifecycle operation was refused."""
    INVALID_TRANSITION = "invalid_transition"  # Status precondition violated
    UNAUTHORIZED = "unauthorized"  # Actor lacks the manager capability
    NOT_FOUND = "not_found"  # Expense or user does not exist


@dataclass
class TransitionResult:
    """
    Result of Submit / Approve / Reject / Update / Delete / Create.

    On success `expense` is the snapshot after the operation (for Delete,
    the snapshot that was removed).
    """

    success: bool
    expense: Optional[Expense] = None
    error: Optional[TransitionError] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, expense: Expense, message: Optional[str] = None) -> "TransitionResult":
        return cls(success=True, expense=expense, message=message)

    @classmethod
    def fail(
        cls,
        error: TransitionError,
        message: str,
        expense: Optional[Expense] = None
    ) -> "TransitionResult":
        return cls(success=False, expense=expense, error=error, message=message)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        data = {
            "success": self.success,
            "message": self.message,
        }
        if self.error:
            data["error"] = self.error.value
        if self.expense:
            data["expense"] = self.expense.to_dict()
        return data
