"""
Expense Query Functions
=======================

Read-only functions the assistant can call. Each one runs a single
repository query and returns a compact summary (count, total and light
projections) instead of raw rows.
"""

from decimal import Decimal
from typing import Any, Callable, Optional

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field

from models import Expense, ExpenseStatus

logger = Logger()


class ToolContext:
    """
    Context passed to query functions.

    The repository is either given directly or built by repository_factory
    on first access, so a function that never touches data never needs
    repository configuration.
    """

    def __init__(
        self,
        repository: Any = None,
        user_id: int = 0,
        repository_factory: Optional[Callable[[], Any]] = None
    ):
        self._repository = repository
        self._repository_factory = repository_factory
        self.user_id = user_id

    @property
    def repository(self) -> Any:
        if self._repository is None and self._repository_factory is not None:
            self._repository = self._repository_factory()
        return self._repository


# =============================================================================
# ARGUMENTS
# =============================================================================

class UserExpensesArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")

    userId: Optional[int] = Field(
        default=None,
        description="The ID of the user. Defaults to the user asking the question."
    )


class NoArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ExpensesByStatusArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")

    statusId: Optional[int] = Field(
        default=None,
        ge=1,
        le=4,
        description="The status ID (1=Draft, 2=Pending, 3=Approved, 4=Rejected). Defaults to 2 (Pending)."
    )


# =============================================================================
# FUNCTIONS
# =============================================================================

def _total(expenses: list[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), Decimal("0"))


def _review_projection(expense: Expense) -> dict:
    return {
        "id": expense.expense_id,
        "amount": expense.amount,
        "user": expense.user_name,
        "description": expense.description,
        "category": expense.category_name,
    }


def get_user_expenses(args: UserExpensesArguments, context: ToolContext) -> dict:
    """All expenses of one user; the asking user unless userId is given."""
    user_id = args.userId if args.userId is not None else context.user_id
    expenses = context.repository.list_expenses_by_user(user_id)
    logger.info(f"get_user_expenses: {len(expenses)} expenses for user {user_id}")

    return {
        "count": len(expenses),
        "total": _total(expenses),
        "expenses": [
            {
                "id": e.expense_id,
                "amount": e.amount,
                "date": e.expense_date,
                "description": e.description,
                "category": e.category_name,
                "status": e.status_name,
            }
            for e in expenses
        ],
    }


def get_expense_summary(args: NoArguments, context: ToolContext) -> dict:
    """Aggregate totals and counts by status."""
    return dict(context.repository.get_expense_summary())


def get_pending_expenses(args: NoArguments, context: ToolContext) -> dict:
    expenses = context.repository.list_pending_expenses()
    logger.info(f"get_pending_expenses: {len(expenses)} pending")

    return {
        "count": len(expenses),
        "total": _total(expenses),
        "expenses": [_review_projection(e) for e in expenses],
    }


def get_expenses_by_status(args: ExpensesByStatusArguments, context: ToolContext) -> dict:
    status = ExpenseStatus(args.statusId) if args.statusId is not None else ExpenseStatus.PENDING
    expenses = context.repository.list_expenses_by_status(status)

    return {
        "status": status.label,
        "count": len(expenses),
        "total": _total(expenses),
        "expenses": [_review_projection(e) for e in expenses],
    }
