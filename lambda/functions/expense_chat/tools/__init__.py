"""
Expense Assistant Tools
=======================

Read-only functions the chat assistant can call.
"""

from .expense_queries import (
    ToolContext,
    get_user_expenses,
    get_expense_summary,
    get_pending_expenses,
    get_expenses_by_status,
)
from .registry import FunctionSpec, FunctionRegistry, EXPENSE_FUNCTIONS

__all__ = [
    "ToolContext",
    "get_user_expenses",
    "get_expense_summary",
    "get_pending_expenses",
    "get_expenses_by_status",
    "FunctionSpec",
    "FunctionRegistry",
    "EXPENSE_FUNCTIONS",
]
