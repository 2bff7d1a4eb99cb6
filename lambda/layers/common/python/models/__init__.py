"""
Expense Management - Data Models
================================

Typed data models for the expense approval workflow.
"""

from .expense import Expense, ExpenseFields, ExpenseStatus, ALLOWED_TRANSITIONS
from .reference import User, Category, StatusInfo
from .transition_result import TransitionResult, TransitionError
from .requests import (
    CreateExpenseRequest,
    UpdateExpenseRequest,
    ApprovalRequest,
    ChatRequest,
)

__all__ = [
    "Expense",
    "ExpenseFields",
    "ExpenseStatus",
    "ALLOWED_TRANSITIONS",
    "User",
    "Category",
    "StatusInfo",
    "TransitionResult",
    "TransitionError",
    "CreateExpenseRequest",
    "UpdateExpenseRequest",
    "ApprovalRequest",
    "ChatRequest",
]
