"""
Shared fixtures: in-memory repository, scripted model provider and
Lambda handler loading.
"""

import importlib.util
import os
from copy import deepcopy
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

# Powertools configuration must be in place before handlers are imported
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "expense-management")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "ExpenseManagementTests")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from models import Expense, ExpenseFields, ExpenseStatus, User, Category, StatusInfo  # noqa: E402

FUNCTIONS_DIR = Path(__file__).resolve().parent.parent / "functions"

NOW = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)


def make_expense(
    expense_id: int,
    user_id: int = 1,
    amount: str = "250.00",
    status: ExpenseStatus = ExpenseStatus.DRAFT,
    **kwargs
) -> Expense:
    defaults = dict(
        category_id=1,
        expense_date=date(2025, 5, 28),
        description=f"Expense {expense_id}",
        category_name="Meals",
        user_name="John Doe" if user_id == 1 else f"User {user_id}",
        created_at=datetime(2025, 5, 28, 12, 0, tzinfo=timezone.utc),
    )
    defaults.update(kwargs)
    return Expense(
        expense_id=expense_id,
        user_id=user_id,
        amount=Decimal(amount),
        status=status,
        **defaults
    )


class FakeRepository:
    """In-memory stand-in for SupabaseClient that records every call."""

    def __init__(self, expenses=None, users=None):
        self.expenses: dict[int, Expense] = {e.expense_id: e for e in (expenses or [])}
        self.users: dict[int, User] = {u.user_id: u for u in (users or [])}
        self.categories = [
            Category(1, "Meals", "Business meals and entertainment"),
            Category(2, "Travel", "Transportation and lodging"),
        ]
        self.summary = {"total_expenses": 0, "total_amount": Decimal("0")}
        self.calls: list[str] = []
        self.fail_with: Optional[Exception] = None
        self.lose_race = False
        self._next_id = max(self.expenses, default=0) + 1

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def get_expense(self, expense_id):
        self._record("get_expense")
        expense = self.expenses.get(expense_id)
        return deepcopy(expense) if expense else None

    def get_user(self, user_id):
        self._record("get_user")
        return self.users.get(user_id)

    def list_expenses(self):
        self._record("list_expenses")
        return [deepcopy(e) for e in self.expenses.values()]

    def list_expenses_by_user(self, user_id):
        self._record("list_expenses_by_user")
        return [deepcopy(e) for e in self.expenses.values() if e.user_id == user_id]

    def list_expenses_by_status(self, status):
        self._record("list_expenses_by_status")
        return [deepcopy(e) for e in self.expenses.values() if e.status == status]

    def list_pending_expenses(self):
        self._record("list_pending_expenses")
        return [deepcopy(e) for e in self.expenses.values() if e.status == ExpenseStatus.PENDING]

    def get_expense_summary(self):
        self._record("get_expense_summary")
        return dict(self.summary)

    def list_users(self):
        self._record("list_users")
        return list(self.users.values())

    def list_categories(self):
        self._record("list_categories")
        return list(self.categories)

    def list_statuses(self):
        self._record("list_statuses")
        return [StatusInfo(s.value, s.label) for s in ExpenseStatus]

    def create_expense(self, user_id, fields: ExpenseFields, created_at):
        self._record("create_expense")
        expense_id = self._next_id
        self._next_id += 1
        self.expenses[expense_id] = Expense(
            expense_id=expense_id,
            user_id=user_id,
            category_id=fields.category_id,
            amount=fields.amount,
            expense_date=fields.expense_date,
            description=fields.description,
            receipt=fields.receipt,
            created_at=created_at,
        )
        return expense_id

    def set_expense_status(self, expense_id, new_status, expected_status, timestamp,
                           actor_id=None, comments=None):
        self._record("set_expense_status")
        current = self.expenses.get(expense_id)
        if self.lose_race or current is None or current.status != expected_status:
            return False
        changes = {"status": new_status}
        if new_status == ExpenseStatus.PENDING:
            changes["submitted_at"] = timestamp
        else:
            changes.update(approved_by=actor_id, approved_at=timestamp, comments=comments)
        self.expenses[expense_id] = replace(current, **changes)
        return True

    def update_expense_fields(self, expense_id, fields, expected_status=ExpenseStatus.DRAFT):
        self._record("update_expense_fields")
        current = self.expenses.get(expense_id)
        if self.lose_race or current is None or current.status != expected_status:
            return False
        self.expenses[expense_id] = replace(
            current,
            category_id=fields.category_id,
            amount=fields.amount,
            expense_date=fields.expense_date,
            description=fields.description,
            receipt=fields.receipt,
        )
        return True

    def delete_expense(self, expense_id, expected_status=ExpenseStatus.DRAFT):
        self._record("delete_expense")
        current = self.expenses.get(expense_id)
        if self.lose_race or current is None or current.status != expected_status:
            return False
        del self.expenses[expense_id]
        return True


class ScriptedProvider:
    """ModelProvider returning queued replies and recording each request."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: list[dict] = []

    def complete(self, messages, functions=None, allow_function_calls=True):
        self.requests.append({
            "messages": deepcopy(messages),
            "functions": functions,
            "allow_function_calls": allow_function_calls,
        })
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class FakeLambdaContext:
    function_name: str = "expense-test"
    function_version: str = "$LATEST"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:expense-test"
    aws_request_id: str = "00000000-0000-0000-0000-000000000000"
    tenant_id: Optional[str] = None


def load_handler(function_dir: str):
    """Import a function's handler.py under a unique module name."""
    path = FUNCTIONS_DIR / function_dir / "handler.py"
    spec = importlib.util.spec_from_file_location(f"{function_dir}_handler", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def users():
    return [
        User(1, "John", "Doe", "john.doe@company.com", "Sales", is_manager=False),
        User(2, "Jane", "Smith", "jane.smith@company.com", "Sales", is_manager=True),
        User(3, "Sam", "Lee", "sam.lee@company.com", "Finance", is_manager=True),
    ]


@pytest.fixture
def repository(users):
    return FakeRepository(
        expenses=[
            make_expense(1, status=ExpenseStatus.DRAFT),
            make_expense(2, amount="125.50", status=ExpenseStatus.PENDING,
                         submitted_at=datetime(2025, 5, 29, tzinfo=timezone.utc)),
            make_expense(3, amount="80.00", status=ExpenseStatus.APPROVED, approved_by=2),
            make_expense(4, amount="42.10", status=ExpenseStatus.REJECTED, approved_by=2),
            make_expense(5, user_id=2, amount="300.00", status=ExpenseStatus.PENDING),
        ],
        users=users,
    )


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()
