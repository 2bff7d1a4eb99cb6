"""
Supabase Client Utilities
=========================

HTTP-based Supabase client for expense data operations.
Uses httpx for direct PostgREST calls to avoid heavy SDK dependencies.

Reads go through the expense_details view (expenses joined with category,
status and user names); writes go to the expenses table. Status writes are
conditional on the status the caller last saw, so a transition is a single
compare-and-set keyed by expense id.
"""

import os
from typing import Any, Optional
from datetime import datetime

import httpx
from aws_lambda_powertools import Logger

from models import (
    Expense,
    ExpenseFields,
    ExpenseStatus,
    User,
    Category,
    StatusInfo,
)

from .secrets import require_secrets

logger = Logger()

TIMEOUT_SECONDS = float(os.environ.get("SUPABASE_TIMEOUT_SECONDS", "30"))

EXPENSE_VIEW = "expense_details"
EXPENSE_TABLE = "expenses"

# Cached configuration
_config: Optional[dict] = None


def _get_config() -> dict:
    """Get cached Supabase configuration."""
    global _config
    if _config is None:
        values = require_secrets("SUPABASE_URL", "SUPABASE_KEY")
        _config = {"url": values["SUPABASE_URL"].rstrip("/"), "key": values["SUPABASE_KEY"]}
    return _config


def _get_headers() -> dict:
    """Get headers for Supabase REST API."""
    config = _get_config()
    return {
        "apikey": config["key"],
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": "application/json",
        "Prefer": "return=representation",
    }


def _rest_url(path: str) -> str:
    """Get REST API URL for a table, view or rpc path."""
    config = _get_config()
    return f"{config['url']}/rest/v1/{path}"


class SupabaseClient:
    """
    Repository for expenses, users, categories and statuses.
    Uses httpx for direct REST API calls.
    """

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=TIMEOUT_SECONDS, headers=_get_headers())

    def __del__(self):
        if getattr(self, "_owns_client", False) and hasattr(self, "_client"):
            self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json_body: Any = None
    ) -> Any:
        """Send a PostgREST request, translating transport and HTTP failures."""
        url = _rest_url(path)
        try:
            response = self._client.request(method, url, params=params, json=json_body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Supabase error: {method} {path} -> {e.response.status_code}")
            raise DataAccessError(
                f"Supabase {method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
                response_body=e.response.text
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase request failed: {method} {path}: {e}")
            raise DataAccessError(f"Supabase {method} {path} failed: {e}") from e

        if not response.content:
            return None
        return response.json()

    def _query(self, table: str, params: dict = None) -> list[dict]:
        """Execute a SELECT query."""
        return self._request("GET", table, params=params or {}) or []

    def _insert(self, table: str, data: dict) -> dict:
        """Insert a record."""
        result = self._request("POST", table, json_body=data)
        return result[0] if isinstance(result, list) and result else (result or {})

    def _update(self, table: str, data: dict, filters: dict) -> Optional[dict]:
        """Update records matching filters. Returns None when nothing matched."""
        params = {f"{k}": f"eq.{v}" for k, v in filters.items()}
        result = self._request("PATCH", table, params=params, json_body=data)
        return result[0] if isinstance(result, list) and result else None

    def _delete(self, table: str, filters: dict) -> list[dict]:
        """Delete records matching filters. Returns the deleted rows."""
        params = {f"{k}": f"eq.{v}" for k, v in filters.items()}
        return self._request("DELETE", table, params=params) or []

    def _rpc(self, function: str, args: Optional[dict] = None) -> Any:
        """Call a database function."""
        return self._request("POST", f"rpc/{function}", json_body=args or {})

    # =========================================================================
    # EXPENSE QUERIES
    # =========================================================================

    def list_expenses(self) -> list[Expense]:
        """Fetch all expenses, newest first."""
        rows = self._query(EXPENSE_VIEW, {"order": "created_at.desc"})
        return [Expense.from_dict(r) for r in rows]

    def list_expenses_by_user(self, user_id: int) -> list[Expense]:
        """Fetch all expenses owned by a user."""
        rows = self._query(EXPENSE_VIEW, {
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc"
        })
        return [Expense.from_dict(r) for r in rows]

    def list_expenses_by_status(self, status: ExpenseStatus) -> list[Expense]:
        """Fetch all expenses in a status."""
        rows = self._query(EXPENSE_VIEW, {
            "status_id": f"eq.{int(status)}",
            "order": "created_at.desc"
        })
        logger.info(f"Found {len(rows)} expenses with status {ExpenseStatus(status).label}")
        return [Expense.from_dict(r) for r in rows]

    def list_pending_expenses(self) -> list[Expense]:
        """Fetch expenses awaiting approval, oldest submission first."""
        rows = self._query(EXPENSE_VIEW, {
            "status_id": f"eq.{ExpenseStatus.PENDING.value}",
            "order": "submitted_at.asc"
        })
        logger.info(f"Found {len(rows)} pending expenses")
        return [Expense.from_dict(r) for r in rows]

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Fetch a single expense by ID."""
        rows = self._query(EXPENSE_VIEW, {"expense_id": f"eq.{expense_id}"})
        return Expense.from_dict(rows[0]) if rows else None

    def get_expense_summary(self) -> dict[str, Any]:
        """Aggregate totals and counts by status."""
        result = self._rpc("get_expense_summary")
        if isinstance(result, list):
            return result[0] if result else {}
        return result or {}

    # =========================================================================
    # EXPENSE WRITES
    # =========================================================================

    def create_expense(self, user_id: int, fields: ExpenseFields, created_at: datetime) -> int:
        """Insert a new draft expense and return its id."""
        record = {
            "user_id": user_id,
            "status_id": ExpenseStatus.DRAFT.value,
            "created_at": created_at.isoformat(),
            **fields.to_dict(),
        }
        row = self._insert(EXPENSE_TABLE, record)
        if "expense_id" not in row:
            raise DataAccessError("Insert into expenses returned no expense_id")
        logger.info(f"Created expense {row['expense_id']} for user {user_id}")
        return int(row["expense_id"])

    def set_expense_status(
        self,
        expense_id: int,
        new_status: ExpenseStatus,
        expected_status: ExpenseStatus,
        timestamp: datetime,
        actor_id: Optional[int] = None,
        comments: Optional[str] = None
    ) -> bool:
        """
        Move an expense to a new status.

        The write only applies while the row is still in expected_status.

        Returns:
            True if the row was updated, False if it no longer matched
        """
        data: dict[str, Any] = {"status_id": new_status.value}
        if new_status == ExpenseStatus.PENDING:
            data["submitted_at"] = timestamp.isoformat()
        elif new_status in (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED):
            data["approved_by"] = actor_id
            data["approved_at"] = timestamp.isoformat()
            data["comments"] = comments

        row = self._update(EXPENSE_TABLE, data, {
            "expense_id": expense_id,
            "status_id": expected_status.value,
        })
        return row is not None

    def update_expense_fields(
        self,
        expense_id: int,
        fields: ExpenseFields,
        expected_status: ExpenseStatus = ExpenseStatus.DRAFT
    ) -> bool:
        """Replace the business fields of an expense in one write."""
        row = self._update(EXPENSE_TABLE, fields.to_dict(), {
            "expense_id": expense_id,
            "status_id": expected_status.value,
        })
        return row is not None

    def delete_expense(
        self,
        expense_id: int,
        expected_status: ExpenseStatus = ExpenseStatus.DRAFT
    ) -> bool:
        """Delete an expense while it is still in expected_status."""
        deleted = self._delete(EXPENSE_TABLE, {
            "expense_id": expense_id,
            "status_id": expected_status.value,
        })
        return len(deleted) > 0

    # =========================================================================
    # REFERENCE DATA
    # =========================================================================

    def list_users(self) -> list[User]:
        rows = self._query("users", {"order": "last_name.asc"})
        return [User.from_dict(r) for r in rows]

    def get_user(self, user_id: int) -> Optional[User]:
        rows = self._query("users", {"user_id": f"eq.{user_id}"})
        return User.from_dict(rows[0]) if rows else None

    def list_categories(self) -> list[Category]:
        rows = self._query("expense_categories", {"order": "category_id.asc"})
        return [Category.from_dict(r) for r in rows]

    def list_statuses(self) -> list[StatusInfo]:
        rows = self._query("expense_statuses", {"order": "status_id.asc"})
        return [StatusInfo.from_dict(r) for r in rows]


class DataAccessError(Exception):
    """Raised when a Supabase call fails or returns an error."""

    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
