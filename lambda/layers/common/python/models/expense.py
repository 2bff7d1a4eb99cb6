"""
Expense Data Model
==================

Represents an expense reimbursement record and its approval status.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Any


class ExpenseStatus(int, Enum):
    """Expense approval status. Values match the expense_statuses table ids."""
    DRAFT = 1
    PENDING = 2
    APPROVED = 3
    REJECTED = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def is_terminal(self) -> bool:
        return self in (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED)


# Legal status edges. Nothing leaves a terminal status and nothing returns to Draft.
ALLOWED_TRANSITIONS: dict[ExpenseStatus, frozenset[ExpenseStatus]] = {
    ExpenseStatus.DRAFT: frozenset({ExpenseStatus.PENDING}),
    ExpenseStatus.PENDING: frozenset({ExpenseStatus.APPROVED, ExpenseStatus.REJECTED}),
    ExpenseStatus.APPROVED: frozenset(),
    ExpenseStatus.REJECTED: frozenset(),
}


@dataclass(frozen=True)
class ExpenseFields:
    """Business fields of an expense. Frozen once the expense leaves Draft."""
    category_id: int
    amount: Decimal
    expense_date: date
    description: str
    receipt: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for database writes."""
        return {
            "category_id": self.category_id,
            "amount": str(self.amount),
            "expense_date": self.expense_date.isoformat(),
            "description": self.description,
            "receipt": self.receipt,
        }


@dataclass
class Expense:
    """
    Represents an expense claim.

    Maps to the expense_details database view (expenses joined with
    category, status and user names).
    """

    # Identity
    expense_id: int
    user_id: int

    # Business fields
    category_id: int = 0
    amount: Decimal = Decimal("0")
    expense_date: Optional[date] = None
    description: str = ""
    receipt: Optional[str] = None

    # Workflow
    status: ExpenseStatus = ExpenseStatus.DRAFT
    approved_by: Optional[int] = None
    comments: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    # Display names from joined tables
    category_name: Optional[str] = None
    user_name: Optional[str] = None
    approver_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        """Create Expense from database row dictionary."""
        return cls(
            expense_id=int(data.get("expense_id", 0)),
            user_id=int(data.get("user_id", 0)),
            category_id=int(data.get("category_id") or 0),
            amount=cls._parse_decimal(data.get("amount")),
            expense_date=cls._parse_date(data.get("expense_date")),
            description=data.get("description") or "",
            receipt=data.get("receipt"),
            status=ExpenseStatus(int(data.get("status_id", ExpenseStatus.DRAFT))),
            approved_by=data.get("approved_by"),
            comments=data.get("comments"),
            created_at=cls._parse_datetime(data.get("created_at")),
            submitted_at=cls._parse_datetime(data.get("submitted_at")),
            approved_at=cls._parse_datetime(data.get("approved_at")),
            category_name=data.get("category_name"),
            user_name=data.get("user_name"),
            approver_name=data.get("approver_name"),
        )

    @staticmethod
    def _parse_decimal(value: Any) -> Decimal:
        """Parse a monetary amount without going through float."""
        if value is None:
            return Decimal("0")
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")

    @staticmethod
    def _parse_date(value: Any) -> Optional[date]:
        """Parse date from various formats."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return datetime.strptime(value[:10], "%Y-%m-%d").date()
            except ValueError:
                return None
        return None

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        """Parse datetime from various formats."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                # Handle ISO format with or without timezone
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        return None

    @property
    def status_name(self) -> str:
        return self.status.label

    @property
    def is_editable(self) -> bool:
        """Business fields can only change while the expense is a draft."""
        return self.status == ExpenseStatus.DRAFT

    @property
    def business_fields(self) -> ExpenseFields:
        return ExpenseFields(
            category_id=self.category_id,
            amount=self.amount,
            expense_date=self.expense_date,
            description=self.description,
            receipt=self.receipt,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary for API responses."""
        return {
            "expense_id": self.expense_id,
            "user_id": self.user_id,
            "category_id": self.category_id,
            "amount": self.amount,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "description": self.description,
            "receipt": self.receipt,
            "status_id": self.status.value,
            "status_name": self.status_name,
            "approved_by": self.approved_by,
            "comments": self.comments,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "category_name": self.category_name,
            "user_name": self.user_name,
            "approver_name": self.approver_name,
        }
