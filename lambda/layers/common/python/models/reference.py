"""
Reference Data Models
=====================

Users, expense categories and statuses.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """An employee. Managers may approve or reject submitted expenses."""

    user_id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    department: Optional[str] = None
    is_manager: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Create User from database row dictionary."""
        return cls(
            user_id=int(data.get("user_id", 0)),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=data.get("email") or "",
            department=data.get("department"),
            is_manager=bool(data.get("is_manager", False)),
        )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "email": self.email,
            "department": self.department,
            "is_manager": self.is_manager,
        }


@dataclass
class Category:
    """Expense category (static reference data)."""

    category_id: int
    category_name: str
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        return cls(
            category_id=int(data.get("category_id", 0)),
            category_name=data.get("category_name") or "",
            description=data.get("description"),
        )

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "description": self.description,
        }


@dataclass
class StatusInfo:
    """Row of the expense_statuses table."""

    status_id: int
    status_name: str

    @classmethod
    def from_dict(cls, data: dict) -> "StatusInfo":
        return cls(
            status_id=int(data.get("status_id", 0)),
            status_name=data.get("status_name") or "",
        )

    def to_dict(self) -> dict:
        return {"status_id": self.status_id, "status_name": self.status_name}
