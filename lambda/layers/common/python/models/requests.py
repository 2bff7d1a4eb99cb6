"""
API Request Models
==================

Validated request bodies for the expense and chat endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .expense import ExpenseFields


class ExpenseFieldsRequest(BaseModel):
    """Business fields shared by create and update requests."""

    model_config = ConfigDict(extra="ignore")

    category_id: int = Field(gt=0)
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    expense_date: date
    description: str = Field(min_length=1, max_length=1000)
    receipt: Optional[str] = Field(default=None, max_length=500)

    def to_fields(self) -> ExpenseFields:
        return ExpenseFields(
            category_id=self.category_id,
            amount=self.amount,
            expense_date=self.expense_date,
            description=self.description.strip(),
            receipt=self.receipt,
        )


class CreateExpenseRequest(ExpenseFieldsRequest):
    user_id: int = Field(gt=0)


class UpdateExpenseRequest(ExpenseFieldsRequest):
    pass


class ApprovalRequest(BaseModel):
    """Body of approve / reject calls. The actor is always explicit."""

    model_config = ConfigDict(extra="ignore")

    actor_id: int = Field(gt=0)
    comments: Optional[str] = Field(default=None, max_length=1000)


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=4000)
    user_id: int = Field(gt=0)
