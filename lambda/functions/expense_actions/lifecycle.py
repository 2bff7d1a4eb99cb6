"""
Expense Lifecycle
=================

Status transitions for expense claims:

    Draft -> Pending -> Approved | Rejected

Approved and Rejected are terminal. Business fields (amount, category,
date, description, receipt) can only change, and the expense can only be
deleted, while it is a Draft.

The module-level functions are pure: they take a snapshot and return a
TransitionResult holding the new snapshot or a typed failure. The
ExpenseLifecycle service loads snapshots from the repository, applies a
transition and persists it with one conditional write.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from aws_lambda_powertools import Logger

from models import (
    ALLOWED_TRANSITIONS,
    Expense,
    ExpenseFields,
    ExpenseStatus,
    TransitionError,
    TransitionResult,
    User,
)

logger = Logger()


class ExpenseRepository(Protocol):
    """Repository operations the lifecycle depends on."""

    def get_expense(self, expense_id: int) -> Optional[Expense]: ...

    def get_user(self, user_id: int) -> Optional[User]: ...

    def create_expense(self, user_id: int, fields: ExpenseFields, created_at: datetime) -> int: ...

    def set_expense_status(
        self,
        expense_id: int,
        new_status: ExpenseStatus,
        expected_status: ExpenseStatus,
        timestamp: datetime,
        actor_id: Optional[int] = None,
        comments: Optional[str] = None
    ) -> bool: ...

    def update_expense_fields(
        self,
        expense_id: int,
        fields: ExpenseFields,
        expected_status: ExpenseStatus = ExpenseStatus.DRAFT
    ) -> bool: ...

    def delete_expense(
        self,
        expense_id: int,
        expected_status: ExpenseStatus = ExpenseStatus.DRAFT
    ) -> bool: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _invalid(expense: Expense, action: str) -> TransitionResult:
    return TransitionResult.fail(
        TransitionError.INVALID_TRANSITION,
        f"Cannot {action} expense {expense.expense_id} in status {expense.status_name}",
        expense,
    )


def _can_move(expense: Expense, target: ExpenseStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[expense.status]


# =============================================================================
# PURE TRANSITIONS
# =============================================================================

def submit(expense: Expense, now: datetime) -> TransitionResult:
    """Draft -> Pending, stamping the submission time."""
    if not _can_move(expense, ExpenseStatus.PENDING):
        return _invalid(expense, "submit")

    return TransitionResult.ok(
        replace(expense, status=ExpenseStatus.PENDING, submitted_at=now),
        message="Expense submitted successfully",
    )


def _review(
    expense: Expense,
    actor: User,
    comments: Optional[str],
    now: datetime,
    target: ExpenseStatus,
    allow_self_approval: bool
) -> TransitionResult:
    action = "approve" if target == ExpenseStatus.APPROVED else "reject"

    if not actor.is_manager:
        return TransitionResult.fail(
            TransitionError.UNAUTHORIZED,
            f"User {actor.user_id} is not allowed to {action} expenses",
            expense,
        )

    if actor.user_id == expense.user_id and not allow_self_approval:
        return TransitionResult.fail(
            TransitionError.UNAUTHORIZED,
            f"User {actor.user_id} cannot {action} their own expense",
            expense,
        )

    if not _can_move(expense, target):
        return _invalid(expense, action)

    reviewed = replace(
        expense,
        status=target,
        approved_by=actor.user_id,
        approved_at=now,
        comments=comments,
        approver_name=actor.display_name or expense.approver_name,
    )
    return TransitionResult.ok(reviewed, message=f"Expense {target.label.lower()} successfully")


def approve(
    expense: Expense,
    actor: User,
    comments: Optional[str],
    now: datetime,
    allow_self_approval: bool = False
) -> TransitionResult:
    """Pending -> Approved. The actor must hold the manager capability."""
    return _review(expense, actor, comments, now, ExpenseStatus.APPROVED, allow_self_approval)


def reject(
    expense: Expense,
    actor: User,
    comments: Optional[str],
    now: datetime,
    allow_self_approval: bool = False
) -> TransitionResult:
    """Pending -> Rejected. The actor must hold the manager capability."""
    return _review(expense, actor, comments, now, ExpenseStatus.REJECTED, allow_self_approval)


def update(expense: Expense, fields: ExpenseFields) -> TransitionResult:
    """Replace all business fields of a draft."""
    if not expense.is_editable:
        return _invalid(expense, "update")

    updated = replace(
        expense,
        category_id=fields.category_id,
        amount=fields.amount,
        expense_date=fields.expense_date,
        description=fields.description,
        receipt=fields.receipt,
    )
    if updated.category_id != expense.category_id:
        updated.category_name = None
    return TransitionResult.ok(updated, message="Expense updated successfully")


def delete(expense: Expense) -> TransitionResult:
    """Drafts may be deleted; anything else is refused."""
    if not expense.is_editable:
        return _invalid(expense, "delete")
    return TransitionResult.ok(expense, message="Expense deleted successfully")


# =============================================================================
# PERSISTING SERVICE
# =============================================================================

class ExpenseLifecycle:
    """
    Applies lifecycle transitions against the repository.

    Every persisted change is conditioned on the status the decision was
    made from. If another request moved the expense in between, the write
    matches nothing and the caller gets INVALID_TRANSITION.
    """

    def __init__(
        self,
        repository: ExpenseRepository,
        clock: Optional[Callable[[], datetime]] = None,
        allow_self_approval: bool = False
    ):
        self.repository = repository
        self.clock = clock or _utcnow
        self.allow_self_approval = allow_self_approval

    def _load(self, expense_id: int) -> tuple[Optional[Expense], Optional[TransitionResult]]:
        expense = self.repository.get_expense(expense_id)
        if expense is None:
            return None, TransitionResult.fail(
                TransitionError.NOT_FOUND, f"Expense {expense_id} not found"
            )
        return expense, None

    def _conflict(self, expense: Expense, action: str) -> TransitionResult:
        logger.warning(f"Expense {expense.expense_id} changed status during {action}")
        return TransitionResult.fail(
            TransitionError.INVALID_TRANSITION,
            f"Expense {expense.expense_id} is no longer {expense.status_name}",
            expense,
        )

    def create(self, user_id: int, fields: ExpenseFields) -> TransitionResult:
        """Create a new draft owned by user_id."""
        owner = self.repository.get_user(user_id)
        if owner is None:
            return TransitionResult.fail(TransitionError.NOT_FOUND, f"User {user_id} not found")

        now = self.clock()
        expense_id = self.repository.create_expense(user_id, fields, now)
        draft = Expense(
            expense_id=expense_id,
            user_id=user_id,
            category_id=fields.category_id,
            amount=fields.amount,
            expense_date=fields.expense_date,
            description=fields.description,
            receipt=fields.receipt,
            status=ExpenseStatus.DRAFT,
            created_at=now,
            user_name=owner.display_name,
        )
        logger.info(f"Expense {expense_id} created as draft for user {user_id}")
        return TransitionResult.ok(draft, message="Expense created successfully")

    def submit(self, expense_id: int) -> TransitionResult:
        expense, missing = self._load(expense_id)
        if missing:
            return missing

        result = submit(expense, self.clock())
        if not result.success:
            logger.info(f"Submit refused for expense {expense_id}: {result.message}")
            return result

        if not self.repository.set_expense_status(
            expense_id,
            ExpenseStatus.PENDING,
            expected_status=expense.status,
            timestamp=result.expense.submitted_at,
        ):
            return self._conflict(expense, "submit")

        logger.info(f"Expense {expense_id} submitted")
        return result

    def approve(self, expense_id: int, actor_id: int, comments: Optional[str] = None) -> TransitionResult:
        return self._review(expense_id, actor_id, comments, ExpenseStatus.APPROVED)

    def reject(self, expense_id: int, actor_id: int, comments: Optional[str] = None) -> TransitionResult:
        return self._review(expense_id, actor_id, comments, ExpenseStatus.REJECTED)

    def _review(
        self,
        expense_id: int,
        actor_id: int,
        comments: Optional[str],
        target: ExpenseStatus
    ) -> TransitionResult:
        expense, missing = self._load(expense_id)
        if missing:
            return missing

        actor = self.repository.get_user(actor_id)
        if actor is None:
            return TransitionResult.fail(
                TransitionError.NOT_FOUND, f"User {actor_id} not found", expense
            )

        decide = approve if target == ExpenseStatus.APPROVED else reject
        result = decide(expense, actor, comments, self.clock(), self.allow_self_approval)
        if not result.success:
            logger.info(f"{target.label} refused for expense {expense_id} by user {actor_id}: {result.message}")
            return result

        if not self.repository.set_expense_status(
            expense_id,
            target,
            expected_status=expense.status,
            timestamp=result.expense.approved_at,
            actor_id=actor_id,
            comments=comments,
        ):
            return self._conflict(expense, target.label.lower())

        logger.info(f"Expense {expense_id} {target.label.lower()} by user {actor_id}")
        return result

    def update(self, expense_id: int, fields: ExpenseFields) -> TransitionResult:
        expense, missing = self._load(expense_id)
        if missing:
            return missing

        result = update(expense, fields)
        if not result.success:
            return result

        if not self.repository.update_expense_fields(expense_id, fields, expected_status=expense.status):
            return self._conflict(expense, "update")

        logger.info(f"Expense {expense_id} updated")
        return result

    def delete(self, expense_id: int) -> TransitionResult:
        expense, missing = self._load(expense_id)
        if missing:
            return missing

        result = delete(expense)
        if not result.success:
            return result

        if not self.repository.delete_expense(expense_id, expected_status=expense.status):
            return self._conflict(expense, "delete")

        logger.info(f"Expense {expense_id} deleted")
        return result
