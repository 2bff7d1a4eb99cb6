"""
Expense Query Function Tests
============================

Function registry catalog, argument handling and result shaping.
"""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models import ExpenseStatus
from utils.json_utils import to_json
from tools import EXPENSE_FUNCTIONS, ToolContext

from conftest import FakeRepository, make_expense


class TestCatalog:
    """What the model is told about the functions."""

    def test_catalog_lists_the_four_functions(self):
        names = [f["name"] for f in EXPENSE_FUNCTIONS.catalog()]
        assert names == [
            "get_user_expenses",
            "get_expense_summary",
            "get_pending_expenses",
            "get_expenses_by_status",
        ]

    def test_user_id_is_optional_integer(self):
        schema = EXPENSE_FUNCTIONS.get("get_user_expenses").parameters

        assert schema["type"] == "object"
        assert schema["properties"]["userId"]["type"] == "integer"
        assert "description" in schema["properties"]["userId"]
        assert "userId" not in schema.get("required", [])
        assert "title" not in schema

    def test_status_id_is_bounded(self):
        prop = EXPENSE_FUNCTIONS.get("get_expenses_by_status").parameters["properties"]["statusId"]

        assert prop["type"] == "integer"
        assert prop["minimum"] == 1
        assert prop["maximum"] == 4

    def test_no_argument_functions_have_empty_properties(self):
        schema = EXPENSE_FUNCTIONS.get("get_pending_expenses").parameters
        assert schema == {"properties": {}, "type": "object"}

    def test_unknown_name_is_not_registered(self):
        assert "drop_all_expenses" not in EXPENSE_FUNCTIONS
        assert EXPENSE_FUNCTIONS.get("drop_all_expenses") is None


class TestUserExpenses:

    @pytest.fixture
    def repository(self):
        return FakeRepository(expenses=[
            make_expense(1, user_id=1, amount="250.00", status=ExpenseStatus.PENDING),
            make_expense(2, user_id=1, amount="125.50", status=ExpenseStatus.PENDING, category_name="Travel"),
            make_expense(3, user_id=2, amount="10.00"),
        ])

    def test_count_and_total_for_user(self, repository):
        """Two pending expenses of 250 and 125.50 total 375.50."""
        spec = EXPENSE_FUNCTIONS.get("get_user_expenses")
        result = spec.invoke({"userId": 1}, ToolContext(repository, user_id=99))

        assert result["count"] == 2
        assert result["total"] == Decimal("375.50")
        assert json.loads(to_json(result))["total"] == 375.5
        assert repository.calls == ["list_expenses_by_user"]

    def test_defaults_to_acting_user(self, repository):
        spec = EXPENSE_FUNCTIONS.get("get_user_expenses")
        result = spec.invoke({}, ToolContext(repository, user_id=2))

        assert result["count"] == 1
        assert result["expenses"][0]["id"] == 3

    def test_projection_fields(self, repository):
        spec = EXPENSE_FUNCTIONS.get("get_user_expenses")
        payload = json.loads(to_json(spec.invoke('{"userId": 1}', ToolContext(repository, 1))))

        assert payload["expenses"][1] == {
            "id": 2,
            "amount": 125.5,
            "date": "2025-05-28",
            "description": "Expense 2",
            "category": "Travel",
            "status": "Pending",
        }


class TestStatusQueries:

    def test_pending_expenses(self, repository):
        result = EXPENSE_FUNCTIONS.get("get_pending_expenses").invoke(None, ToolContext(repository, 1))

        assert result["count"] == 2
        assert result["total"] == Decimal("425.50")
        assert {e["id"] for e in result["expenses"]} == {2, 5}
        assert set(result["expenses"][0]) == {"id", "amount", "user", "description", "category"}
        assert repository.calls == ["list_pending_expenses"]

    def test_status_defaults_to_pending(self, repository):
        result = EXPENSE_FUNCTIONS.get("get_expenses_by_status").invoke({}, ToolContext(repository, 1))

        assert result["status"] == "Pending"
        assert result["count"] == 2

    def test_status_filter(self, repository):
        result = EXPENSE_FUNCTIONS.get("get_expenses_by_status").invoke({"statusId": 3}, ToolContext(repository, 1))

        assert result["status"] == "Approved"
        assert [e["id"] for e in result["expenses"]] == [3]
        assert repository.calls == ["list_expenses_by_status"]

    def test_out_of_range_status_is_rejected(self, repository):
        with pytest.raises(ValidationError):
            EXPENSE_FUNCTIONS.get("get_expenses_by_status").invoke({"statusId": 9}, ToolContext(repository, 1))
        assert repository.calls == []

    def test_summary_passthrough(self, repository):
        repository.summary = {"total_expenses": 5, "total_amount": Decimal("797.60"), "pending_count": 2}
        result = EXPENSE_FUNCTIONS.get("get_expense_summary").invoke({}, ToolContext(repository, 1))

        assert result["pending_count"] == 2
        assert json.loads(to_json(result))["total_amount"] == 797.6


class TestArgumentParsing:

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError, match="Invalid JSON"):
            EXPENSE_FUNCTIONS.get("get_user_expenses").parse_arguments("{userId: 1")

    def test_non_object_arguments(self):
        with pytest.raises(ValueError, match="JSON object"):
            EXPENSE_FUNCTIONS.get("get_user_expenses").parse_arguments("[1, 2]")

    def test_numeric_strings_are_coerced(self):
        args = EXPENSE_FUNCTIONS.get("get_user_expenses").parse_arguments({"userId": "7"})
        assert args.userId == 7

    def test_extra_arguments_ignored(self):
        args = EXPENSE_FUNCTIONS.get("get_expenses_by_status").parse_arguments({"statusId": 4, "limit": 3})
        assert args.statusId == 4
