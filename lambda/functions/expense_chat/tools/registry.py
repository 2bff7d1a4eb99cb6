"""
Function Registry
=================

Catalog of functions the assistant may call. Each entry pairs a pydantic
arguments model, which is both the advertised JSON schema and the
validator for incoming arguments, with its handler.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from .expense_queries import (
    ToolContext,
    UserExpensesArguments,
    NoArguments,
    ExpensesByStatusArguments,
    get_user_expenses,
    get_expense_summary,
    get_pending_expenses,
    get_expenses_by_status,
)


def _clean_schema(node: Any) -> Any:
    """Drop pydantic titles and collapse Optional[X] (anyOf X|null) to X."""
    if isinstance(node, list):
        return [_clean_schema(item) for item in node]
    if not isinstance(node, dict):
        return node

    cleaned = {k: _clean_schema(v) for k, v in node.items() if k != "title"}

    variants = cleaned.get("anyOf")
    if variants:
        non_null = [v for v in variants if v.get("type") != "null"]
        if len(non_null) == 1:
            cleaned.pop("anyOf")
            cleaned = {**non_null[0], **cleaned}

    if cleaned.get("default", ...) is None:
        cleaned.pop("default")
    return cleaned


@dataclass(frozen=True)
class FunctionSpec:
    """One callable function: name, description, arguments model and handler."""

    name: str
    description: str
    arguments_model: type[BaseModel]
    handler: Callable[[Any, ToolContext], dict]

    @property
    def parameters(self) -> dict:
        schema = _clean_schema(self.arguments_model.model_json_schema())
        schema.setdefault("properties", {})
        return schema

    def to_catalog_entry(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def parse_arguments(self, raw: Union[dict, str, None]) -> BaseModel:
        """
        Deserialize and validate the model-supplied arguments.

        Raises:
            ValueError: arguments are not a JSON object
            pydantic.ValidationError: arguments do not match the schema
        """
        if raw is None or raw == "":
            data = {}
        elif isinstance(raw, str):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON arguments for {self.name}: {e.msg}") from e
        else:
            data = raw

        if not isinstance(data, dict):
            raise ValueError(f"Arguments for {self.name} must be a JSON object")
        return self.arguments_model.model_validate(data)

    def invoke(self, raw_arguments: Union[dict, str, None], context: ToolContext) -> dict:
        return self.handler(self.parse_arguments(raw_arguments), context)


class FunctionRegistry:
    """Lookup table from function name to FunctionSpec."""

    def __init__(self, specs: list[FunctionSpec]):
        self._specs = {spec.name: spec for spec in specs}

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def get(self, name: str) -> Optional[FunctionSpec]:
        return self._specs.get(name)

    def catalog(self) -> list[dict]:
        """Function definitions advertised to the model."""
        return [spec.to_catalog_entry() for spec in self._specs.values()]


EXPENSE_FUNCTIONS = FunctionRegistry([
    FunctionSpec(
        name="get_user_expenses",
        description="Get all expenses for a specific user, with count and total amount. "
                    "Without userId, returns the current user's expenses.",
        arguments_model=UserExpensesArguments,
        handler=get_user_expenses,
    ),
    FunctionSpec(
        name="get_expense_summary",
        description="Get a summary of all expenses including totals and counts by status",
        arguments_model=NoArguments,
        handler=get_expense_summary,
    ),
    FunctionSpec(
        name="get_pending_expenses",
        description="Get all expenses that are pending approval",
        arguments_model=NoArguments,
        handler=get_pending_expenses,
    ),
    FunctionSpec(
        name="get_expenses_by_status",
        description="Get expenses filtered by status",
        arguments_model=ExpensesByStatusArguments,
        handler=get_expenses_by_status,
    ),
])
