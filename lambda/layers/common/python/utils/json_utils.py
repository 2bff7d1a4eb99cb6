"""
JSON Helpers
============

Serialization for values the standard encoder rejects (Decimal, dates).
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def json_default(value: Any) -> Any:
    """Fallback encoder: money as JSON numbers, dates as ISO strings."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    return json.dumps(data, default=json_default)
