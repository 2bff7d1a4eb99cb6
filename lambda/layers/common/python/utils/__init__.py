"""
Expense Management - Common Utilities
=====================================

Shared utilities for all Lambda functions.
"""

from .supabase_client import SupabaseClient, DataAccessError
from .secrets import get_secret, require_secrets, clear_secrets_cache
from .json_utils import json_default, to_json

__all__ = [
    "SupabaseClient",
    "DataAccessError",
    "get_secret",
    "require_secrets",
    "clear_secrets_cache",
    "json_default",
    "to_json",
]
