"""
Configuration Secrets
=====================

Lookup of credentials for the expense functions (Supabase, Anthropic).

Values come from one JSON secret in AWS Secrets Manager, read once per
Lambda execution context. An environment variable with the same name as
a key takes precedence, which is how local runs and tests configure the
functions.
"""

import json
import os
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError
from aws_lambda_powertools import Logger

logger = Logger()

SECRET_NAME = os.environ.get("SECRETS_NAME", "expense-management-secrets")

_secrets_client = None


def _get_secrets_client():
    global _secrets_client
    if _secrets_client is None:
        _secrets_client = boto3.client("secretsmanager")
    return _secrets_client


@lru_cache(maxsize=1)
def _secret_document() -> dict[str, Any]:
    """
    Read and parse the expense-management secret.

    Raises:
        ClientError: the secret cannot be read
    """
    try:
        response = _get_secrets_client().get_secret_value(SecretId=SECRET_NAME)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.error(f"Failed to read secret {SECRET_NAME}: {error_code}")
        raise

    document = json.loads(response["SecretString"])
    logger.info(f"Loaded {len(document)} keys from secret {SECRET_NAME}")
    return document


def get_secret(key: str, default: Any = None) -> Any:
    """Environment override, else the secret value, else default."""
    if os.environ.get(key):
        return os.environ[key]
    return _secret_document().get(key, default)


def require_secrets(*keys: str) -> dict[str, Any]:
    """
    Look up several keys that must all be present.

    Raises:
        ValueError: naming every key that is missing or empty
    """
    values = {key: get_secret(key) for key in keys}
    missing = [key for key, value in values.items() if not value]
    if missing:
        raise ValueError(f"Missing configuration: {', '.join(missing)}")
    return values


def clear_secrets_cache():
    """Force the next lookup to read Secrets Manager again."""
    _secret_document.cache_clear()
    logger.info("Secrets cache cleared")
