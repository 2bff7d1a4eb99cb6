"""
Secrets Tests
=============

Secrets Manager lookup, caching and environment overrides.
"""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from utils import secrets


@pytest.fixture
def secrets_client(monkeypatch):
    client = MagicMock()
    client.get_secret_value.return_value = {
        "SecretString": json.dumps({
            "SUPABASE_URL": "https://project.supabase.co",
            "ANTHROPIC_API_KEY": "sk-ant-from-secrets",
        })
    }
    monkeypatch.setattr(secrets, "_secrets_client", client)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    secrets.clear_secrets_cache()
    yield client
    secrets.clear_secrets_cache()


def test_reads_from_secrets_manager(secrets_client):
    assert secrets.get_secret("SUPABASE_URL") == "https://project.supabase.co"
    secrets_client.get_secret_value.assert_called_once_with(SecretId=secrets.SECRET_NAME)


def test_secrets_are_cached(secrets_client):
    secrets.get_secret("SUPABASE_URL")
    secrets.get_secret("ANTHROPIC_API_KEY")

    assert secrets_client.get_secret_value.call_count == 1


def test_environment_overrides_secret(secrets_client, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-local")

    assert secrets.get_secret("ANTHROPIC_API_KEY") == "sk-ant-local"
    secrets_client.get_secret_value.assert_not_called()


def test_missing_key_returns_default(secrets_client):
    assert secrets.get_secret("SUPABASE_KEY") is None
    assert secrets.get_secret("SUPABASE_KEY", "fallback") == "fallback"


def test_client_error_propagates(secrets_client):
    secrets_client.get_secret_value.side_effect = ClientError(
        {"Error": {"Code": "ResourceNotFoundException", "Message": "not found"}},
        "GetSecretValue",
    )

    with pytest.raises(ClientError):
        secrets.get_secret("SUPABASE_URL")


def test_require_secrets_returns_all_values(secrets_client, monkeypatch):
    monkeypatch.setenv("SUPABASE_KEY", "service-key")

    assert secrets.require_secrets("SUPABASE_URL", "SUPABASE_KEY") == {
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_KEY": "service-key",
    }


def test_require_secrets_names_every_missing_key(secrets_client, monkeypatch):
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    monkeypatch.delenv("TEAMS_WEBHOOK_URL", raising=False)

    with pytest.raises(ValueError, match="SUPABASE_KEY, TEAMS_WEBHOOK_URL"):
        secrets.require_secrets("SUPABASE_URL", "SUPABASE_KEY", "TEAMS_WEBHOOK_URL")
