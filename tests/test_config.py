# tests/test_config.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskflow.config import DEFAULT_AUTH_ENDPOINT, load_settings
from taskflow.errors import ConfigurationError

SERVICE_ACCOUNT = {"type": "service_account", "project_id": "demo"}


def test_secrets_are_enough() -> None:
    settings = load_settings({"firebase_key": SERVICE_ACCOUNT, "firebase_api_key": "key-1"}, environ={})

    assert settings.api_key == "key-1"
    assert settings.service_account == SERVICE_ACCOUNT
    assert settings.auth_endpoint == DEFAULT_AUTH_ENDPOINT
    assert settings.require_email_verification is True
    assert settings.http_timeout == 15.0


def test_environment_fallback(tmp_path: Path) -> None:
    key_file = tmp_path / "sa.json"
    key_file.write_text(json.dumps(SERVICE_ACCOUNT))

    settings = load_settings(
        {},
        environ={
            "TASKFLOW_FIREBASE_KEY_FILE": str(key_file),
            "TASKFLOW_FIREBASE_API_KEY": "env-key",
            "TASKFLOW_AUTH_ENDPOINT": "http://localhost:9099/identitytoolkit.googleapis.com/v1/",
            "TASKFLOW_REQUIRE_EMAIL_VERIFICATION": "no",
            "TASKFLOW_HTTP_TIMEOUT": "3",
            "TASKFLOW_LOG_LEVEL": "debug",
        },
    )

    assert settings.service_account is None
    assert settings.service_account_file == str(key_file)
    assert settings.api_key == "env-key"
    assert settings.auth_endpoint == "http://localhost:9099/identitytoolkit.googleapis.com/v1"
    assert settings.require_email_verification is False
    assert settings.http_timeout == 3.0
    assert settings.log_level == "DEBUG"


def test_secrets_win_over_environment() -> None:
    settings = load_settings(
        {"firebase_key": SERVICE_ACCOUNT, "firebase_api_key": "from-secrets"},
        environ={"TASKFLOW_FIREBASE_API_KEY": "from-env"},
    )

    assert settings.api_key == "from-secrets"


def test_missing_everything_names_both_settings() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings({}, environ={})

    message = str(excinfo.value)
    assert "firebase_key" in message
    assert "firebase_api_key" in message


def test_blank_api_key_counts_as_missing() -> None:
    with pytest.raises(ConfigurationError, match="firebase_api_key"):
        load_settings({"firebase_key": SERVICE_ACCOUNT, "firebase_api_key": "  "}, environ={})


def test_key_file_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(
            {},
            environ={
                "TASKFLOW_FIREBASE_KEY_FILE": str(tmp_path / "missing.json"),
                "TASKFLOW_FIREBASE_API_KEY": "k",
            },
        )


def test_bad_timeout_falls_back_to_default() -> None:
    settings = load_settings(
        {"firebase_key": SERVICE_ACCOUNT, "firebase_api_key": "k", "http_timeout": "soon"},
        environ={},
    )

    assert settings.http_timeout == 15.0
