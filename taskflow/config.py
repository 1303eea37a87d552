"""Backend settings, read from Streamlit secrets first and the environment second.

Secrets (``.streamlit/secrets.toml``)::

    firebase_api_key = "AIza..."

    [firebase_key]
    type = "service_account"
    project_id = "..."
    ...

Environment equivalents use the ``TASKFLOW_`` prefix, with the service account
given as a path to its JSON file (``TASKFLOW_FIREBASE_KEY_FILE``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from taskflow.errors import ConfigurationError

ENV_PREFIX = "TASKFLOW"

DEFAULT_AUTH_ENDPOINT = "https://identitytoolkit.googleapis.com/v1"
DEFAULT_TOKEN_ENDPOINT = "https://securetoken.googleapis.com/v1"


def _k(suffix):
    return f"{ENV_PREFIX}_{suffix}"


def _lookup(secrets, environ, secret_key, env_suffix):
    """Secrets win over the environment; blank values count as missing."""
    value = secrets.get(secret_key)
    if value is None or (isinstance(value, str) and not value.strip()):
        value = environ.get(_k(env_suffix))
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _as_bool(value, default):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_float(value, default):
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    api_key: str
    service_account: Optional[dict] = None
    service_account_file: Optional[str] = None
    auth_endpoint: str = DEFAULT_AUTH_ENDPOINT
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT
    require_email_verification: bool = True
    http_timeout: float = 15.0
    log_level: str = "INFO"


def load_settings(secrets: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings or raise ConfigurationError naming what is missing."""
    secrets = secrets or {}
    environ = os.environ if environ is None else environ

    service_account = secrets.get("firebase_key")
    if service_account is not None:
        # st.secrets hands back an AttrDict; firebase_admin wants a plain dict
        service_account = dict(service_account)
    service_account_file = None if service_account else _lookup({}, environ, "", "FIREBASE_KEY_FILE")
    api_key = _lookup(secrets, environ, "firebase_api_key", "FIREBASE_API_KEY")

    missing = []
    if not service_account and not service_account_file:
        missing.append(f"firebase_key (or {_k('FIREBASE_KEY_FILE')})")
    if not api_key:
        missing.append(f"firebase_api_key (or {_k('FIREBASE_API_KEY')})")
    if missing:
        raise ConfigurationError(
            "Firebase credentials missing: " + ", ".join(missing) + ". "
            "Add them to .streamlit/secrets.toml or the environment."
        )

    if service_account_file and not os.path.isfile(service_account_file):
        raise ConfigurationError(f"Service account file not found: {service_account_file}")

    return Settings(
        api_key=api_key,
        service_account=service_account,
        service_account_file=service_account_file,
        auth_endpoint=(_lookup(secrets, environ, "auth_endpoint", "AUTH_ENDPOINT") or DEFAULT_AUTH_ENDPOINT).rstrip("/"),
        token_endpoint=(_lookup(secrets, environ, "token_endpoint", "TOKEN_ENDPOINT") or DEFAULT_TOKEN_ENDPOINT).rstrip("/"),
        require_email_verification=_as_bool(
            _lookup(secrets, environ, "require_email_verification", "REQUIRE_EMAIL_VERIFICATION"), True
        ),
        http_timeout=_as_float(_lookup(secrets, environ, "http_timeout", "HTTP_TIMEOUT"), 15.0),
        log_level=(_lookup(secrets, environ, "log_level", "LOG_LEVEL") or "INFO").upper(),
    )
