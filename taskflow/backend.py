"""Process-wide Firebase handle.

The Firestore client is built once, on first use, and shared by every
accessor in every Streamlit session. It is never rebuilt while the process
lives.
"""

from __future__ import annotations

import logging
import threading

import firebase_admin
from firebase_admin import credentials, firestore

from taskflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_db = None


def _certificate(settings):
    if settings.service_account:
        return credentials.Certificate(dict(settings.service_account))
    return credentials.Certificate(settings.service_account_file)


def initialize_firebase(settings):
    """Initializes the Firebase Admin SDK if not already done and returns the Firestore client."""
    global _db
    if _db is not None:
        return _db
    with _lock:
        if _db is None:
            # Streamlit reruns may import us again; the SDK keeps its own app registry
            if not firebase_admin._apps:
                try:
                    firebase_admin.initialize_app(_certificate(settings))
                except (ValueError, OSError) as exc:
                    raise ConfigurationError(f"Failed to initialize Firebase: {exc}") from exc
                logger.info("Firebase app initialized")
            _db = firestore.client()
    return _db
