"""Thin query layer over a Firestore collection.

Only the operations the app needs: equality filter, newest-first ordering,
get/insert/update/delete by id and delete-by-filter. Backend failures are
translated into the app's own error types here so accessors never see
google-cloud exceptions.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from taskflow.errors import NotFound, StoreError

logger = logging.getLogger(__name__)

PROFILES = "profiles"
TASKS = "tasks"

_BACKEND_ERRORS = (google_exceptions.GoogleAPIError, google_auth_exceptions.GoogleAuthError)

# Firestore deletes at most 500 writes per batch
_BATCH_LIMIT = 500


@contextmanager
def _translate_errors(what):
    try:
        yield
    except google_exceptions.NotFound as exc:
        raise NotFound(f"{what}: record not found") from exc
    except _BACKEND_ERRORS as exc:
        logger.warning("Firestore call failed (%s): %s", what, exc)
        raise StoreError(f"{what} failed: {exc}") from exc


def _row(snapshot):
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class Collection:
    """One Firestore collection, addressed by document id."""

    def __init__(self, db, name):
        self.name = name
        self._db = db
        self._ref = db.collection(name)

    def select(self, where=None, order_by="created_at"):
        """All rows, newest first. ``where`` is a ``(field, value)`` equality filter."""
        query = self._ref
        if where is not None:
            field, value = where
            query = query.where(filter=FieldFilter(field, "==", value))
        query = query.order_by(order_by, direction=firestore.Query.DESCENDING)
        with _translate_errors(f"list {self.name}"):
            return [_row(doc) for doc in query.stream()]

    def get(self, doc_id):
        with _translate_errors(f"read {self.name}/{doc_id}"):
            snapshot = self._ref.document(doc_id).get()
        if not snapshot.exists:
            return None
        return _row(snapshot)

    def insert(self, data, doc_id=None):
        """Create a document; with ``doc_id`` the write fails if it already exists."""
        ref = self._ref.document(doc_id) if doc_id else self._ref.document()
        with _translate_errors(f"insert into {self.name}"):
            ref.create(data)
        return {**data, "id": ref.id}

    def update(self, doc_id, changes):
        with _translate_errors(f"update {self.name}/{doc_id}"):
            self._ref.document(doc_id).update(changes)

    def delete(self, doc_id):
        with _translate_errors(f"delete {self.name}/{doc_id}"):
            self._ref.document(doc_id).delete()

    def delete_where(self, field, value):
        """Delete every document matching ``field == value``. Returns how many went."""
        query = self._ref.where(filter=FieldFilter(field, "==", value))
        deleted = 0
        with _translate_errors(f"delete from {self.name} where {field}"):
            batch = self._db.batch()
            pending = 0
            for doc in query.stream():
                batch.delete(doc.reference)
                pending += 1
                if pending == _BATCH_LIMIT:
                    batch.commit()
                    deleted += pending
                    batch = self._db.batch()
                    pending = 0
            if pending:
                batch.commit()
                deleted += pending
        return deleted
