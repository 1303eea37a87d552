"""Records the app works with, plus the task status cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from taskflow.errors import Forbidden

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_PARTNER = "partner"

PENDING = "Pending"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"

# Fixed cycle: Pending -> In Progress -> Completed -> Pending
STATUS_ORDER = (PENDING, IN_PROGRESS, COMPLETED)

DEFAULT_PROJECT = "General"
DEFAULT_NAME = "User"


def next_status(status):
    """Status that follows ``status`` in the cycle. Unknown values restart at the beginning."""
    try:
        index = STATUS_ORDER.index(status)
    except ValueError:
        return STATUS_ORDER[0]
    return STATUS_ORDER[(index + 1) % len(STATUS_ORDER)]


def utcnow():
    return datetime.now(timezone.utc)


def _parse_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Ignoring unparseable due_date %r", value)
        return None


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    display_name: Optional[str] = None
    email_verified: bool = False


@dataclass(frozen=True)
class Session:
    identity: Identity
    id_token: str
    refresh_token: str
    expires_at: datetime

    @property
    def expired(self):
        return utcnow() >= self.expires_at


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    email: str
    role: str = ROLE_PARTNER
    created_at: Optional[datetime] = None

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            name=row.get("name") or DEFAULT_NAME,
            email=row.get("email") or "",
            role=ROLE_ADMIN if row.get("role") == ROLE_ADMIN else ROLE_PARTNER,
            created_at=row.get("created_at"),
        )

    def to_row(self):
        return {
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    project: str = DEFAULT_PROJECT
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    status: str = PENDING
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        status = row.get("status")
        if status not in STATUS_ORDER:
            status = PENDING
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            project=row.get("project") or DEFAULT_PROJECT,
            assigned_to=row.get("assigned_to") or None,
            due_date=_parse_date(row.get("due_date")),
            status=status,
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
        )


@dataclass
class TaskInput:
    """Form buffer for a new task."""

    title: str = ""
    project: str = DEFAULT_PROJECT
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None


@dataclass
class RemovalReport:
    partner_id: str
    tasks_removed: int = 0
    task_cleanup_error: Optional[str] = None
    profile_error: Optional[str] = None

    @property
    def ok(self):
        return self.task_cleanup_error is None and self.profile_error is None


def require_admin(actor, action):
    """Single role check shared by every admin-only accessor method."""
    if actor is None or not actor.is_admin:
        raise Forbidden(f"Only admins can {action}.")
