# tests/test_models.py

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from taskflow.errors import Forbidden
from taskflow.models import COMPLETED, IN_PROGRESS, PENDING, Profile, Task, next_status, require_admin


@pytest.mark.parametrize(
    "current,expected",
    [(PENDING, IN_PROGRESS), (IN_PROGRESS, COMPLETED), (COMPLETED, PENDING)],
)
def test_next_status(current, expected) -> None:
    assert next_status(current) == expected


@pytest.mark.parametrize("status", [PENDING, IN_PROGRESS, COMPLETED])
def test_three_steps_return_to_start(status) -> None:
    assert next_status(next_status(next_status(status))) == status


def test_unknown_status_restarts_cycle() -> None:
    assert next_status("Blocked") == PENDING


def test_task_from_row_normalises_stored_values() -> None:
    task = Task.from_row({
        "id": "t1",
        "title": "Thing",
        "project": "",
        "assigned_to": "",
        "due_date": "2024-05-06",
        "status": "Blocked",
    })

    assert task.project == "General"
    assert task.assigned_to is None
    assert task.due_date == date(2024, 5, 6)
    assert task.status == PENDING


def test_task_from_row_accepts_datetime_due_date() -> None:
    task = Task.from_row({"id": "t1", "title": "x", "due_date": datetime(2024, 5, 6, 9, tzinfo=timezone.utc)})

    assert task.due_date == date(2024, 5, 6)


def test_task_from_row_ignores_garbage_due_date() -> None:
    assert Task.from_row({"id": "t1", "title": "x", "due_date": "soon"}).due_date is None


def test_profile_role_defaults_to_partner() -> None:
    profile = Profile.from_row({"id": "u1", "email": "u@example.com", "role": "superuser"})

    assert profile.role == "partner"
    assert profile.name == "User"
    assert not profile.is_admin


def test_require_admin() -> None:
    require_admin(Profile(id="a", name="A", email="a@example.com", role="admin"), "do it")

    with pytest.raises(Forbidden):
        require_admin(Profile(id="p", name="P", email="p@example.com"), "do it")
    with pytest.raises(Forbidden):
        require_admin(None, "do it")
