"""Role-scoped access to the ``tasks`` collection.

Admins see and manage every task. Partners only ever receive tasks assigned
to them: the ``assigned_to`` filter is part of the Firestore query itself,
never applied after the rows arrive.
"""

from __future__ import annotations

import logging

from taskflow.errors import Forbidden, NotFound, ValidationError
from taskflow.models import DEFAULT_PROJECT, PENDING, Task, next_status, require_admin, utcnow

logger = logging.getLogger(__name__)


class TaskStore:
    def __init__(self, tasks):
        self._tasks = tasks

    def list_tasks(self, profile, identity):
        """Tasks visible to ``profile``, newest first."""
        where = None if profile.is_admin else ("assigned_to", identity.id)
        return [Task.from_row(row) for row in self._tasks.select(where=where, order_by="created_at")]

    def create_task(self, actor, task_input):
        require_admin(actor, "create tasks")
        title = (task_input.title or "").strip()
        if not title:
            raise ValidationError("Task title cannot be empty.")

        row = {
            "title": title,
            "project": (task_input.project or "").strip() or DEFAULT_PROJECT,
            "assigned_to": task_input.assigned_to or None,
            "due_date": task_input.due_date.isoformat() if task_input.due_date else None,
            "status": PENDING,
            "created_by": actor.id,
            "created_at": utcnow(),
        }
        created = self._tasks.insert(row)
        logger.info("Task %s created by %s", created["id"], actor.id)
        return Task.from_row(created)

    def update_task_status(self, actor, task_id):
        """Advance a task to its next status, starting from the stored value."""
        row = self._tasks.get(task_id)
        if row is None:
            raise NotFound("Task no longer exists.")
        if not actor.is_admin and row.get("assigned_to") != actor.id:
            raise Forbidden("You can only update tasks assigned to you.")

        current = Task.from_row(row)
        status = next_status(current.status)
        self._tasks.update(task_id, {"status": status})
        logger.info("Task %s: %s -> %s", task_id, current.status, status)
        return Task.from_row({**row, "status": status})

    def delete_task(self, actor, task_id):
        require_admin(actor, "delete tasks")
        if self._tasks.get(task_id) is None:
            raise NotFound("Task no longer exists.")
        self._tasks.delete(task_id)
        logger.info("Task %s deleted by %s", task_id, actor.id)
