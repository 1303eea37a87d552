"""Dashboard aggregates derived from the task list currently on screen."""

from __future__ import annotations

import math

from taskflow.models import COMPLETED, IN_PROGRESS, PENDING, STATUS_ORDER


def _percent(done, total):
    # half-up, so 1 of 8 shows as 13%
    return math.floor(done / total * 100 + 0.5) if total > 0 else 0


def compute_stats(tasks, partners=(), include_partner_load=False):
    """
    Counts and chart series for the dashboard.

    Pure: reads ``tasks``/``partners`` and returns fresh dicts and lists, so the
    same input always produces the same output. ``partner_load`` is only filled
    in for the admin view (``include_partner_load``).
    """
    tasks = list(tasks)
    counts = {status: 0 for status in STATUS_ORDER}
    projects = {}
    for task in tasks:
        if task.status in counts:
            counts[task.status] += 1
        agg = projects.setdefault(task.project, {"done": 0, "total": 0})
        agg["total"] += 1
        if task.status == COMPLETED:
            agg["done"] += 1

    project_progress = []
    for project, agg in projects.items():
        done, total = agg["done"], agg["total"]
        project_progress.append({
            "project": project,
            "done": done,
            "total": total,
            "percent_done": _percent(done, total),
            "label": f"{done}/{total} Done",
        })

    partner_load = []
    if include_partner_load:
        for partner in partners:
            partner_load.append({
                "partner_id": partner.id,
                "name": partner.name,
                "tasks": sum(1 for t in tasks if t.assigned_to == partner.id),
            })

    return {
        "total": len(tasks),
        "completed": counts[COMPLETED],
        "in_progress": counts[IN_PROGRESS],
        "pending": counts[PENDING],
        "status_data": [{"label": status, "count": counts[status]} for status in STATUS_ORDER],
        "project_progress": project_progress,
        "partner_load": partner_load,
    }
