"""Project health scoring from a snapshot of tasks."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Iterable, List, Optional

from django.utils import timezone

from .records import TaskSnapshot

EXCELLENT = "excellent"
GOOD = "good"
WARNING = "warning"
CRITICAL = "critical"

COMPLETION_WEIGHT = 0.4
OVERDUE_WEIGHT = 0.6
BLOCKED_WEIGHT = 0.4
CRITICAL_OVERDUE_WEIGHT = 1.0

LOW_COMPLETION_RATE = 30
LOW_COMPLETION_MIN_TASKS = 5
MAX_ACTIVE_TASKS = 20


@dataclass(frozen=True)
class ProjectHealth:
    score: int
    completion_rate: int
    overdue_rate: int
    active_tasks_count: int
    completed_tasks_count: int
    overdue_tasks_count: int
    blocked_tasks_count: int
    status: str
    recommendations: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def health_band(score: float) -> str:
    if score < 40:
        return CRITICAL
    if score < 70:
        return WARNING
    if score < 90:
        return GOOD
    return EXCELLENT


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _plural(count: int, singular: str) -> str:
    return f"{count} {singular}{'s are' if count > 1 else ' is'}"


def _aware(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if timezone.is_naive(moment):
        return timezone.make_aware(moment, dt_timezone.utc)
    return moment


def calculate_project_health(
    project_id,
    tasks: Iterable[TaskSnapshot],
    now: Optional[datetime] = None,
) -> ProjectHealth:
    """Score a project 0-100 from completion, overdue and blocked task rates.

    ``tasks`` may include other projects' tasks; they are used only to
    resolve ``blocked_by`` references.
    """
    all_tasks = list(tasks)
    project_tasks = [task for task in all_tasks if task.project_id == str(project_id)]
    total = len(project_tasks)

    if total == 0:
        return ProjectHealth(
            score=100,
            completion_rate=0,
            overdue_rate=0,
            active_tasks_count=0,
            completed_tasks_count=0,
            overdue_tasks_count=0,
            blocked_tasks_count=0,
            status=EXCELLENT,
            recommendations=["No tasks yet. Create tasks to track project health."],
        )

    now = _aware(now or timezone.now())
    status_by_id = {task.id: task.status for task in all_tasks}

    completed = [task for task in project_tasks if task.is_done]
    completion_rate = len(completed) / total * 100

    overdue = [task for task in project_tasks if not task.is_done and task.due_date and _aware(task.due_date) < now]
    overdue_rate = len(overdue) / total * 100

    blocked = [
        task
        for task in project_tasks
        if not task.is_done
        and any(blocker in status_by_id and status_by_id[blocker] != "DONE" for blocker in task.blocked_by)
    ]
    blocked_ids = {task.id for task in blocked}
    blocked_rate = len(blocked) / total * 100

    active = [task for task in project_tasks if not task.is_done and task.id not in blocked_ids]

    critical_overdue = [task for task in overdue if task.priority == "CRITICAL"]
    critical_overdue_rate = len(critical_overdue) / total * 100

    score = 100.0
    score -= (100 - completion_rate) * COMPLETION_WEIGHT
    score -= overdue_rate * OVERDUE_WEIGHT
    score -= blocked_rate * BLOCKED_WEIGHT
    score -= critical_overdue_rate * CRITICAL_OVERDUE_WEIGHT
    score = max(0.0, min(100.0, score))
    status = health_band(score)

    recommendations = []
    if overdue:
        recommendations.append(
            f"{_plural(len(overdue), 'task')} overdue. Update deadlines or complete them soon."
        )
    if blocked:
        recommendations.append(
            f"{_plural(len(blocked), 'task')} blocked by dependencies. Resolve blockers to improve flow."
        )
    if completion_rate < LOW_COMPLETION_RATE and total > LOW_COMPLETION_MIN_TASKS:
        recommendations.append(
            "Low completion rate. Consider breaking down large tasks or reviewing priorities."
        )
    if critical_overdue:
        recommendations.append(
            f"{_plural(len(critical_overdue), 'critical task')} overdue! Immediate action required."
        )
    if len(active) > MAX_ACTIVE_TASKS:
        recommendations.append("High number of active tasks. Consider focusing on fewer tasks at once.")

    if not recommendations:
        if status == EXCELLENT:
            recommendations.append("Excellent project health! Keep up the great work.")
        elif status == GOOD:
            recommendations.append("Good project health. Monitor overdue tasks and blockers.")

    return ProjectHealth(
        score=_round_half_up(score),
        completion_rate=_round_half_up(completion_rate),
        overdue_rate=_round_half_up(overdue_rate),
        active_tasks_count=len(active),
        completed_tasks_count=len(completed),
        overdue_tasks_count=len(overdue),
        blocked_tasks_count=len(blocked),
        status=status,
        recommendations=recommendations,
    )
