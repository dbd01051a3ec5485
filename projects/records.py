"""Typed task snapshots and the decode step for loosely typed task documents."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone as dt_timezone
from typing import Any, FrozenSet, Mapping, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


class RecordDecodeError(ValueError):
    """Raised when an external task document cannot be turned into a snapshot."""


TASK_STATUSES = ("TODO", "IN_PROGRESS", "REVIEW", "DONE")
TASK_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


@dataclass(frozen=True)
class TaskSnapshot:
    id: str
    project_id: str
    status: str
    priority: str = "MEDIUM"
    due_date: Optional[datetime] = None
    blocked_by: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_done(self) -> bool:
        return self.status == "DONE"

    @classmethod
    def from_model(cls, task) -> "TaskSnapshot":
        return cls(
            id=str(task.pk),
            project_id=str(task.project_id),
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            blocked_by=frozenset(str(blocker.pk) for blocker in task.blocked_by.all()),
        )


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) not in (None, ""):
            return record[key]
    return None


def _decode_due_date(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = parse_datetime(str(value))
            if parsed is None:
                day = parse_date(str(value))
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            parsed = None
        if parsed is None:
            raise RecordDecodeError(f"Unparseable due date: {value!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _decode_blocked_by(value: Any) -> FrozenSet[str]:
    if value in (None, ""):
        return frozenset()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise RecordDecodeError(f"blockedBy is not valid JSON: {value!r}") from exc
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise RecordDecodeError(f"blockedBy must be a list of task ids, got {type(value).__name__}")
    return frozenset(str(item) for item in value)


def decode_task_record(record: Mapping[str, Any]) -> TaskSnapshot:
    """Build a ``TaskSnapshot`` from a document such as ``{"$id": ..., "projectId": ...}``."""
    task_id = _first(record, "$id", "id")
    project_id = _first(record, "projectId", "project_id")
    if task_id is None or project_id is None:
        raise RecordDecodeError("Task records need an id and a project id.")

    status = str(record.get("status") or "TODO").upper()
    if status not in TASK_STATUSES:
        raise RecordDecodeError(f"Unknown task status: {status}")
    priority = str(record.get("priority") or "MEDIUM").upper()
    if priority not in TASK_PRIORITIES:
        raise RecordDecodeError(f"Unknown task priority: {priority}")

    return TaskSnapshot(
        id=str(task_id),
        project_id=str(project_id),
        status=status,
        priority=priority,
        due_date=_decode_due_date(_first(record, "dueDate", "due_date")),
        blocked_by=_decode_blocked_by(_first(record, "blockedBy", "blocked_by")),
    )
