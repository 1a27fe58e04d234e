"""Boundary translation between caller-facing and stored task field names.

Callers speak camelCase (``sourceId``, ``dueDate``); the ``project_tasks``
table speaks snake_case. Every external field has exactly one internal
counterpart in ``TASK_FIELD_MAP``, or is listed in ``RESPONSE_ONLY_FIELDS``.
Nothing here touches the database.
"""

from datetime import timezone
from typing import Any

import structlog

from tcof.models.project import CATALOG_ORIGINS, DEFAULT_ORIGIN, ProjectTask
from tcof.schemas import TaskView

logger = structlog.get_logger()

# external name -> internal column
TASK_FIELD_MAP: dict[str, str] = {
    "id": "id",
    "projectId": "project_id",
    "text": "text",
    "stage": "stage",
    "origin": "origin",
    "sourceId": "source_id",
    "completed": "completed",
    "notes": "notes",
    "priority": "priority",
    "dueDate": "due_date",
    "owner": "owner",
    "status": "status",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "taskType": "task_type",
    "factorId": "factor_id",
    "sortOrder": "sort_order",
    "assignedTo": "assigned_to",
    "taskNotes": "task_notes",
}

INTERNAL_TO_EXTERNAL: dict[str, str] = {v: k for k, v in TASK_FIELD_MAP.items()}

# Emitted in responses only; dropped when they arrive in a payload
RESPONSE_ONLY_FIELDS = frozenset({"source"})

# Identity and bookkeeping columns a payload cannot write
READ_ONLY_FIELDS = frozenset({"id", "project_id", "created_at", "updated_at"})

# Nullable text columns where "" means "no value"
OPTIONAL_TEXT_FIELDS = (
    "notes",
    "priority",
    "due_date",
    "owner",
    "task_type",
    "factor_id",
    "assigned_to",
    "task_notes",
)


def to_internal(payload: dict[str, Any]) -> dict[str, Any]:
    """Rename a sparse external payload to column names.

    Read-only, response-only and unknown keys are dropped. Values pass
    through untouched; normalisation is the applier's job.
    """
    values: dict[str, Any] = {}
    ignored: list[str] = []

    for key, value in payload.items():
        column = TASK_FIELD_MAP.get(key)
        if column is None or column in READ_ONLY_FIELDS:
            ignored.append(key)
            continue
        values[column] = value

    unexpected = [k for k in ignored if k not in RESPONSE_ONLY_FIELDS and k not in TASK_FIELD_MAP]
    if unexpected:
        logger.debug("task_payload_fields_ignored", fields=sorted(unexpected))

    return values


def normalize_origin(origin: str | None) -> str:
    """Collapse origin aliases to the value callers filter on."""
    if not origin:
        return DEFAULT_ORIGIN
    if origin in CATALOG_ORIGINS:
        return "factor"
    return origin


def _external_value(column: str, value: Any) -> Any:
    if column in ("created_at", "updated_at"):
        if value is None:
            return ""
        # Stored as UTC; some drivers hand back naive values
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if column in OPTIONAL_TEXT_FIELDS or column == "source_id":
        return value or ""
    if column == "completed":
        return bool(value)
    if column == "sort_order":
        return value or 0
    return value


def to_view(task: ProjectTask, reported_id: str | None = None) -> TaskView:
    """Re-express a stored task in caller-facing naming.

    ``reported_id`` overrides the internal id in the response; the stored
    row is never affected.
    """
    data: dict[str, Any] = {
        external: _external_value(column, getattr(task, column))
        for external, column in TASK_FIELD_MAP.items()
    }
    data["origin"] = task.origin or DEFAULT_ORIGIN
    data["source"] = normalize_origin(task.origin)
    if reported_id:
        data["id"] = reported_id
    return TaskView.model_validate(data)
