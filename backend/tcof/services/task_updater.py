"""Partial task updates with provenance preservation."""

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.db.base import utcnow
from tcof.exceptions import TaskUpdateFailedError, TaskValidationError
from tcof.models.project import (
    CATALOG_ORIGINS,
    DEFAULT_ORIGIN,
    TASK_ORIGINS,
    TASK_STAGES,
    ProjectTask,
)
from tcof.services.task_fields import OPTIONAL_TEXT_FIELDS, to_internal
from tcof.services.task_resolver import ResolvedTask

logger = structlog.get_logger()

FALSE_STRINGS = frozenset({"", "false", "0", "no", "off"})

# Non-nullable columns; an explicit null leaves them unchanged
REQUIRED_TEXT_FIELDS = ("text", "stage", "origin", "status")


def coerce_bool(value: Any) -> bool:
    """Coerce any client representation of a flag to a strict bool."""
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def _normalize_value(column: str, value: Any) -> Any:
    if column == "completed":
        return coerce_bool(value)
    if column in OPTIONAL_TEXT_FIELDS or column == "source_id":
        if value is None or value == "":
            return None
        return str(value)
    if column == "sort_order":
        if value is None or value == "":
            return 0
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise TaskValidationError(f"Invalid sortOrder: {value!r}") from e
    if column == "stage":
        stage = str(value).strip().lower()
        if stage not in TASK_STAGES:
            raise TaskValidationError(f"Invalid stage: {value}")
        return stage
    if column == "origin":
        origin = str(value) or DEFAULT_ORIGIN
        if origin not in TASK_ORIGINS:
            raise TaskValidationError(f"Invalid origin: {origin}")
        return origin
    return str(value)


def build_update_values(
    task: ProjectTask,
    payload: dict[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Translate an external payload into the column values to write.

    Only keys present in ``payload`` appear in the result, plus
    ``updated_at`` which is always refreshed. Catalog-derived tasks keep
    their ``origin``/``source_id`` unless the payload sets either one.
    Raises TaskValidationError for a stage, origin or sort order that is
    not allowed.
    """
    incoming = to_internal(payload)
    values: dict[str, Any] = {}

    for column, value in incoming.items():
        if value is None and column in REQUIRED_TEXT_FIELDS:
            continue
        values[column] = _normalize_value(column, value)

    if (
        task.origin in CATALOG_ORIGINS
        and "origin" not in incoming
        and "source_id" not in incoming
    ):
        values["origin"] = task.origin
        values["source_id"] = task.source_id

    values["updated_at"] = now or utcnow()
    return values


def validate_update_payload(payload: dict[str, Any]) -> None:
    """Reject a payload whose values could never be written."""
    for column, value in to_internal(payload).items():
        if value is None and column in REQUIRED_TEXT_FIELDS:
            continue
        _normalize_value(column, value)


class TaskUpdateApplier:
    """Applies a sparse payload to a resolved task by its internal id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def apply(self, resolved: ResolvedTask, payload: dict[str, Any]) -> ProjectTask:
        """Write ``payload`` onto the resolved task and return the fresh row.

        Raises TaskUpdateFailedError when the row vanished between
        resolution and the write.
        """
        task_id = resolved.task.id
        values = build_update_values(resolved.task, payload)

        result = await self.db.execute(
            update(ProjectTask)
            .where(ProjectTask.id == task_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "task_update_no_rows",
                task_id=task_id,
                project_id=resolved.task.project_id,
            )
            raise TaskUpdateFailedError(task_id)

        refreshed = await self.db.execute(
            select(ProjectTask)
            .where(ProjectTask.id == task_id)
            .execution_options(populate_existing=True)
        )
        updated = refreshed.scalar_one_or_none()
        if updated is None:
            raise TaskUpdateFailedError(task_id)

        logger.info(
            "task_updated",
            task_id=task_id,
            project_id=updated.project_id,
            lookup_method=resolved.method.value,
            fields=sorted(k for k in values if k != "updated_at"),
        )
        return updated
