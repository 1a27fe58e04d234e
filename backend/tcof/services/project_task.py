"""Project task service: the single entry point for reading and writing tasks."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.config import get_settings
from tcof.exceptions import (
    ProjectNotFoundError,
    TaskError,
    TaskNotFoundError,
    TaskStoreError,
    TaskValidationError,
)
from tcof.models.project import (
    CATALOG_ORIGINS,
    DEFAULT_ORIGIN,
    DEFAULT_STAGE,
    TASK_ORIGINS,
    TASK_STAGES,
    Project,
    ProjectTask,
)
from tcof.schemas import TaskView
from tcof.services.catalog import CatalogService
from tcof.services.task_fields import to_internal, to_view
from tcof.services.task_resolver import TaskIdentityResolver
from tcof.services.task_updater import TaskUpdateApplier, coerce_bool, validate_update_payload
from tcof.services.task_upsert import TaskUpsertOnMiss

logger = structlog.get_logger()

T = TypeVar("T")


class ProjectTaskService:
    """Service for a project's checklist tasks."""

    def __init__(self, db: AsyncSession, catalog: CatalogService | None = None):
        self.db = db
        self.catalog = catalog or CatalogService(db)
        self.resolver = TaskIdentityResolver(db)
        self.applier = TaskUpdateApplier(db)
        self.upsert = TaskUpsertOnMiss(db, self.catalog)

    async def _guard(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call``, re-raising store failures as TaskStoreError."""
        try:
            return await call()
        except TaskError:
            raise
        except SQLAlchemyError as e:
            logger.error("task_store_error", operation=operation, error=str(e))
            raise TaskStoreError(operation, str(e)) from e

    async def ensure_project(self, project_id: str) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    # =========================================================================
    # Update
    # =========================================================================

    async def update_task(
        self,
        project_id: str,
        external_task_id: str,
        payload: dict[str, Any],
    ) -> TaskView:
        """Apply a partial update to the task the client calls ``external_task_id``.

        Resolves the id, materializing catalog-derived tasks on a miss, and
        returns the updated task in external naming. Raises
        TaskNotFoundError for unknown custom tasks and TaskValidationError
        for values that cannot be stored.
        """
        validate_update_payload(payload)

        async def run() -> TaskView:
            stage = payload.get("stage")
            stage_hint = str(stage).strip().lower() if stage else None

            # A catalog id that would be materialized must never prefix-match
            # a sibling such as sf-1 for sf-10
            scan = not await self.upsert.is_catalog_derived(external_task_id, payload)
            resolved = await self.resolver.resolve(
                project_id, external_task_id, stage_hint, scan=scan
            )
            if resolved is None:
                resolved = await self.upsert.upsert_if_catalog_derived(
                    project_id, external_task_id, payload
                )
                if resolved is None:
                    logger.info(
                        "task_update_not_found",
                        project_id=project_id,
                        task_id=external_task_id,
                    )
                    raise TaskNotFoundError(external_task_id, project_id)
                return to_view(resolved.task, resolved.reported_id)

            updated = await self.applier.apply(resolved, payload)
            return to_view(updated, resolved.reported_id)

        return await self._guard("update_task", run)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def list_tasks(
        self,
        project_id: str,
        origin: str | None = None,
        stage: str | None = None,
    ) -> list[TaskView]:
        """List a project's tasks ordered by sort order, then creation time."""

        async def run() -> list[TaskView]:
            query = (
                select(ProjectTask)
                .where(ProjectTask.project_id == project_id)
                .order_by(ProjectTask.sort_order, ProjectTask.created_at, ProjectTask.id)
            )
            if origin:
                origins = CATALOG_ORIGINS if origin in CATALOG_ORIGINS else (origin,)
                query = query.where(ProjectTask.origin.in_(origins))
            if stage:
                query = query.where(ProjectTask.stage == stage.lower())

            result = await self.db.execute(query)
            return [to_view(task) for task in result.scalars().all()]

        return await self._guard("list_tasks", run)

    async def get_task(self, project_id: str, external_task_id: str) -> TaskView:
        async def run() -> TaskView:
            resolved = await self.resolver.resolve(project_id, external_task_id)
            if resolved is None:
                raise TaskNotFoundError(external_task_id, project_id)
            return to_view(resolved.task, resolved.reported_id)

        return await self._guard("get_task", run)

    async def create_task(self, project_id: str, payload: dict[str, Any]) -> TaskView:
        """Create a task from an external payload.

        A catalog-derived task that already exists in the same stage is
        returned as-is instead of being duplicated.
        """
        values = to_internal(payload)

        text = str(values.get("text") or "").strip()
        if not text:
            raise TaskValidationError("Task text is required")

        stage = str(values.get("stage") or DEFAULT_STAGE).strip().lower()
        if stage not in TASK_STAGES:
            raise TaskValidationError(f"Invalid stage: {stage}")

        origin = str(values.get("origin") or DEFAULT_ORIGIN)
        if origin not in TASK_ORIGINS:
            raise TaskValidationError(f"Invalid origin: {origin}")

        source_id = values.get("source_id") or None
        if origin != DEFAULT_ORIGIN and not source_id:
            raise TaskValidationError(f"sourceId is required for {origin} tasks")

        async def run() -> TaskView:
            if origin in CATALOG_ORIGINS:
                result = await self.db.execute(
                    select(ProjectTask)
                    .where(
                        ProjectTask.project_id == project_id,
                        ProjectTask.source_id == source_id,
                        ProjectTask.stage == stage,
                        ProjectTask.origin.in_(CATALOG_ORIGINS),
                    )
                    .order_by(ProjectTask.created_at)
                    .limit(1)
                )
                existing = result.scalar_one_or_none()
                if existing:
                    logger.info(
                        "task_create_duplicate_skipped",
                        task_id=existing.id,
                        project_id=project_id,
                        source_id=source_id,
                    )
                    return to_view(existing)

            task = ProjectTask(
                project_id=project_id,
                text=text,
                stage=stage,
                origin=origin,
                source_id=source_id,
                completed=coerce_bool(values.get("completed", False)),
                status=values.get("status") or get_settings().default_task_status,
                notes=values.get("notes") or None,
                priority=values.get("priority") or None,
                due_date=values.get("due_date") or None,
                owner=values.get("owner") or None,
                task_type=values.get("task_type") or None,
                factor_id=values.get("factor_id") or None,
                assigned_to=values.get("assigned_to") or None,
                task_notes=values.get("task_notes") or None,
                sort_order=int(values.get("sort_order") or 0),
            )
            self.db.add(task)
            await self.db.flush()

            logger.info(
                "task_created",
                task_id=task.id,
                project_id=project_id,
                origin=origin,
                stage=stage,
            )
            return to_view(task)

        return await self._guard("create_task", run)

    async def delete_task(self, project_id: str, external_task_id: str) -> None:
        async def run() -> None:
            resolved = await self.resolver.resolve(project_id, external_task_id)
            if resolved is None:
                raise TaskNotFoundError(external_task_id, project_id)

            await self.db.delete(resolved.task)
            await self.db.flush()
            logger.info(
                "task_deleted",
                task_id=resolved.task.id,
                project_id=project_id,
                lookup_method=resolved.method.value,
            )

        await self._guard("delete_task", run)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def remove_duplicate_factor_tasks(self, project_id: str) -> int:
        """Delete all but the newest catalog-derived task per (source id, stage)."""

        async def run() -> int:
            result = await self.db.execute(
                select(ProjectTask.id, ProjectTask.source_id, ProjectTask.stage)
                .where(
                    ProjectTask.project_id == project_id,
                    ProjectTask.origin.in_(CATALOG_ORIGINS),
                    ProjectTask.source_id.is_not(None),
                )
                .order_by(ProjectTask.created_at.desc(), ProjectTask.id.desc())
            )

            seen: set[tuple[str, str]] = set()
            stale: list[str] = []
            for task_id, source_id, stage in result.all():
                key = (source_id, stage)
                if key in seen:
                    stale.append(task_id)
                else:
                    seen.add(key)

            if stale:
                await self.db.execute(
                    delete(ProjectTask)
                    .where(ProjectTask.id.in_(stale))
                    .execution_options(synchronize_session="fetch")
                )
                logger.info(
                    "duplicate_factor_tasks_removed",
                    project_id=project_id,
                    removed=len(stale),
                )
            return len(stale)

        return await self._guard("remove_duplicate_factor_tasks", run)
