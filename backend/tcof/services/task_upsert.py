"""Materialize catalog-derived tasks the first time a client touches them."""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.config import get_settings
from tcof.db.base import new_id
from tcof.models.project import CATALOG_ORIGINS, DEFAULT_STAGE, ProjectTask
from tcof.services.catalog import CatalogEntry, CatalogService
from tcof.services.task_fields import to_internal
from tcof.services.task_resolver import LookupMethod, ResolvedTask
from tcof.services.task_updater import TaskUpdateApplier

logger = structlog.get_logger()


class TaskUpsertOnMiss:
    """Creates a missing catalog-derived task, then applies the update to it.

    Must run in the caller's session so the insert and the update commit
    or roll back together.
    """

    def __init__(self, db: AsyncSession, catalog: CatalogService | None = None):
        self.db = db
        self.catalog = catalog
        self.applier = TaskUpdateApplier(db)

    async def _catalog_entry(self, external_id: str) -> CatalogEntry | None:
        if self.catalog is None:
            return None
        return await self.catalog.get_factor(external_id)

    async def is_catalog_derived(self, external_id: str, payload: dict[str, Any]) -> bool:
        """Whether a miss on ``external_id`` would be materialized."""
        origin = to_internal(payload).get("origin")
        if origin:
            return origin in CATALOG_ORIGINS
        return await self._catalog_entry(external_id) is not None

    async def upsert_if_catalog_derived(
        self,
        project_id: str,
        external_id: str,
        payload: dict[str, Any],
    ) -> ResolvedTask | None:
        """Create and update the task ``external_id`` refers to.

        Returns None when nothing marks the id as catalog-derived: the
        payload declares no catalog origin and the catalog does not know it.
        """
        incoming = to_internal(payload)
        origin = incoming.get("origin")
        catalog_stage = catalog_text = None

        if origin:
            if origin not in CATALOG_ORIGINS:
                return None
        else:
            entry = await self._catalog_entry(external_id)
            if entry is None:
                return None
            origin = "factor"
            first = entry.first_task()
            if first:
                catalog_stage, catalog_text = first

        stage = incoming.get("stage") or catalog_stage or DEFAULT_STAGE
        text = incoming.get("text") or catalog_text or ""

        # Task ids are global; another project may already hold this one
        task_id = external_id
        if await self.db.get(ProjectTask, external_id) is not None:
            task_id = new_id()

        task = ProjectTask(
            id=task_id,
            project_id=project_id,
            text=text,
            stage=str(stage).strip().lower(),
            origin=origin,
            source_id=external_id,
            completed=False,
            status=get_settings().default_task_status,
        )
        self.db.add(task)
        await self.db.flush()

        logger.info(
            "task_materialized_on_update",
            task_id=task.id,
            project_id=project_id,
            source_id=external_id,
            origin=origin,
        )

        resolved = ResolvedTask(task=task, method=LookupMethod.SOURCE_ID, external_id=external_id)
        updated = await self.applier.apply(resolved, payload)
        return ResolvedTask(task=updated, method=LookupMethod.SOURCE_ID, external_id=external_id)
