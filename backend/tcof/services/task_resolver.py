"""Task identity resolution.

Clients refer to a task by its internal id, by the catalog id it was
materialized from (``source_id``), or by a compound string whose leading
UUID is one of those. ``TaskIdentityResolver`` maps whatever the client sent
to the stored row, trying exact strategies before prefix strategies so a
coincidental prefix can never shadow an exact hit.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.config import get_settings
from tcof.models.project import CATALOG_ORIGINS, ProjectTask

logger = structlog.get_logger()

UUID_PREFIX_PATTERN = re.compile(
    r"^([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})",
    re.IGNORECASE,
)

# Characters that may follow an id inside a compound id
SEGMENT_SEPARATORS = ("-", "_")


class LookupMethod(str, Enum):
    """Strategy that produced a resolution hit."""

    EXACT_ID = "exact_id"
    SOURCE_ID = "source_id"
    UUID_PREFIX_SOURCE_ID = "uuid_prefix_source_id"
    UUID_PREFIX_ID = "uuid_prefix_id"
    SCAN_ID = "scan_id"
    SCAN_SOURCE_ID = "scan_source_id"

    @property
    def via_source_id(self) -> bool:
        """Whether the hit came from matching the catalog id."""
        return self in (
            LookupMethod.SOURCE_ID,
            LookupMethod.UUID_PREFIX_SOURCE_ID,
            LookupMethod.SCAN_SOURCE_ID,
        )


@dataclass
class ResolvedTask:
    """A stored task together with how the external id was matched."""

    task: ProjectTask
    method: LookupMethod
    external_id: str

    @property
    def reported_id(self) -> str:
        """Id to hand back to the caller.

        Catalog-derived tasks found through their catalog id report that id,
        so clients that keep addressing the task by catalog id stay
        consistent with what they were told. An exact catalog id hit reports
        the id the caller sent.
        """
        task = self.task
        if (
            self.method.via_source_id
            and task.origin != "custom"
            and task.source_id
            and not task.id.startswith("custom-")
        ):
            if self.method == LookupMethod.SOURCE_ID:
                return self.external_id
            return task.source_id
        return task.id


def extract_uuid_prefix(external_id: str) -> str | None:
    """Return the leading UUID of a compound id, or None.

    A plain UUID has no distinct prefix and also returns None.
    """
    match = UUID_PREFIX_PATTERN.match(external_id)
    if match and match.group(1) != external_id:
        return match.group(1)
    return None


class TaskIdentityResolver:
    """Read-only lookup of a project task from a caller-supplied identifier."""

    def __init__(
        self,
        db: AsyncSession,
        scan_enabled: bool | None = None,
        scan_max_rows: int | None = None,
    ):
        settings = get_settings()
        self.db = db
        self.scan_enabled = settings.task_scan_enabled if scan_enabled is None else scan_enabled
        self.scan_max_rows = settings.task_scan_max_rows if scan_max_rows is None else scan_max_rows

    async def resolve(
        self,
        project_id: str,
        external_id: str,
        stage: str | None = None,
        scan: bool = True,
    ) -> ResolvedTask | None:
        """Resolve ``external_id`` within ``project_id``.

        Returns None on a miss; never raises for unknown or malformed ids.
        ``stage`` breaks ties when a catalog id is materialized in several
        stages of the same project. ``scan=False`` skips the prefix scan.
        """
        if not project_id or not external_id:
            return None

        # 1. Exact internal id
        task = await self._find_by_id(project_id, external_id)
        if task:
            return self._hit(task, LookupMethod.EXACT_ID, external_id)

        # 2. Exact catalog id
        task = await self._find_by_source_id(project_id, external_id, stage)
        if task:
            return self._hit(task, LookupMethod.SOURCE_ID, external_id)

        # 3. Leading UUID of a compound id, catalog-derived tasks first
        prefix = extract_uuid_prefix(external_id)
        if prefix:
            for origins in (CATALOG_ORIGINS, None):
                task = await self._find_by_source_id(project_id, prefix, stage, origins)
                if task:
                    return self._hit(task, LookupMethod.UUID_PREFIX_SOURCE_ID, external_id)
                task = await self._find_by_id(project_id, prefix, origins)
                if task:
                    return self._hit(task, LookupMethod.UUID_PREFIX_ID, external_id)

        # 4. Bounded scan of the whole project
        resolved = await self._scan(project_id, external_id) if scan else None
        if resolved:
            return resolved

        logger.info(
            "task_lookup_miss",
            project_id=project_id,
            external_id=external_id,
        )
        return None

    # =========================================================================
    # Strategies
    # =========================================================================

    async def _find_by_id(
        self,
        project_id: str,
        task_id: str,
        origins: Sequence[str] | None = None,
    ) -> ProjectTask | None:
        query = select(ProjectTask).where(
            ProjectTask.project_id == project_id,
            ProjectTask.id == task_id,
        )
        if origins:
            query = query.where(ProjectTask.origin.in_(origins))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _find_by_source_id(
        self,
        project_id: str,
        source_id: str,
        stage: str | None = None,
        origins: Sequence[str] | None = None,
    ) -> ProjectTask | None:
        query = (
            select(ProjectTask)
            .where(
                ProjectTask.project_id == project_id,
                ProjectTask.source_id == source_id,
            )
            .order_by(ProjectTask.created_at, ProjectTask.id)
        )
        if origins:
            query = query.where(ProjectTask.origin.in_(origins))
        result = await self.db.execute(query)
        tasks = result.scalars().all()
        if not tasks:
            return None

        if stage:
            for task in tasks:
                if task.stage == stage:
                    return task
        return tasks[0]

    async def _scan(self, project_id: str, external_id: str) -> ResolvedTask | None:
        """Last resort: compare against every id and source id in the project."""
        if not self.scan_enabled:
            return None

        count_result = await self.db.execute(
            select(func.count())
            .select_from(ProjectTask)
            .where(ProjectTask.project_id == project_id)
        )
        row_count = count_result.scalar() or 0
        if row_count > self.scan_max_rows:
            logger.warning(
                "task_lookup_scan_skipped",
                project_id=project_id,
                external_id=external_id,
                row_count=row_count,
                max_rows=self.scan_max_rows,
            )
            return None

        result = await self.db.execute(
            select(ProjectTask)
            .where(ProjectTask.project_id == project_id)
            .order_by(ProjectTask.created_at, ProjectTask.id)
        )

        best: tuple[int, int] | None = None
        best_hit: tuple[ProjectTask, LookupMethod] | None = None
        for task in result.scalars().all():
            for value, method in (
                (task.id, LookupMethod.SCAN_ID),
                (task.source_id, LookupMethod.SCAN_SOURCE_ID),
            ):
                rank = _prefix_rank(value, external_id)
                if rank is None:
                    continue
                score = (rank, len(value))
                if best is None or score > best:
                    best = score
                    best_hit = (task, method)

        if best_hit is None:
            return None

        task, method = best_hit
        logger.warning(
            "task_lookup_scan_fallback_used",
            project_id=project_id,
            external_id=external_id,
            task_id=task.id,
            lookup_method=method.value,
        )
        return ResolvedTask(task=task, method=method, external_id=external_id)

    def _hit(self, task: ProjectTask, method: LookupMethod, external_id: str) -> ResolvedTask:
        logger.debug(
            "task_lookup_hit",
            project_id=task.project_id,
            external_id=external_id,
            task_id=task.id,
            lookup_method=method.value,
        )
        return ResolvedTask(task=task, method=method, external_id=external_id)


def _prefix_rank(value: str | None, external_id: str) -> int | None:
    """Rank how ``value`` relates to ``external_id``; None if unrelated.

    2: equal, 1: ``value`` is a prefix of a compound external id,
    0: ``external_id`` is a truncated form of ``value``.
    Prefixes only count at a segment boundary, so ``sf-1`` never matches
    ``sf-10``.
    """
    if not value:
        return None
    if value == external_id:
        return 2
    if _is_segment_prefix(value, external_id):
        return 1
    if _is_segment_prefix(external_id, value):
        return 0
    return None


def _is_segment_prefix(prefix: str, value: str) -> bool:
    return value.startswith(prefix) and value[len(prefix)] in SEGMENT_SEPARATORS
