"""Success factor catalog provider.

Read access to the canonical success factors, cached in-process, plus the
two write paths the catalog needs outside of seeding: making sure the twelve
canonical factors exist and cloning the catalog into a project's checklist.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.config import get_settings
from tcof.models.catalog import SuccessFactor
from tcof.models.project import TASK_STAGES, ProjectTask

logger = structlog.get_logger()

CANONICAL_FACTORS: tuple[tuple[str, str], ...] = (
    ("sf-1", "1.1 Ask Why"),
    ("sf-2", "1.2 Get a Masterbuilder"),
    ("sf-3", "1.3 Get Your People on the Bus"),
    ("sf-4", "1.4 Make Friends and Keep them Friendly"),
    ("sf-5", "2.1 Recognise that your project is not unique"),
    ("sf-6", "2.2 Look for Tried & Tested Options"),
    ("sf-7", "3.1 Think Big, Start Small"),
    ("sf-8", "3.2 Learn by Experimenting"),
    ("sf-9", "3.3 Keep on top of risks"),
    ("sf-10", "4.1 Adjust for optimism"),
    ("sf-11", "4.2 Measure What Matters, Be Ready to Step Away"),
    ("sf-12", "4.3 Be Ready to Adapt"),
)

# Texts used as "no task" markers in imported catalogs
PLACEHOLDER_TEXTS = frozenset({"", "-"})


@dataclass
class CatalogEntry:
    """Detached, cacheable snapshot of one success factor."""

    id: str
    title: str
    description: str = ""
    tasks: dict[str, list[str]] = field(default_factory=dict)

    def triples(self) -> list[tuple[str, str, str]]:
        """``(factor id, stage, text)`` for every real task, in stage order."""
        result = []
        for stage in TASK_STAGES:
            for text in self.tasks.get(stage, []):
                if text.strip() in PLACEHOLDER_TEXTS:
                    continue
                result.append((self.id, stage, text))
        return result

    def first_task(self) -> tuple[str, str] | None:
        """``(stage, text)`` of the earliest task, or None for an empty factor."""
        for _, stage, text in self.triples():
            return stage, text
        return None


class CatalogCache:
    """In-process catalog snapshot with a time-to-live.

    Holds the whole catalog as one value. ``invalidate()`` drops it
    immediately; writers call it after changing the catalog tables.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: list[CatalogEntry] | None = None
        self._loaded_at = 0.0
        self.lock = asyncio.Lock()

        # Metrics
        self.hits = 0
        self.misses = 0

    def get(self) -> list[CatalogEntry] | None:
        if self._entries is None:
            self.misses += 1
            return None
        if self._clock() - self._loaded_at > self.ttl_seconds:
            self._entries = None
            self.misses += 1
            logger.debug("catalog_cache_expired")
            return None
        self.hits += 1
        return self._entries

    def set(self, entries: list[CatalogEntry]) -> None:
        self._entries = entries
        self._loaded_at = self._clock()

    def invalidate(self) -> None:
        if self._entries is not None:
            logger.debug("catalog_cache_invalidated")
        self._entries = None


def _to_entry(factor: SuccessFactor) -> CatalogEntry:
    tasks: dict[str, list[str]] = {stage: [] for stage in TASK_STAGES}
    for task in factor.tasks:
        tasks.setdefault(task.stage, []).append(task.text)
    return CatalogEntry(
        id=factor.id,
        title=factor.title,
        description=factor.description or "",
        tasks=tasks,
    )


class CatalogService:
    """Service for reading the success factor catalog."""

    def __init__(self, db: AsyncSession, cache: CatalogCache | None = None):
        self.db = db
        if cache is None:
            cache = CatalogCache(ttl_seconds=get_settings().catalog_cache_ttl_seconds)
        self.cache = cache

    async def list_factors(self) -> list[CatalogEntry]:
        """Return every catalog entry ordered by id, from cache when fresh."""
        entries = self.cache.get()
        if entries is not None:
            return entries

        async with self.cache.lock:
            entries = self.cache.get()
            if entries is not None:
                return entries

            result = await self.db.execute(select(SuccessFactor))
            factors = result.scalars().all()
            entries = sorted((_to_entry(f) for f in factors), key=_factor_sort_key)
            self.cache.set(entries)
            logger.debug("catalog_loaded", factor_count=len(entries))
            return entries

    async def get_factor(self, factor_id: str) -> CatalogEntry | None:
        for entry in await self.list_factors():
            if entry.id == factor_id:
                return entry
        return None

    async def entries(self) -> list[tuple[str, str, str]]:
        """Flatten the catalog into ``(factor id, stage, text)`` triples."""
        triples = []
        for entry in await self.list_factors():
            triples.extend(entry.triples())
        return triples

    async def ensure_canonical_factors(self) -> int:
        """Insert missing canonical factors and correct drifted titles.

        Existing task templates are left alone. Returns the number of
        factors created or renamed.
        """
        result = await self.db.execute(select(SuccessFactor))
        existing = {factor.id: factor for factor in result.scalars().all()}

        changed = 0
        for factor_id, title in CANONICAL_FACTORS:
            factor = existing.get(factor_id)
            if factor is None:
                self.db.add(SuccessFactor(id=factor_id, title=title, tasks=[]))
                changed += 1
            elif factor.title != title:
                factor.title = title
                changed += 1

        if changed:
            await self.db.flush()
            self.cache.invalidate()
            logger.info("canonical_factors_refreshed", changed=changed)
        return changed

    async def materialize_for_project(self, project_id: str) -> int:
        """Clone every catalog task into the project's checklist.

        A task already present with the same source id, stage and text is
        skipped, so repeated calls only fill gaps. Returns the number of
        tasks created.
        """
        result = await self.db.execute(
            select(ProjectTask.source_id, ProjectTask.stage, ProjectTask.text).where(
                ProjectTask.project_id == project_id,
                ProjectTask.source_id.is_not(None),
            )
        )
        present = {tuple(row) for row in result.all()}

        default_status = get_settings().default_task_status
        created = 0
        for position, (factor_id, stage, text) in enumerate(await self.entries()):
            if (factor_id, stage, text) in present:
                continue
            self.db.add(
                ProjectTask(
                    project_id=project_id,
                    text=text,
                    stage=stage,
                    origin="factor",
                    source_id=factor_id,
                    completed=False,
                    status=default_status,
                    sort_order=position,
                )
            )
            present.add((factor_id, stage, text))
            created += 1

        if created:
            await self.db.flush()
        logger.info(
            "factor_tasks_materialized",
            project_id=project_id,
            created=created,
        )
        return created


def _factor_sort_key(entry: CatalogEntry) -> tuple[int, str]:
    # sf-2 sorts before sf-10
    prefix, _, number = entry.id.rpartition("-")
    if prefix and number.isdigit():
        return int(number), entry.id
    return 0, entry.id
