"""Services package."""

from tcof.services.catalog import CatalogCache, CatalogEntry, CatalogService
from tcof.services.project_task import ProjectTaskService
from tcof.services.task_resolver import LookupMethod, ResolvedTask, TaskIdentityResolver
from tcof.services.task_updater import TaskUpdateApplier
from tcof.services.task_upsert import TaskUpsertOnMiss

__all__ = [
    "CatalogCache",
    "CatalogEntry",
    "CatalogService",
    "ProjectTaskService",
    "LookupMethod",
    "ResolvedTask",
    "TaskIdentityResolver",
    "TaskUpdateApplier",
    "TaskUpsertOnMiss",
]
