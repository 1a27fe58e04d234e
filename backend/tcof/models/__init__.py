"""SQLAlchemy models package."""

from tcof.models.catalog import SuccessFactor, SuccessFactorTask
from tcof.models.project import (
    CATALOG_ORIGINS,
    TASK_ORIGINS,
    TASK_STAGES,
    Project,
    ProjectTask,
)

__all__ = [
    # Projects
    "Project",
    "ProjectTask",
    "TASK_STAGES",
    "TASK_ORIGINS",
    "CATALOG_ORIGINS",
    # Catalog
    "SuccessFactor",
    "SuccessFactorTask",
]
