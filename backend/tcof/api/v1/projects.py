"""Projects API endpoints."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.db.session import get_db_session
from tcof.models.project import TASK_STAGES, Project, ProjectTask

router = APIRouter()
logger = structlog.get_logger()

STAGE_PATTERN = "^(" + "|".join(TASK_STAGES) + ")$"


# Request/Response Models
class ProjectCreate(BaseModel):
    """Create a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    sector: str | None = Field(None, max_length=100)
    org_type: str | None = Field(None, max_length=100)
    team_size: str | None = Field(None, max_length=100)
    current_stage: str | None = Field(None, pattern=STAGE_PATTERN)


class ProjectUpdate(BaseModel):
    """Update a project."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    sector: str | None = Field(None, max_length=100)
    org_type: str | None = Field(None, max_length=100)
    team_size: str | None = Field(None, max_length=100)
    current_stage: str | None = Field(None, pattern=STAGE_PATTERN)


class ProjectResponse(BaseModel):
    """Project response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    sector: str | None
    org_type: str | None
    team_size: str | None
    current_stage: str | None
    created_at: datetime
    updated_at: datetime
    task_count: int = 0
    completed_task_count: int = 0


async def get_project_or_404(db: AsyncSession, project_id: str) -> Project:
    """Load a project or raise 404."""
    project = await db.get(Project, project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )
    return project


async def build_project_response(db: AsyncSession, project: Project) -> ProjectResponse:
    """Attach task progress counts to a project."""
    result = await db.execute(
        select(
            func.count(ProjectTask.id),
            func.count(ProjectTask.id).filter(ProjectTask.completed.is_(True)),
        ).where(ProjectTask.project_id == project.id)
    )
    task_count, completed_count = result.one()

    response = ProjectResponse.model_validate(project)
    response.task_count = task_count or 0
    response.completed_task_count = completed_count or 0
    return response


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    """Create a new project."""
    project = Project(**project_data.model_dump())
    db.add(project)
    await db.flush()

    logger.info("project_created", project_id=project.id)
    return await build_project_response(db, project)


@router.get("/", response_model=list[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(get_db_session),
) -> list[ProjectResponse]:
    """List all projects, newest first."""
    result = await db.execute(select(Project).order_by(Project.created_at.desc()))
    return [await build_project_response(db, p) for p in result.scalars().all()]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    """Get a specific project."""
    project = await get_project_or_404(db, project_id)
    return await build_project_response(db, project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    updates: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    """Update a project."""
    project = await get_project_or_404(db, project_id)

    update_data = updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field == "name" and value is None:
            continue
        setattr(project, field, value)
    await db.flush()

    logger.info("project_updated", project_id=project_id, fields=sorted(update_data))
    return await build_project_response(db, project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a project together with its tasks."""
    project = await get_project_or_404(db, project_id)

    result = await db.execute(
        delete(ProjectTask)
        .where(ProjectTask.project_id == project_id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(project)
    await db.flush()

    logger.info("project_deleted", project_id=project_id, tasks_deleted=result.rowcount)
