"""Project task API endpoints.

Tasks are addressed by whatever id the client holds: the internal id, the
success factor id the task was cloned from, or a compound id starting with
either. Payloads and responses use camelCase field names.
"""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import ConfigDict

from tcof.api.deps import Catalog, TaskService
from tcof.exceptions import (
    ProjectNotFoundError,
    TaskError,
    TaskNotFoundError,
    TaskUpdateFailedError,
    TaskValidationError,
)
from tcof.schemas import CamelModel, TaskView

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class TaskCreate(CamelModel):
    """Create a task. Field rules are enforced by the service."""

    model_config = ConfigDict(extra="ignore")

    text: str | None = None
    stage: str | None = None
    origin: str | None = None
    source_id: str | None = None
    completed: bool | str | int | None = None
    status: str | None = None
    notes: str | None = None
    priority: str | None = None
    due_date: str | None = None
    owner: str | None = None
    task_type: str | None = None
    factor_id: str | None = None
    sort_order: int | None = None
    assigned_to: str | None = None
    task_notes: str | None = None


class TaskUpdate(TaskCreate):
    """Sparse task update; only the fields sent are changed."""


class TaskListResponse(CamelModel):
    """Task list response."""

    tasks: list[TaskView]
    total: int


class MaintenanceResponse(CamelModel):
    """Result of a bulk checklist operation."""

    project_id: str
    count: int


def handle_task_error(error: TaskError) -> HTTPException:
    """Convert task errors to HTTP exceptions."""
    if isinstance(error, (TaskNotFoundError, ProjectNotFoundError)):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error.message,
        )
    elif isinstance(error, TaskValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error.message,
        )
    elif isinstance(error, TaskUpdateFailedError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error.message,
        )
    else:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


def _payload(body: CamelModel) -> dict[str, Any]:
    # Explicit nulls are kept: they clear optional fields
    return body.model_dump(by_alias=True, exclude_unset=True)


# =============================================================================
# Task CRUD
# =============================================================================


@router.get("/", response_model=TaskListResponse, response_model_by_alias=True)
async def list_tasks(
    project_id: str,
    service: TaskService,
    origin: str | None = Query(None, description="Filter by origin; 'factor' includes success-factor"),
    stage: str | None = Query(None, description="Filter by stage"),
) -> TaskListResponse:
    """List a project's tasks."""
    try:
        await service.ensure_project(project_id)
        tasks = await service.list_tasks(project_id, origin=origin, stage=stage)
    except TaskError as e:
        raise handle_task_error(e)
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.post(
    "/",
    response_model=TaskView,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    project_id: str,
    task_data: TaskCreate,
    service: TaskService,
) -> TaskView:
    """Create a task in a project."""
    try:
        await service.ensure_project(project_id)
        return await service.create_task(project_id, _payload(task_data))
    except TaskError as e:
        raise handle_task_error(e)


@router.post("/materialize", response_model=MaintenanceResponse)
async def materialize_factor_tasks(
    project_id: str,
    service: TaskService,
    catalog: Catalog,
) -> MaintenanceResponse:
    """Clone the success factor catalog into the project's checklist."""
    try:
        await service.ensure_project(project_id)
    except TaskError as e:
        raise handle_task_error(e)

    created = await catalog.materialize_for_project(project_id)
    return MaintenanceResponse(project_id=project_id, count=created)


@router.post("/deduplicate", response_model=MaintenanceResponse)
async def deduplicate_factor_tasks(
    project_id: str,
    service: TaskService,
) -> MaintenanceResponse:
    """Remove duplicate success factor tasks, keeping the newest of each."""
    try:
        await service.ensure_project(project_id)
        removed = await service.remove_duplicate_factor_tasks(project_id)
    except TaskError as e:
        raise handle_task_error(e)
    return MaintenanceResponse(project_id=project_id, count=removed)


@router.get("/{task_id}", response_model=TaskView, response_model_by_alias=True)
async def get_task(
    project_id: str,
    task_id: str,
    service: TaskService,
) -> TaskView:
    """Get a task by any id the client holds for it."""
    try:
        await service.ensure_project(project_id)
        return await service.get_task(project_id, task_id)
    except TaskError as e:
        raise handle_task_error(e)


@router.put("/{task_id}", response_model=TaskView, response_model_by_alias=True)
@router.patch("/{task_id}", response_model=TaskView, response_model_by_alias=True)
async def update_task(
    project_id: str,
    task_id: str,
    updates: TaskUpdate,
    service: TaskService,
) -> TaskView:
    """Partially update a task.

    Success factor tasks that were never materialized in this project are
    created on first update.
    """
    try:
        await service.ensure_project(project_id)
        return await service.update_task(project_id, task_id, _payload(updates))
    except TaskError as e:
        raise handle_task_error(e)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    project_id: str,
    task_id: str,
    service: TaskService,
) -> None:
    """Delete a task."""
    try:
        await service.ensure_project(project_id)
        await service.delete_task(project_id, task_id)
    except TaskError as e:
        raise handle_task_error(e)
