"""API router package."""

from fastapi import APIRouter

from tcof.api.v1 import factors, health, projects, tasks

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/projects/{project_id}/tasks", tags=["Tasks"])
router.include_router(factors.router, prefix="/factors", tags=["Success Factors"])
