"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from tcof.db.session import DBSession
from tcof.services.catalog import CatalogCache, CatalogService
from tcof.services.project_task import ProjectTaskService


def get_catalog_cache(request: Request) -> CatalogCache:
    """Process-wide catalog cache created by the application factory."""
    return request.app.state.catalog_cache


async def get_catalog_service(
    db: DBSession,
    cache: CatalogCache = Depends(get_catalog_cache),
) -> CatalogService:
    return CatalogService(db, cache)


async def get_task_service(
    db: DBSession,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ProjectTaskService:
    return ProjectTaskService(db, catalog)


Catalog = Annotated[CatalogService, Depends(get_catalog_service)]
TaskService = Annotated[ProjectTaskService, Depends(get_task_service)]
