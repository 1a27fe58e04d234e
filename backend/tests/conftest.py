"""Shared fixtures: a throwaway SQLite database per test, services, and an HTTP client."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

os.environ.setdefault("TCOF_ENVIRONMENT", "test")
os.environ.setdefault("TCOF_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TCOF_LOG_LEVEL", "WARNING")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tcof.db.base import Base
from tcof.db.session import get_db_session
from tcof.models import Project, ProjectTask, SuccessFactor, SuccessFactorTask
from tcof.services.catalog import CatalogCache, CatalogService
from tcof.services.project_task import ProjectTaskService

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

# Catalog used across tests: two factors with templates, one without
CATALOG = [
    ("sf-1", "1.1 Ask Why", {"identification": ["Agree the project goal"], "closure": ["Review the goal"]}),
    ("sf-2", "1.2 Get a Masterbuilder", {"definition": ["Appoint a masterbuilder", "-"]}),
    ("cat-123", "Catalog entry with no tasks", {}),
]


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh database file with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tcof_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def project(db: AsyncSession) -> Project:
    project = Project(id="project-1", name="Test project")
    db.add(project)
    await db.commit()
    return project


@pytest_asyncio.fixture
async def catalog_cache() -> CatalogCache:
    return CatalogCache(ttl_seconds=300)


@pytest_asyncio.fixture
async def seeded_catalog(db: AsyncSession) -> None:
    """Populate the success factor catalog tables."""
    for factor_id, title, tasks in CATALOG:
        templates = [
            SuccessFactorTask(stage=stage, text=text, position=position)
            for stage, texts in tasks.items()
            for position, text in enumerate(texts)
        ]
        db.add(SuccessFactor(id=factor_id, title=title, tasks=templates))
    await db.commit()


@pytest_asyncio.fixture
async def catalog(db: AsyncSession, catalog_cache: CatalogCache, seeded_catalog) -> CatalogService:
    return CatalogService(db, catalog_cache)


@pytest_asyncio.fixture
async def service(db: AsyncSession, catalog: CatalogService) -> ProjectTaskService:
    return ProjectTaskService(db, catalog)


@pytest_asyncio.fixture
async def make_task(db: AsyncSession, project: Project):
    """Insert a task directly, bypassing the services."""
    counter = {"n": 0}

    async def _make(**fields) -> ProjectTask:
        counter["n"] += 1
        fields.setdefault("project_id", project.id)
        fields.setdefault("text", f"Task {counter['n']}")
        fields.setdefault("created_at", BASE_TIME + timedelta(minutes=counter["n"]))
        task = ProjectTask(**fields)
        db.add(task)
        await db.commit()
        return task

    return _make


@pytest_asyncio.fixture
async def app(session_factory):
    """Application wired to the test database; the lifespan is bypassed."""
    from tcof.main import create_app

    application = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
