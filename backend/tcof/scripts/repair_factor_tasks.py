"""Repair success factor tasks across all projects.

Removes duplicate factor tasks (same factor and stage) left behind by
older clients, keeping the most recently created copy. With
``--backfill`` it also clones any catalog tasks a project is missing.

Usage:
    python -m tcof.scripts.repair_factor_tasks [--backfill] [--dry-run]
"""

import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.db.session import async_session_factory
from tcof.models.project import Project
from tcof.services.catalog import CatalogService
from tcof.services.project_task import ProjectTaskService


async def repair_project(
    db: AsyncSession,
    project_id: str,
    catalog: CatalogService,
    backfill: bool = False,
) -> tuple[int, int]:
    """Repair a single project. Returns ``(removed, added)``."""
    service = ProjectTaskService(db, catalog)
    removed = await service.remove_duplicate_factor_tasks(project_id)
    added = await catalog.materialize_for_project(project_id) if backfill else 0
    return removed, added


async def repair(backfill: bool, dry_run: bool) -> None:
    async with async_session_factory() as db:
        catalog = CatalogService(db)
        result = await db.execute(select(Project.id, Project.name).order_by(Project.created_at))
        projects = result.all()
        print(f"Found {len(projects)} projects to process")

        total_removed = total_added = 0
        try:
            for project_id, name in projects:
                removed, added = await repair_project(db, project_id, catalog, backfill)
                total_removed += removed
                total_added += added
                if removed or added:
                    print(f"  {name} ({project_id}): removed {removed}, added {added}")

            if dry_run:
                await db.rollback()
            else:
                await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error repairing factor tasks: {e}")
            raise

        print("\nSummary:")
        print(f"  Duplicates removed: {total_removed}")
        print(f"  Tasks added: {total_added}")
        if dry_run:
            print("\n(Dry run - no changes made)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Repair success factor tasks")
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Also add catalog tasks missing from each project",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without committing",
    )
    args = parser.parse_args()

    asyncio.run(repair(args.backfill, args.dry_run))


if __name__ == "__main__":
    main()
