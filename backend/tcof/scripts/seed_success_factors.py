"""Seed the success factor catalog.

Loads factors from a JSON file shaped like::

    [{"id": "sf-1", "title": "1.1 Ask Why", "description": "...",
      "tasks": {"Identification": ["..."], "Definition": [], ...}}]

Existing factors are updated in place and their task templates replaced.
Without a file, only the twelve canonical factors are ensured.

Usage:
    python -m tcof.scripts.seed_success_factors [path/to/successFactors.json]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tcof.db.session import async_session_factory
from tcof.models.catalog import SuccessFactor, SuccessFactorTask
from tcof.models.project import TASK_STAGES
from tcof.services.catalog import PLACEHOLDER_TEXTS, CatalogService


def build_task_templates(tasks: dict[str, list[str]]) -> list[SuccessFactorTask]:
    """Turn a ``{Stage: [text, ...]}`` mapping into ordered template rows."""
    by_stage = {str(stage).strip().lower(): texts or [] for stage, texts in tasks.items()}

    templates = []
    for stage in TASK_STAGES:
        for position, text in enumerate(by_stage.get(stage, [])):
            if not text or text.strip() in PLACEHOLDER_TEXTS:
                continue
            templates.append(SuccessFactorTask(stage=stage, text=text.strip(), position=position))
    return templates


async def seed_factors(db: AsyncSession, factors: list[dict[str, Any]]) -> tuple[int, int]:
    """Insert or update catalog factors. Returns ``(created, updated)``."""
    result = await db.execute(select(SuccessFactor))
    existing = {factor.id: factor for factor in result.scalars().all()}

    created = updated = 0
    for data in factors:
        factor_id = str(data["id"])
        templates = build_task_templates(data.get("tasks") or {})

        factor = existing.get(factor_id)
        if factor is None:
            db.add(
                SuccessFactor(
                    id=factor_id,
                    title=data["title"],
                    description=data.get("description") or None,
                    tasks=templates,
                )
            )
            created += 1
            print(f"  Inserted factor: {factor_id} - {data['title']}")
        else:
            factor.title = data["title"]
            factor.description = data.get("description") or None
            factor.tasks = templates
            updated += 1
            print(f"  Updated factor: {factor_id} - {data['title']}")

    await db.flush()
    return created, updated


async def seed(path: Path | None) -> None:
    async with async_session_factory() as db:
        try:
            if path is not None:
                factors = json.loads(path.read_text(encoding="utf-8"))
                print(f"Read {len(factors)} success factors from {path}")
                created, updated = await seed_factors(db, factors)
                print(f"Created: {created}, updated: {updated}")

            changed = await CatalogService(db).ensure_canonical_factors()
            print(f"Canonical factors created or renamed: {changed}")

            await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error seeding success factors: {e}")
            raise


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the success factor catalog")
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        help="JSON file with success factors",
    )
    args = parser.parse_args()

    if args.path is not None and not args.path.exists():
        print(f"Error: file not found: {args.path}")
        sys.exit(1)

    print("Seeding success factors...")
    print("-" * 50)
    asyncio.run(seed(args.path))


if __name__ == "__main__":
    main()
