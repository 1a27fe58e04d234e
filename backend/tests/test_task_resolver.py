"""Tests for TaskIdentityResolver."""

import pytest

from tcof.services.task_resolver import (
    LookupMethod,
    ResolvedTask,
    TaskIdentityResolver,
    extract_uuid_prefix,
)

UUID_A = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"
UUID_B = "7d6c5b4a-3e2f-4a1b-9c8d-0e1f2a3b4c5d"


@pytest.fixture
def resolver(db):
    return TaskIdentityResolver(db)


class TestExtractUuidPrefix:
    def test_compound_id(self):
        assert extract_uuid_prefix(f"{UUID_A}-sf-3") == UUID_A

    def test_plain_uuid_has_no_distinct_prefix(self):
        assert extract_uuid_prefix(UUID_A) is None

    def test_non_uuid(self):
        assert extract_uuid_prefix("sf-42") is None
        assert extract_uuid_prefix("") is None


class TestResolutionOrder:
    """Exact strategies win over later ones."""

    async def test_exact_id(self, resolver, make_task, project):
        task = await make_task(id="task-1")

        resolved = await resolver.resolve(project.id, "task-1")

        assert resolved.task.id == task.id
        assert resolved.method == LookupMethod.EXACT_ID

    async def test_exact_id_beats_source_id(self, resolver, make_task, project):
        # A's source id equals B's internal id
        await make_task(id="task-a", origin="factor", source_id="task-b")
        await make_task(id="task-b")

        resolved = await resolver.resolve(project.id, "task-b")

        assert resolved.task.id == "task-b"
        assert resolved.method == LookupMethod.EXACT_ID

    async def test_source_id(self, resolver, make_task, project):
        await make_task(id=UUID_A, origin="factor", source_id="sf-7")

        resolved = await resolver.resolve(project.id, "sf-7")

        assert resolved.task.id == UUID_A
        assert resolved.method == LookupMethod.SOURCE_ID

    async def test_source_id_prefers_stage_hint(self, resolver, make_task, project):
        await make_task(id="t-ident", origin="factor", source_id="sf-1", stage="identification")
        await make_task(id="t-close", origin="factor", source_id="sf-1", stage="closure")

        assert (await resolver.resolve(project.id, "sf-1", stage="closure")).task.id == "t-close"
        # Without a hint the oldest row wins
        assert (await resolver.resolve(project.id, "sf-1")).task.id == "t-ident"

    async def test_uuid_prefix_matches_catalog_source_id(self, resolver, make_task, project):
        await make_task(id="t-1", origin="factor", source_id=UUID_A)

        resolved = await resolver.resolve(project.id, f"{UUID_A}-identification")

        assert resolved.task.id == "t-1"
        assert resolved.method == LookupMethod.UUID_PREFIX_SOURCE_ID

    async def test_uuid_prefix_matches_internal_id(self, resolver, make_task, project):
        await make_task(id=UUID_B)

        resolved = await resolver.resolve(project.id, f"{UUID_B}-0")

        assert resolved.task.id == UUID_B
        assert resolved.method == LookupMethod.UUID_PREFIX_ID

    async def test_uuid_prefix_prefers_catalog_tasks(self, resolver, make_task, project):
        await make_task(id=UUID_A, origin="custom")
        await make_task(id="t-factor", origin="success-factor", source_id=UUID_A)

        resolved = await resolver.resolve(project.id, f"{UUID_A}-x")

        # Exact-id and source-id steps miss on the compound string; the
        # catalog-restricted prefix pass finds the factor task first.
        assert resolved.task.id == "t-factor"
        assert resolved.method == LookupMethod.UUID_PREFIX_SOURCE_ID


class TestScanFallback:
    async def test_truncated_id_found_by_scan(self, resolver, make_task, project):
        await make_task(id="legacy-task-0001")

        resolved = await resolver.resolve(project.id, "legacy-task")

        assert resolved.task.id == "legacy-task-0001"
        assert resolved.method == LookupMethod.SCAN_ID

    async def test_compound_non_uuid_id_found_by_scan(self, resolver, make_task, project):
        await make_task(id="t-1", origin="factor", source_id="sf-3")

        resolved = await resolver.resolve(project.id, "sf-3-delivery")

        assert resolved.task.id == "t-1"
        assert resolved.method == LookupMethod.SCAN_SOURCE_ID

    @pytest.mark.parametrize(("stored", "requested"), [("sf-1", "sf-10"), ("sf-10", "sf-1")])
    async def test_scan_respects_segment_boundaries(self, resolver, make_task, project, stored, requested):
        await make_task(id="t-1", origin="factor", source_id=stored)

        assert await resolver.resolve(project.id, requested) is None

    async def test_scan_can_be_skipped_per_call(self, resolver, make_task, project):
        await make_task(id="t-1", origin="factor", source_id="sf-3")

        assert await resolver.resolve(project.id, "sf-3-delivery", scan=False) is None

    async def test_scan_disabled(self, db, make_task, project):
        await make_task(id="legacy-task-0001")

        resolver = TaskIdentityResolver(db, scan_enabled=False)

        assert await resolver.resolve(project.id, "legacy-task") is None

    async def test_scan_skipped_above_row_cap(self, db, make_task, project):
        for i in range(3):
            await make_task(id=f"legacy-task-{i}")

        resolver = TaskIdentityResolver(db, scan_max_rows=2)

        assert await resolver.resolve(project.id, "legacy-task") is None


class TestMisses:
    async def test_unknown_id(self, resolver, make_task, project):
        await make_task(id="task-1")

        assert await resolver.resolve(project.id, "nothing-like-it") is None

    async def test_other_project_is_invisible(self, resolver, make_task, db):
        from tcof.models import Project

        db.add(Project(id="project-2", name="Other"))
        await db.commit()
        await make_task(id="task-1")

        assert await resolver.resolve("project-2", "task-1") is None

    async def test_malformed_project_id(self, resolver, make_task):
        await make_task(id="task-1")

        assert await resolver.resolve("not a project", "task-1") is None
        assert await resolver.resolve("", "task-1") is None

    async def test_empty_external_id(self, resolver, project):
        assert await resolver.resolve(project.id, "") is None


class TestReportedId:
    """Which id the caller gets back."""

    async def test_catalog_task_found_by_source_id_reports_source_id(self, make_task):
        task = await make_task(id=UUID_A, origin="factor", source_id="sf-42")

        resolved = ResolvedTask(task=task, method=LookupMethod.SOURCE_ID, external_id="sf-42")

        assert resolved.reported_id == "sf-42"

    async def test_catalog_task_found_by_id_reports_id(self, make_task):
        task = await make_task(id=UUID_A, origin="factor", source_id="sf-42")

        resolved = ResolvedTask(task=task, method=LookupMethod.EXACT_ID, external_id=UUID_A)

        assert resolved.reported_id == UUID_A

    async def test_exact_source_id_hit_reports_requested_id(self, make_task):
        task = await make_task(id=UUID_A, origin="factor", source_id="sf-43")

        resolved = ResolvedTask(task=task, method=LookupMethod.SOURCE_ID, external_id="sf-42")

        assert resolved.reported_id == "sf-42"

    async def test_custom_prefixed_id_reports_id(self, make_task):
        task = await make_task(id="custom-1", origin="factor", source_id="sf-42")

        resolved = ResolvedTask(task=task, method=LookupMethod.SOURCE_ID, external_id="sf-42")

        assert resolved.reported_id == "custom-1"

    async def test_custom_task_reports_id(self, make_task):
        task = await make_task(id="t-1", origin="custom", source_id="sf-42")

        resolved = ResolvedTask(task=task, method=LookupMethod.SOURCE_ID, external_id="sf-42")

        assert resolved.reported_id == "t-1"
