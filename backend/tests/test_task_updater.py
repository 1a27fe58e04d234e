"""Tests for TaskUpdateApplier and payload normalisation."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import delete

from tcof.exceptions import TaskUpdateFailedError, TaskValidationError
from tcof.models.project import ProjectTask
from tcof.services.task_resolver import LookupMethod, ResolvedTask
from tcof.services.task_updater import TaskUpdateApplier, build_update_values, coerce_bool

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def applier(db):
    return TaskUpdateApplier(db)


def _resolved(task: ProjectTask, method: LookupMethod = LookupMethod.EXACT_ID) -> ResolvedTask:
    return ResolvedTask(task=task, method=method, external_id=task.id)


class TestCoerceBool:
    @pytest.mark.parametrize("value", [True, 1, "true", "True", "1", "yes", "on"])
    def test_truthy(self, value):
        assert coerce_bool(value) is True

    @pytest.mark.parametrize("value", [False, 0, None, "", "false", "FALSE", "0", "no", "off", " false "])
    def test_falsy(self, value):
        assert coerce_bool(value) is False


class TestBuildUpdateValues:
    """Pure payload-to-column translation."""

    def test_only_present_fields_plus_updated_at(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(task, {"completed": True}, now=NOW)

        assert values == {"completed": True, "updated_at": NOW}

    def test_empty_optional_text_becomes_null(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(task, {"notes": "", "dueDate": "", "owner": "Sam"}, now=NOW)

        assert values["notes"] is None
        assert values["due_date"] is None
        assert values["owner"] == "Sam"

    def test_null_required_field_is_skipped(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(task, {"text": None, "status": None}, now=NOW)

        assert values == {"updated_at": NOW}

    def test_provenance_carried_forward_for_catalog_tasks(self):
        task = ProjectTask(id="t-1", origin="success-factor", source_id="sf-3")

        values = build_update_values(task, {"completed": "true"}, now=NOW)

        assert values["origin"] == "success-factor"
        assert values["source_id"] == "sf-3"
        assert values["completed"] is True

    def test_explicit_provenance_wins(self):
        task = ProjectTask(id="t-1", origin="factor", source_id="sf-3")

        values = build_update_values(task, {"origin": "custom"}, now=NOW)

        assert values["origin"] == "custom"
        assert "source_id" not in values

    def test_custom_tasks_get_no_provenance(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(task, {"text": "New"}, now=NOW)

        assert "origin" not in values
        assert "source_id" not in values

    def test_read_only_fields_ignored(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(
            task,
            {"id": "x", "projectId": "p-2", "createdAt": "2020-01-01", "source": "factor"},
            now=NOW,
        )

        assert values == {"updated_at": NOW}

    def test_stage_lowercased_and_sort_order_defaulted(self):
        task = ProjectTask(id="t-1", origin="custom")

        values = build_update_values(task, {"stage": "Delivery", "sortOrder": ""}, now=NOW)

        assert values["stage"] == "delivery"
        assert values["sort_order"] == 0

    @pytest.mark.parametrize(
        "payload",
        [{"stage": "bogus"}, {"stage": ""}, {"origin": "imported"}, {"sortOrder": "abc"}],
    )
    def test_invalid_values_rejected(self, payload):
        task = ProjectTask(id="t-1", origin="custom")

        with pytest.raises(TaskValidationError) as exc_info:
            build_update_values(task, payload, now=NOW)

        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_numeric_string_sort_order(self):
        task = ProjectTask(id="t-1", origin="custom")

        assert build_update_values(task, {"sortOrder": "7"}, now=NOW)["sort_order"] == 7


class TestApply:
    async def test_partial_update_leaves_other_fields(self, db, applier, make_task):
        task = await make_task(id="t-1", text="Original", notes="Keep me", priority="high")

        updated = await applier.apply(_resolved(task), {"completed": True})

        assert updated.completed is True
        assert updated.text == "Original"
        assert updated.notes == "Keep me"
        assert updated.priority == "high"

    async def test_updated_at_refreshed(self, db, applier, make_task):
        task = await make_task(id="t-1")
        before = task.updated_at

        updated = await applier.apply(_resolved(task), {"text": "Changed"})

        assert updated.updated_at != before
        assert updated.text == "Changed"

    async def test_empty_string_clears_optional_field(self, db, applier, make_task):
        task = await make_task(id="t-1", notes="Old note")

        updated = await applier.apply(_resolved(task), {"notes": ""})

        assert updated.notes is None

    async def test_catalog_provenance_survives(self, db, applier, make_task):
        task = await make_task(id="t-1", origin="factor", source_id="sf-5")

        updated = await applier.apply(_resolved(task), {"completed": True, "status": "Done"})

        assert updated.origin == "factor"
        assert updated.source_id == "sf-5"
        assert updated.status == "Done"

    async def test_string_false_is_stored_as_false(self, db, applier, make_task):
        task = await make_task(id="t-1", completed=True)

        updated = await applier.apply(_resolved(task), {"completed": "false"})

        assert updated.completed is False

    async def test_vanished_row_raises_update_failed(self, db, applier, make_task):
        task = await make_task(id="t-1")
        await db.execute(delete(ProjectTask).where(ProjectTask.id == "t-1"))

        with pytest.raises(TaskUpdateFailedError) as exc_info:
            await applier.apply(_resolved(task), {"completed": True})

        assert exc_info.value.code == "UPDATE_FAILED"
