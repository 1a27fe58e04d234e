"""Pydantic schemas shared between the task services and the API layer."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exposing snake_case attributes under camelCase names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TaskView(CamelModel):
    """Caller-facing representation of a project task.

    Optional text fields are reported as empty strings rather than null, and
    ``source`` repeats the origin in its normalized form so clients can filter
    on a single value.
    """

    id: str
    project_id: str
    text: str
    stage: str
    origin: str
    source: str
    source_id: str
    completed: bool
    notes: str
    priority: str
    due_date: str
    owner: str
    status: str
    created_at: str
    updated_at: str
    task_type: str
    factor_id: str
    sort_order: int
    assigned_to: str
    task_notes: str
