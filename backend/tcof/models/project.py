"""Project and ProjectTask models for success factor checklists."""

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcof.db.base import BaseModel

# Delivery stages a checklist task can belong to
TASK_STAGES = ("identification", "definition", "delivery", "closure")

# Provenance tags; anything other than "custom" references a catalog entry
TASK_ORIGINS = ("custom", "factor", "success-factor", "heuristic", "policy", "framework")

# Origins that denote tasks materialized from the success factor catalog
CATALOG_ORIGINS = ("factor", "success-factor")

DEFAULT_STAGE = "identification"
DEFAULT_ORIGIN = "custom"


class Project(BaseModel):
    """A project whose delivery is tracked against the success factor checklist."""

    __tablename__ = "projects"

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Profile
    sector: Mapped[str | None] = mapped_column(String(100), nullable=True)
    org_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    team_size: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_stage: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Relationships
    tasks: Mapped[list["ProjectTask"]] = relationship(
        "ProjectTask",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class ProjectTask(BaseModel):
    """Checklist task within a project, either custom or catalog-derived."""

    __tablename__ = "project_tasks"
    __table_args__ = (
        Index("ix_project_tasks_project_source", "project_id", "source_id"),
    )

    project_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Basic info
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    stage: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_STAGE
    )  # identification, definition, delivery, closure

    # Provenance
    origin: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_ORIGIN
    )  # custom, factor, success-factor, heuristic, policy, framework
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Progress
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="To Do")

    # Optional details
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str | None] = mapped_column(String(50), nullable=True)
    due_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    owner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    task_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    factor_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    task_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Ordering within a stage
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="tasks")

    @property
    def is_catalog_derived(self) -> bool:
        """Check if this task was materialized from a success factor."""
        return self.origin in CATALOG_ORIGINS

    def __repr__(self) -> str:
        return f"<ProjectTask {self.id} project={self.project_id} origin={self.origin}>"
