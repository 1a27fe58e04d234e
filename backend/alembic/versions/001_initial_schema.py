"""Initial schema with projects, project tasks and the success factor catalog.

Revision ID: 001
Revises:
Create Date: 2025-06-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Create projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sector", sa.String(100), nullable=True),
        sa.Column("org_type", sa.String(100), nullable=True),
        sa.Column("team_size", sa.String(100), nullable=True),
        sa.Column("current_stage", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create success_factors table
    op.create_table(
        "success_factors",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create success_factor_tasks table
    op.create_table(
        "success_factor_tasks",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("factor_id", sa.String(255), nullable=False),
        sa.Column("stage", sa.String(50), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["factor_id"], ["success_factors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_success_factor_tasks_factor_id", "success_factor_tasks", ["factor_id"]
    )

    # Create project_tasks table
    op.create_table(
        "project_tasks",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("project_id", sa.String(255), nullable=False),
        sa.Column("text", sa.Text(), nullable=False, server_default=""),
        sa.Column("stage", sa.String(50), nullable=False, server_default="identification"),
        sa.Column("origin", sa.String(50), nullable=False, server_default="custom"),
        sa.Column("source_id", sa.String(255), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(50), nullable=False, server_default="To Do"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("priority", sa.String(50), nullable=True),
        sa.Column("due_date", sa.String(50), nullable=True),
        sa.Column("owner", sa.String(255), nullable=True),
        sa.Column("task_type", sa.String(50), nullable=True),
        sa.Column("factor_id", sa.String(255), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assigned_to", sa.String(255), nullable=True),
        sa.Column("task_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_tasks_project_id", "project_tasks", ["project_id"])
    op.create_index(
        "ix_project_tasks_project_source", "project_tasks", ["project_id", "source_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_project_tasks_project_source", table_name="project_tasks")
    op.drop_index("ix_project_tasks_project_id", table_name="project_tasks")
    op.drop_table("project_tasks")
    op.drop_index("ix_success_factor_tasks_factor_id", table_name="success_factor_tasks")
    op.drop_table("success_factor_tasks")
    op.drop_table("success_factors")
    op.drop_table("projects")
