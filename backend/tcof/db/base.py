"""SQLAlchemy Base class and common model mixins."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time used for Python-side timestamp defaults."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new string UUID primary key."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # Automatically generate __tablename__ from class name
    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate table name from class name (CamelCase to snake_case)."""
        name = cls.__name__
        return "".join(
            ["_" + c.lower() if c.isupper() else c for c in name]
        ).lstrip("_") + "s"


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class UUIDMixin:
    """Mixin for string primary keys, UUID-valued unless assigned explicitly.

    Task ids are not guaranteed to be UUIDs (catalog-derived tasks may take
    the catalog id), so keys are stored as plain strings.
    """

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        default=new_id,
    )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """Base model with string UUID primary key and timestamps."""

    __abstract__ = True
