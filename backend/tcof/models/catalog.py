"""Success factor catalog models (canonical checklist templates)."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcof.db.base import BaseModel


class SuccessFactor(BaseModel):
    """Canonical success factor with a stable id, independent of any project."""

    __tablename__ = "success_factors"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    tasks: Mapped[list["SuccessFactorTask"]] = relationship(
        "SuccessFactorTask",
        back_populates="factor",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="SuccessFactorTask.position",
    )

    def __repr__(self) -> str:
        return f"<SuccessFactor {self.id} {self.title}>"


class SuccessFactorTask(BaseModel):
    """Template task text for one stage of a success factor."""

    __tablename__ = "success_factor_tasks"

    factor_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("success_factors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    # Ordering within the stage
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    factor: Mapped["SuccessFactor"] = relationship("SuccessFactor", back_populates="tasks")

    def __repr__(self) -> str:
        return f"<SuccessFactorTask factor={self.factor_id} stage={self.stage}>"
