from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, ForeignKey, Integer, Float, String, func
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.core.db import Base


class WorkoutTemplateSet(Base):
    __tablename__ = "template_sets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    template_exercise_id: Mapped[str] = mapped_column(
        ForeignKey("template_exercises.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    set_number: Mapped[int] = mapped_column(Integer, nullable=False)
    target_reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tag: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
