from __future__ import annotations

from datetime import datetime
from sqlalchemy import JSON, Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.core.db import Base


class Exercise(Base):
    """Catalog entry; read-only lookup data for a live session."""

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    primary_muscles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    secondary_muscles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    equipment: Mapped[str] = mapped_column(String(30), nullable=False, default="other")

    # Custom exercises belong to a user; built-ins have no owner
    is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
