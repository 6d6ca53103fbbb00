import datetime as dt

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.core.db import Base


class Meal(Base):
    __tablename__ = "meals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    date: Mapped[dt.date] = mapped_column(Date, index=True, nullable=False)
    eaten_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    meal_type: Mapped[str | None] = mapped_column(String(20), nullable=True)  # breakfast/lunch/dinner/snack/...
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_ai_estimated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class MealItem(Base):
    __tablename__ = "meal_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    meal_id: Mapped[str] = mapped_column(ForeignKey("meals.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    grams: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    kcal: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    protein_g: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs_g: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat_g: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
