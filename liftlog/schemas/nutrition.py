from datetime import date, datetime
from pydantic import BaseModel, Field

from liftlog.schemas.session import new_id, utcnow

MEAL_TYPE_PATTERN = "^(breakfast|lunch|dinner|snack|pre_workout|post_workout)$"


class MacroTotals(BaseModel):
    kcal: float = 0
    protein_g: float = 0
    carbs_g: float = 0
    fat_g: float = 0


class MealItemIn(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    grams: float = Field(default=0, ge=0)
    kcal: float = Field(default=0, ge=0)
    protein_g: float = Field(default=0, ge=0)
    carbs_g: float = Field(default=0, ge=0)
    fat_g: float = Field(default=0, ge=0)
    source: str = Field(default="manual", pattern="^(manual|estimated)$")


class MealCreate(BaseModel):
    name: str
    date: date
    meal_type: str | None = Field(default=None, pattern=MEAL_TYPE_PATTERN)
    eaten_at: datetime = Field(default_factory=utcnow)
    is_ai_estimated: bool = False
    items: list[MealItemIn] = Field(default_factory=list)


class MealOut(BaseModel):
    id: str
    user_id: str
    name: str
    date: date
    meal_type: str | None = None
    eaten_at: datetime
    is_ai_estimated: bool = False
    items: list[MealItemIn] = Field(default_factory=list)
    totals: MacroTotals = Field(default_factory=MacroTotals)


class DayTotals(BaseModel):
    date: date
    totals: MacroTotals
    meals: list[MealOut]
