from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from liftlog.schemas.session import CatalogExercise, SetTag, new_id


class TemplateSet(BaseModel):
    id: str = Field(default_factory=new_id)
    set_number: int | None = None
    target_reps: int | None = None
    target_weight: float | None = None
    rest_seconds: int | None = None
    tag: SetTag | None = None


class TemplateExercise(BaseModel):
    id: str = Field(default_factory=new_id)
    exercise_id: str
    exercise: CatalogExercise | None = None
    order: int | None = None
    notes: str | None = None
    sets: list[TemplateSet] = Field(default_factory=list)


class Template(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    description: str | None = None
    estimated_duration_minutes: int | None = None
    last_used_at: datetime | None = None
    exercises: list[TemplateExercise] = Field(default_factory=list)


class CreateTemplateIn(BaseModel):
    name: str
    description: str | None = None
    estimated_duration_minutes: int | None = None
    exercises: list[TemplateExercise] = Field(default_factory=list)


class CreateExerciseIn(BaseModel):
    name: str
    primary_muscles: list[str] = Field(default_factory=list)
    secondary_muscles: list[str] = Field(default_factory=list)
    equipment: str = "other"
