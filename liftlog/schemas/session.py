from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SetTag(str, Enum):
    warmup = "warmup"
    working = "working"
    failure = "failure"
    drop = "drop"
    normal = "normal"


class SetStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    skipped = "skipped"


class CatalogExercise(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    primary_muscles: list[str] = Field(default_factory=list)
    secondary_muscles: list[str] = Field(default_factory=list)
    equipment: str = "other"

    model_config = {"from_attributes": True}


class PreviousSet(BaseModel):
    weight: float | None = None
    reps: int | None = None


class PreviousPerformance(BaseModel):
    """Snapshot of the last finished session's sets for one catalog exercise."""

    workout_id: str | None = None
    finished_at: datetime | None = None
    sets: list[PreviousSet] = Field(default_factory=list)


class SessionSet(BaseModel):
    id: str = Field(default_factory=new_id)
    exercise_id: str
    set_number: int
    tag: SetTag = SetTag.normal
    target_weight: float | None = None
    target_reps: int | None = None
    actual_weight: float | None = None
    actual_reps: int | None = None
    rpe: float | None = None
    status: SetStatus = SetStatus.pending

    @property
    def is_completed(self) -> bool:
        return self.status == SetStatus.completed


class SessionExercise(BaseModel):
    id: str = Field(default_factory=new_id)
    exercise_id: str
    exercise: CatalogExercise | None = None
    notes: str | None = None
    order: int = 0
    sets: list[SessionSet] = Field(default_factory=list)
    previous: PreviousPerformance | None = None

    def completed_sets(self) -> list[SessionSet]:
        return [s for s in self.sets if s.is_completed]


class PREvent(BaseModel):
    exercise_id: str
    set_id: str
    estimated_1rm: float


class ActiveSession(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    template_id: str | None = None
    started_at: datetime = Field(default_factory=utcnow)
    exercises: list[SessionExercise] = Field(default_factory=list)
    pr_events: list[PREvent] = Field(default_factory=list)

    def find_exercise(self, exercise_id: str) -> SessionExercise | None:
        return next((ex for ex in self.exercises if ex.id == exercise_id), None)

    def find_set(self, exercise_id: str, set_id: str) -> tuple[SessionExercise, SessionSet] | None:
        ex = self.find_exercise(exercise_id)
        if ex is None:
            return None
        ws = next((s for s in ex.sets if s.id == set_id), None)
        if ws is None:
            return None
        return ex, ws


class SetUpdate(BaseModel):
    """Partial set fields; only explicitly provided ones are merged."""

    actual_weight: float | None = None
    actual_reps: int | None = None
    tag: SetTag | None = None
    rpe: float | None = None


class RestTimerState(BaseModel):
    is_running: bool = False
    remaining: int = 0
    total: int = 0
    exercise_id: str | None = None
