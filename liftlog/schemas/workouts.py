from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from liftlog.schemas.session import ActiveSession, CatalogExercise, PREvent, RestTimerState, SetTag


# --- Records written by the commit protocol ---

class WorkoutRecord(BaseModel):
    id: str
    user_id: str
    name: str
    template_id: str | None = None
    started_at: datetime
    finished_at: datetime
    duration_seconds: int
    total_volume_kg: float


class WorkoutExerciseRecord(BaseModel):
    id: str
    workout_id: str
    exercise_id: str
    notes: str | None = None
    order: int = 0


class WorkoutSetRecord(BaseModel):
    id: str
    workout_exercise_id: str
    set_number: int
    tag: SetTag = SetTag.normal
    actual_weight: float | None = None
    actual_reps: int | None = None
    rpe: float | None = None


class ExerciseOutcomeStatus(str, Enum):
    saved = "saved"
    exercise_failed = "exercise_failed"
    sets_failed = "sets_failed"


class ExerciseOutcome(BaseModel):
    exercise_id: str
    status: ExerciseOutcomeStatus
    sets_saved: int = 0


class CommitResult(BaseModel):
    workout_id: str
    finished_at: datetime
    duration_seconds: int
    total_volume_kg: float
    outcomes: list[ExerciseOutcome] = Field(default_factory=list)
    pr_events: list[PREvent] = Field(default_factory=list)

    @property
    def saved_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == ExerciseOutcomeStatus.saved)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.saved_count


class WorkoutSummary(BaseModel):
    id: str
    name: str
    template_id: str | None = None
    started_at: datetime
    finished_at: datetime
    duration_seconds: int
    total_volume_kg: float

    model_config = {"from_attributes": True}


class WorkoutSetOut(BaseModel):
    id: str
    set_number: int
    tag: SetTag = SetTag.normal
    actual_weight: float | None = None
    actual_reps: int | None = None
    rpe: float | None = None


class WorkoutExerciseOut(BaseModel):
    id: str
    exercise_id: str
    exercise: CatalogExercise | None = None
    notes: str | None = None
    order: int = 0
    sets: list[WorkoutSetOut] = Field(default_factory=list)


class WorkoutDetail(WorkoutSummary):
    """A committed workout read back with its exercises and sets."""

    exercises: list[WorkoutExerciseOut] = Field(default_factory=list)


# --- HTTP payloads ---

class StartSessionIn(BaseModel):
    name: str = "Workout"


class AddExerciseIn(BaseModel):
    exercise_id: str
    sets: int = Field(default=1, ge=0, le=20)


class UpdateNotesIn(BaseModel):
    notes: str


class StartRestIn(BaseModel):
    seconds: int
    exercise_id: str | None = None


class SessionStateOut(BaseModel):
    session: ActiveSession | None
    elapsed_seconds: int
    rest_timer: RestTimerState
    is_finishing: bool


class CompleteSetOut(BaseModel):
    completed: bool
    is_pr: bool
    pr_event: PREvent | None = None
    rest_timer: RestTimerState


class PlateCountOut(BaseModel):
    weight: float
    count: int


class PlatesOut(BaseModel):
    total: float
    bar: float
    per_side: list[PlateCountOut]
    remainder: float
