from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from liftlog.schemas.nutrition import MealOut
from liftlog.schemas.session import CatalogExercise, PreviousPerformance
from liftlog.schemas.templates import CreateExerciseIn, CreateTemplateIn, Template
from liftlog.schemas.workouts import (
    WorkoutDetail,
    WorkoutExerciseRecord,
    WorkoutRecord,
    WorkoutSetRecord,
    WorkoutSummary,
)


class WorkoutStore(Protocol):
    """Durable storage the session engine talks to.

    Writes raise on failure; the engine decides which failures are fatal.
    """

    async def insert_workout(self, record: WorkoutRecord) -> str: ...

    async def insert_workout_exercise(self, record: WorkoutExerciseRecord) -> str: ...

    async def insert_workout_sets(self, records: list[WorkoutSetRecord]) -> None: ...

    async def touch_template(self, template_id: str, last_used_at: datetime) -> None: ...

    async def fetch_previous_performance(
        self, exercise_id: str, user_id: str
    ) -> PreviousPerformance | None: ...


class CatalogStore(Protocol):
    async def get_template(self, template_id: str, user_id: str) -> Template | None: ...

    async def list_templates(self, user_id: str) -> list[Template]: ...

    async def create_template(self, user_id: str, payload: CreateTemplateIn) -> Template: ...

    async def delete_template(self, template_id: str, user_id: str) -> bool: ...

    async def duplicate_template(self, template_id: str, user_id: str) -> Template | None: ...

    async def get_catalog_exercise(self, exercise_id: str) -> CatalogExercise | None: ...

    async def list_catalog_exercises(self, user_id: str) -> list[CatalogExercise]: ...

    async def create_catalog_exercise(self, user_id: str, payload: CreateExerciseIn) -> CatalogExercise: ...

    async def list_workouts(self, user_id: str, *, limit: int = 20, offset: int = 0) -> list[WorkoutSummary]: ...

    async def get_workout(self, workout_id: str, user_id: str) -> WorkoutDetail | None: ...

    async def delete_workout(self, workout_id: str, user_id: str) -> bool: ...


class MealStore(Protocol):
    async def insert_meal(self, meal: MealOut) -> None: ...

    async def delete_meal(self, meal_id: str, user_id: str) -> bool: ...

    async def list_meals(self, user_id: str, day: date) -> list[MealOut]: ...
