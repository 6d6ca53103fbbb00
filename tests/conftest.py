import asyncio

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from liftlog.core.config import Settings
from liftlog.core.db import create_engine, create_sessionmaker, init_models
from liftlog.engine.session_manager import SessionManager
from liftlog.main import create_app
from liftlog.schemas.session import CatalogExercise, PreviousPerformance
from liftlog.schemas.templates import Template, TemplateExercise, TemplateSet
from liftlog.storage.workouts import SqlAlchemyWorkoutStore


class FakeWorkoutStore:
    """In-memory WorkoutStore with switchable failures."""

    def __init__(self):
        self.workouts = []
        self.exercises = []
        self.sets = []
        self.touched = []
        self.previous: dict[str, PreviousPerformance] = {}
        self.calls = []

        self.header_error: Exception | None = None
        self.header_delay = 0.0
        self.failing_exercises: set[str] = set()
        self.failing_set_batches: set[str] = set()
        self.fail_touch = False
        self.fail_previous = False
        # When set, history reads block until the event fires
        self.previous_gate: asyncio.Event | None = None
        self.catalog: dict[str, CatalogExercise] = {}

    async def insert_workout(self, record):
        self.calls.append(("workout", record.id))
        await asyncio.sleep(self.header_delay)
        if self.header_error is not None:
            raise self.header_error
        self.workouts.append(record)
        return record.id

    async def insert_workout_exercise(self, record):
        self.calls.append(("exercise", record.id))
        await asyncio.sleep(0)
        if record.id in self.failing_exercises:
            raise RuntimeError(f"exercise {record.id} rejected")
        self.exercises.append(record)
        return record.id

    async def insert_workout_sets(self, records):
        exercise_id = records[0].workout_exercise_id if records else None
        self.calls.append(("sets", exercise_id))
        await asyncio.sleep(0)
        if exercise_id in self.failing_set_batches:
            raise RuntimeError("batch rejected")
        self.sets.extend(records)

    async def touch_template(self, template_id, last_used_at):
        await asyncio.sleep(0)
        if self.fail_touch:
            raise RuntimeError("template update failed")
        self.touched.append((template_id, last_used_at))

    async def fetch_previous_performance(self, exercise_id, user_id):
        if self.previous_gate is not None:
            await self.previous_gate.wait()
        if self.fail_previous:
            raise RuntimeError("history unavailable")
        return self.previous.get(exercise_id)

    async def get_catalog_exercise(self, exercise_id):
        return self.catalog.get(exercise_id)


class FakeMealStore:
    def __init__(self):
        self.meals = {}
        self.fail_writes = False

    async def insert_meal(self, meal):
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RuntimeError("insert failed")
        self.meals[meal.id] = meal

    async def delete_meal(self, meal_id, user_id):
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RuntimeError("delete failed")
        meal = self.meals.get(meal_id)
        if meal is None or meal.user_id != user_id:
            return False
        del self.meals[meal_id]
        return True

    async def list_meals(self, user_id, day):
        return [m for m in self.meals.values() if m.user_id == user_id and m.date == day]


@pytest.fixture
def store():
    return FakeWorkoutStore()


@pytest.fixture
def manager(store):
    return SessionManager(store)


@pytest.fixture
def squat():
    return CatalogExercise(name="Back Squat", primary_muscles=["quads", "glutes"], equipment="barbell")


@pytest.fixture
def bench():
    return CatalogExercise(name="Bench Press", primary_muscles=["chest"], equipment="barbell")


@pytest.fixture
def push_template(squat, bench):
    return Template(
        user_id="user-1",
        name="Push A",
        exercises=[
            TemplateExercise(
                exercise_id=bench.id,
                exercise=bench,
                order=0,
                sets=[
                    TemplateSet(target_weight=60, target_reps=8, tag="warmup"),
                    TemplateSet(target_weight=80, target_reps=5),
                ],
            ),
            TemplateExercise(
                exercise_id=squat.id,
                exercise=squat,
                order=1,
                sets=[TemplateSet(target_weight=100, target_reps=5)],
            ),
        ],
    )


@pytest_asyncio.fixture
async def sql_store():
    engine = create_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield SqlAlchemyWorkoutStore(create_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
def client():
    settings = Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        TICKER_ENABLED=False,
        LOG_LEVEL="WARNING",
    )
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def headers():
    return {"X-User-Id": "user-1"}


@pytest.fixture
def meal_store():
    return FakeMealStore()
