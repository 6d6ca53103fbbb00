"""Commit protocol: write a finished session to storage.

Only the workout header write is fatal. Exercise rows, their set batches and
the template "last used" bump are best effort: a failure there loses that
piece of history but never the workout itself. The per-exercise outcome is
reported in ``CommitResult`` instead of being raised.
"""
from __future__ import annotations

import asyncio
from datetime import datetime

from loguru import logger

from liftlog.core.errors import HeaderWriteError, HeaderWriteTimeoutError
from liftlog.engine.scoring import set_volume
from liftlog.engine.tasks import BackgroundTasks, TaskPolicy
from liftlog.schemas.session import ActiveSession, SessionExercise, utcnow
from liftlog.schemas.workouts import (
    CommitResult,
    ExerciseOutcome,
    ExerciseOutcomeStatus,
    WorkoutExerciseRecord,
    WorkoutRecord,
    WorkoutSetRecord,
)
from liftlog.storage.base import WorkoutStore


def completed_exercises(session: ActiveSession) -> list[SessionExercise]:
    return [ex for ex in session.exercises if ex.completed_sets()]


def total_volume(exercises: list[SessionExercise]) -> float:
    return float(
        sum(
            set_volume(s.actual_weight, s.actual_reps)
            for ex in exercises
            for s in ex.completed_sets()
        )
    )


def build_workout_record(
    session: ActiveSession,
    *,
    finished_at: datetime,
    elapsed_seconds: int,
    volume: float,
) -> WorkoutRecord:
    return WorkoutRecord(
        id=session.id,
        user_id=session.user_id,
        name=session.name,
        template_id=session.template_id,
        started_at=session.started_at,
        finished_at=finished_at,
        duration_seconds=elapsed_seconds,
        total_volume_kg=volume,
    )


async def _write_header(store: WorkoutStore, record: WorkoutRecord, timeout: float | None) -> str:
    try:
        return await asyncio.wait_for(store.insert_workout(record), timeout=timeout)
    except Exception as e:
        # Only our own deadline is a timeout; a store's TimeoutError is an ordinary failure
        if timeout is not None and isinstance(e, asyncio.TimeoutError):
            raise HeaderWriteTimeoutError(record.id, timeout) from e
        raise HeaderWriteError(record.id, str(e) or type(e).__name__) from e


async def _write_exercise(store: WorkoutStore, workout_id: str, ex: SessionExercise) -> ExerciseOutcome:
    try:
        workout_exercise_id = await store.insert_workout_exercise(
            WorkoutExerciseRecord(
                id=ex.id,
                workout_id=workout_id,
                exercise_id=ex.exercise_id,
                notes=ex.notes,
                order=ex.order,
            )
        )
    except Exception as e:
        # Its sets reference this row, so they are skipped too
        logger.warning(f"Workout {workout_id}: exercise {ex.id} not saved, skipping its sets: {e!r}")
        return ExerciseOutcome(exercise_id=ex.id, status=ExerciseOutcomeStatus.exercise_failed)

    sets = [
        WorkoutSetRecord(
            id=s.id,
            workout_exercise_id=workout_exercise_id,
            set_number=s.set_number or idx + 1,
            tag=s.tag,
            actual_weight=s.actual_weight,
            actual_reps=s.actual_reps,
            rpe=s.rpe,
        )
        for idx, s in enumerate(ex.completed_sets())
    ]
    try:
        await store.insert_workout_sets(sets)
    except Exception as e:
        logger.warning(f"Workout {workout_id}: {len(sets)} sets of exercise {ex.id} not saved: {e!r}")
        return ExerciseOutcome(exercise_id=ex.id, status=ExerciseOutcomeStatus.sets_failed)

    return ExerciseOutcome(exercise_id=ex.id, status=ExerciseOutcomeStatus.saved, sets_saved=len(sets))


async def commit_session(
    session: ActiveSession,
    *,
    elapsed_seconds: int,
    store: WorkoutStore,
    tasks: BackgroundTasks,
    header_timeout: float | None = None,
) -> CommitResult:
    """Run the ordered writes for ``session``; raises ``HeaderWriteError`` only."""
    finished_at = utcnow()
    exercises = completed_exercises(session)
    volume = total_volume(exercises)

    record = build_workout_record(
        session,
        finished_at=finished_at,
        elapsed_seconds=elapsed_seconds,
        volume=volume,
    )
    workout_id = await _write_header(store, record, header_timeout)

    outcomes = []
    for ex in exercises:
        outcomes.append(await _write_exercise(store, workout_id, ex))

    if session.template_id:
        tasks.spawn(
            store.touch_template(session.template_id, finished_at),
            name=f"touch-template-{session.template_id}",
            policy=TaskPolicy.IGNORE_FAILURE,
        )

    result = CommitResult(
        workout_id=workout_id,
        finished_at=finished_at,
        duration_seconds=elapsed_seconds,
        total_volume_kg=volume,
        outcomes=outcomes,
        pr_events=list(session.pr_events),
    )
    logger.info(
        f"Workout {workout_id} saved: {result.saved_count}/{len(outcomes)} exercises, "
        f"volume={volume:g}kg, duration={elapsed_seconds}s"
    )
    return result
