from __future__ import annotations

from liftlog.engine.scoring import estimate_1rm
from liftlog.schemas.session import PREvent, PreviousPerformance, SessionExercise, SessionSet


def previous_estimate(previous: PreviousPerformance | None, index: int) -> float:
    """e1RM of the previous session's set at the same position, 0 if none."""
    if previous is None or index < 0 or index >= len(previous.sets):
        return 0.0
    prev = previous.sets[index]
    return estimate_1rm(prev.weight, prev.reps)


def is_personal_record(current: float, previous: float) -> bool:
    return current > 0 and current > previous


def evaluate_set(exercise: SessionExercise, ws: SessionSet) -> PREvent | None:
    """PR check for a completed set against the positionally matching previous set."""
    if not ws.is_completed:
        return None
    index = next((i for i, s in enumerate(exercise.sets) if s.id == ws.id), None)
    if index is None:
        return None

    current = estimate_1rm(ws.actual_weight, ws.actual_reps)
    if not is_personal_record(current, previous_estimate(exercise.previous, index)):
        return None
    return PREvent(exercise_id=exercise.id, set_id=ws.id, estimated_1rm=current)
