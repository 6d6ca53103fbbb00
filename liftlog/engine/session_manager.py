"""The live workout session and everything that mutates it.

One ``SessionManager`` owns at most one ``ActiveSession`` plus its two clocks.
It is created by whoever hosts the engine (the FastAPI lifespan, a test) and
handed to callers explicitly; nothing here is module-global.

Mutations are synchronous and total: an unknown exercise or set id, or no
live session at all, is a no-op rather than an error, since UI calls can race
with removals. Only starting, finishing and discarding raise.

While ``finish`` is in flight the session is frozen: mutations are no-ops
until the commit either clears the session or fails and leaves it live.
Timer calls are not affected.
"""
from __future__ import annotations

from typing import Callable

from loguru import logger

from liftlog.core.errors import (
    FinishInProgressError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
)
from liftlog.engine.commit import commit_session
from liftlog.engine.records import evaluate_set
from liftlog.engine.tasks import BackgroundTasks
from liftlog.engine.timers import ElapsedClock, RestTimer
from liftlog.schemas.session import (
    ActiveSession,
    CatalogExercise,
    PREvent,
    PreviousPerformance,
    RestTimerState,
    SessionExercise,
    SessionSet,
    SetStatus,
    SetTag,
    SetUpdate,
)
from liftlog.schemas.templates import Template, TemplateExercise
from liftlog.schemas.workouts import CommitResult
from liftlog.storage.base import WorkoutStore

RestCompleteCallback = Callable[[str | None], None]


def build_exercise_from_template(
    te: TemplateExercise,
    position: int,
    previous: PreviousPerformance | None = None,
) -> SessionExercise:
    ex = SessionExercise(
        exercise_id=te.exercise_id,
        exercise=te.exercise.model_copy(deep=True) if te.exercise else None,
        notes=te.notes,
        order=te.order if te.order is not None else position,
        previous=previous,
    )
    ex.sets = [
        SessionSet(
            exercise_id=te.exercise_id,
            set_number=idx + 1,
            tag=ts.tag or SetTag.normal,
            target_weight=ts.target_weight,
            target_reps=ts.target_reps,
            # Pre-filled so an unchanged set can be ticked off directly
            actual_weight=ts.target_weight,
            actual_reps=ts.target_reps,
        )
        for idx, ts in enumerate(te.sets)
    ]
    return ex


class SessionManager:
    def __init__(
        self,
        store: WorkoutStore,
        *,
        header_timeout: float | None = None,
        on_rest_complete: RestCompleteCallback | None = None,
        tasks: BackgroundTasks | None = None,
    ):
        self.store = store
        self.header_timeout = header_timeout
        self.on_rest_complete = on_rest_complete
        self.tasks = tasks or BackgroundTasks()

        self._session: ActiveSession | None = None
        self._elapsed = ElapsedClock()
        self._rest = RestTimer()
        self._is_finishing = False

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> ActiveSession | None:
        return self._session

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed.seconds

    @property
    def rest_timer(self) -> RestTimerState:
        return self._rest.snapshot()

    @property
    def is_finishing(self) -> bool:
        return self._is_finishing

    @property
    def is_live(self) -> bool:
        return self._session is not None

    @property
    def _editable(self) -> bool:
        # The commit works from a snapshot taken before its first write
        return self._session is not None and not self._is_finishing

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _ensure_not_live(self) -> None:
        if self._session is not None:
            raise SessionAlreadyActiveError(self._session.id)

    def _go_live(self, session: ActiveSession) -> ActiveSession:
        self._ensure_not_live()
        self._session = session
        self._elapsed.reset()
        self._rest.stop()
        logger.info(
            f"Session {session.id} started for user {session.user_id}: "
            f"{session.name!r} with {len(session.exercises)} exercises"
        )
        return session

    async def load_previous(self, exercise_id: str, user_id: str) -> PreviousPerformance | None:
        try:
            return await self.store.fetch_previous_performance(exercise_id, user_id)
        except Exception as e:
            logger.warning(f"Previous performance for exercise {exercise_id} unavailable: {e!r}")
            return None

    async def start_from_template(self, template: Template, user_id: str) -> ActiveSession:
        self._ensure_not_live()

        exercises = []
        for position, te in enumerate(template.exercises):
            previous = await self.load_previous(te.exercise_id, user_id)
            exercises.append(build_exercise_from_template(te, position, previous))

        session = ActiveSession(
            user_id=user_id,
            name=template.name,
            template_id=template.id,
            exercises=exercises,
        )
        # Re-checked: another start may have gone live while the reads were awaited
        return self._go_live(session)

    def start_empty(self, name: str, user_id: str) -> ActiveSession:
        return self._go_live(ActiveSession(user_id=user_id, name=name))

    def discard(self) -> None:
        if self._is_finishing:
            raise FinishInProgressError()
        if self._session is not None:
            logger.info(f"Session {self._session.id} discarded")
        self._session = None
        self._elapsed.reset()
        self._rest.stop()

    async def finish(self) -> CommitResult | None:
        """Commit the live session. Returns None when nothing is live.

        On a header write failure the session stays live and ``HeaderWriteError``
        propagates so the caller can offer a retry.
        """
        if self._is_finishing:
            raise FinishInProgressError()
        session = self._session
        if session is None:
            return None

        self._is_finishing = True
        try:
            result = await commit_session(
                session,
                elapsed_seconds=self._elapsed.seconds,
                store=self.store,
                tasks=self.tasks,
                header_timeout=self.header_timeout,
            )
        except Exception:
            logger.warning(f"Session {session.id} not saved; it stays live for a retry")
            raise
        finally:
            self._is_finishing = False

        self._session = None
        self._elapsed.reset()
        self._rest.stop()
        return result

    def require_session(self) -> ActiveSession:
        if self._session is None:
            raise NoActiveSessionError()
        return self._session

    # ------------------------------------------------------------------
    # Exercises
    # ------------------------------------------------------------------

    def add_exercise(
        self,
        catalog_exercise: CatalogExercise,
        *,
        previous: PreviousPerformance | None = None,
        set_count: int = 1,
        session_id: str | None = None,
    ) -> SessionExercise | None:
        """Append ``catalog_exercise`` to the live session.

        With ``session_id`` the append only happens if that session is still
        the live one, for callers that awaited something in between.
        """
        if not self._editable:
            return None
        if session_id is not None and self._session.id != session_id:
            return None
        ex = SessionExercise(
            exercise_id=catalog_exercise.id,
            exercise=catalog_exercise.model_copy(deep=True),
            order=len(self._session.exercises),
            previous=previous,
        )
        ex.sets = [
            SessionSet(exercise_id=catalog_exercise.id, set_number=n)
            for n in range(1, set_count + 1)
        ]
        self._session.exercises.append(ex)
        return ex

    def update_exercise_notes(self, exercise_id: str, notes: str) -> None:
        if not self._editable:
            return
        ex = self._session.find_exercise(exercise_id)
        if ex is not None:
            ex.notes = notes

    def remove_exercise(self, exercise_id: str) -> None:
        if not self._editable:
            return
        remaining = [ex for ex in self._session.exercises if ex.id != exercise_id]
        if len(remaining) == len(self._session.exercises):
            return
        for order, ex in enumerate(remaining):
            ex.order = order
        self._session.exercises = remaining

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    def complete_set(self, exercise_id: str, set_id: str) -> PREvent | None:
        """Mark a set completed and record a PR if it is one.

        Does not start the rest timer; that is up to the caller.
        """
        if not self._editable:
            return None
        found = self._session.find_set(exercise_id, set_id)
        if found is None:
            return None
        ex, ws = found
        if ws.is_completed:
            return None

        ws.status = SetStatus.completed
        event = evaluate_set(ex, ws)
        if event is not None:
            self._session.pr_events.append(event)
            logger.info(f"PR on exercise {ex.exercise_id}: e1RM {event.estimated_1rm:.1f}")
        return event

    def update_set(self, exercise_id: str, set_id: str, updates: SetUpdate) -> None:
        if not self._editable:
            return
        found = self._session.find_set(exercise_id, set_id)
        if found is None:
            return
        _, ws = found

        data = updates.model_dump(exclude_unset=True)
        if ws.is_completed:
            # Completed sets keep their recorded performance
            data.pop("actual_weight", None)
            data.pop("actual_reps", None)
        if data.get("tag") is None:
            data.pop("tag", None)
        for key, value in data.items():
            setattr(ws, key, value)

    def add_set(self, exercise_id: str) -> SessionSet | None:
        if not self._editable:
            return None
        ex = self._session.find_exercise(exercise_id)
        if ex is None:
            return None

        last = ex.sets[-1] if ex.sets else None
        ws = SessionSet(
            exercise_id=ex.exercise_id,
            set_number=len(ex.sets) + 1,
            target_weight=last.target_weight if last else None,
            target_reps=last.target_reps if last else None,
            actual_weight=last.actual_weight if last else None,
            actual_reps=last.actual_reps if last else None,
        )
        ex.sets.append(ws)
        return ws

    def remove_set(self, exercise_id: str, set_id: str) -> None:
        if not self._editable:
            return
        ex = self._session.find_exercise(exercise_id)
        if ex is None:
            return
        remaining = [s for s in ex.sets if s.id != set_id]
        if len(remaining) == len(ex.sets):
            return
        for number, ws in enumerate(remaining, start=1):
            ws.set_number = number
        ex.sets = remaining

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_rest_timer(self, seconds: int, exercise_id: str | None = None) -> RestTimerState:
        self._rest.start(seconds, exercise_id)
        return self._rest.snapshot()

    def extend_rest_timer(self, seconds: int = 30) -> RestTimerState:
        self._rest.extend(seconds)
        return self._rest.snapshot()

    def stop_rest_timer(self) -> RestTimerState:
        self._rest.stop()
        return self._rest.snapshot()

    def tick(self) -> None:
        """Advance both clocks by one second; no-op without a live session."""
        if self._session is None:
            return
        self._elapsed.tick()
        exercise_id = self._rest.exercise_id
        if self._rest.tick() and self.on_rest_complete is not None:
            self.on_rest_complete(exercise_id)
