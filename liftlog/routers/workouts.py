from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from liftlog.core.config import Settings
from liftlog.core.deps import (
    get_current_user_id,
    get_manager,
    get_owned_session,
    get_settings,
    get_workout_store,
)
from liftlog.core.errors import (
    FinishInProgressError,
    HeaderWriteError,
    SessionAlreadyActiveError,
)
from liftlog.engine.scoring import calculate_plates
from liftlog.engine.session_manager import SessionManager
from liftlog.schemas.session import (
    ActiveSession,
    CatalogExercise,
    RestTimerState,
    SessionExercise,
    SessionSet,
    SetUpdate,
)
from liftlog.schemas.templates import CreateExerciseIn, CreateTemplateIn, Template
from liftlog.schemas.workouts import (
    AddExerciseIn,
    CommitResult,
    CompleteSetOut,
    PlateCountOut,
    PlatesOut,
    SessionStateOut,
    StartRestIn,
    StartSessionIn,
    UpdateNotesIn,
    WorkoutDetail,
    WorkoutSummary,
)
from liftlog.storage.workouts import SqlAlchemyWorkoutStore


router = APIRouter(prefix="/workouts", tags=["workouts"])


def _already_active(e: SessionAlreadyActiveError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# --- Live session ---

@router.get("/session", response_model=SessionStateOut)
async def get_session_state(
    user_id: str = Depends(get_current_user_id),
    manager: SessionManager = Depends(get_manager),
):
    session = manager.active_session
    if session is not None and session.user_id != user_id:
        session = None
    return SessionStateOut(
        session=session,
        elapsed_seconds=manager.elapsed_seconds if session else 0,
        rest_timer=manager.rest_timer if session else RestTimerState(),
        is_finishing=manager.is_finishing if session else False,
    )


@router.post("/session/start", response_model=ActiveSession, status_code=201)
async def start_session(
    payload: StartSessionIn,
    user_id: str = Depends(get_current_user_id),
    manager: SessionManager = Depends(get_manager),
):
    try:
        return manager.start_empty(payload.name, user_id)
    except SessionAlreadyActiveError as e:
        raise _already_active(e)


@router.post("/templates/{template_id}/start", response_model=ActiveSession, status_code=201)
async def start_session_from_template(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: SessionManager = Depends(get_manager),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    if manager.is_live:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Active session already exists")

    template = await store.get_template(template_id, user_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    try:
        return await manager.start_from_template(template, user_id)
    except SessionAlreadyActiveError as e:
        raise _already_active(e)


@router.post("/session/finish", response_model=CommitResult)
async def finish_session(
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    try:
        return await manager.finish()
    except FinishInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except HeaderWriteError as e:
        logger.error(f"Finish failed for session {session.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to save workout. Please try again.",
        )


@router.post("/session/discard")
async def discard_session(
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    try:
        manager.discard()
    except FinishInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return {"discarded": True, "session_id": session.id}


# --- Exercises in the live session ---

@router.post("/session/exercises", response_model=SessionExercise, status_code=201)
async def add_exercise_to_session(
    payload: AddExerciseIn,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    catalog = await store.get_catalog_exercise(payload.exercise_id)
    if not catalog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exercise not found")

    previous = await manager.load_previous(catalog.id, session.user_id)
    ex = manager.add_exercise(catalog, previous=previous, set_count=payload.sets, session_id=session.id)
    if ex is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is no longer editable")
    return ex


@router.patch("/session/exercises/{exercise_id}/notes")
async def update_exercise_notes(
    exercise_id: str,
    payload: UpdateNotesIn,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    manager.update_exercise_notes(exercise_id, payload.notes)
    return {"updated": session.find_exercise(exercise_id) is not None, "exercise_id": exercise_id}


@router.delete("/session/exercises/{exercise_id}")
async def delete_exercise(
    exercise_id: str,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    existed = session.find_exercise(exercise_id) is not None
    manager.remove_exercise(exercise_id)
    return {"deleted": existed, "exercise_id": exercise_id}


# --- Sets ---

@router.post("/session/exercises/{exercise_id}/sets")
async def add_set_to_exercise(
    exercise_id: str,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    ws = manager.add_set(exercise_id)
    if ws is None:
        return {"created": False, "detail": "Exercise not found"}
    return {"created": True, "set": ws}


@router.patch("/session/exercises/{exercise_id}/sets/{set_id}")
async def update_set(
    exercise_id: str,
    set_id: str,
    payload: SetUpdate,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    manager.update_set(exercise_id, set_id, payload)
    found = session.find_set(exercise_id, set_id)
    if not found:
        return {"updated": False, "detail": "Set not found"}
    return {"updated": True, "set": found[1]}


@router.delete("/session/exercises/{exercise_id}/sets/{set_id}")
async def delete_set(
    exercise_id: str,
    set_id: str,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    existed = session.find_set(exercise_id, set_id) is not None
    manager.remove_set(exercise_id, set_id)
    return {"deleted": existed, "set_id": set_id}


def rest_seconds_for(ws: SessionSet, settings: Settings) -> int:
    return settings.DEFAULT_REST_SECONDS if ws.actual_weight else settings.BODYWEIGHT_REST_SECONDS


@router.post("/session/exercises/{exercise_id}/sets/{set_id}/complete", response_model=CompleteSetOut)
async def complete_set(
    exercise_id: str,
    set_id: str,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
    settings: Settings = Depends(get_settings),
):
    if manager.is_finishing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The workout is being saved")
    found = session.find_set(exercise_id, set_id)
    if not found or found[1].is_completed:
        return CompleteSetOut(completed=False, is_pr=False, rest_timer=manager.rest_timer)
    _, ws = found

    event = manager.complete_set(exercise_id, set_id)
    # Completing a set kicks off the rest countdown for that exercise
    rest = manager.start_rest_timer(rest_seconds_for(ws, settings), exercise_id)
    return CompleteSetOut(completed=True, is_pr=event is not None, pr_event=event, rest_timer=rest)


# --- Rest timer ---

@router.post("/session/rest", response_model=RestTimerState)
async def start_rest(
    payload: StartRestIn,
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    return manager.start_rest_timer(payload.seconds, payload.exercise_id)


@router.post("/session/rest/extend", response_model=RestTimerState)
async def extend_rest(
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
    settings: Settings = Depends(get_settings),
):
    return manager.extend_rest_timer(settings.REST_EXTENSION_SECONDS)


@router.delete("/session/rest", response_model=RestTimerState)
async def stop_rest(
    session: ActiveSession = Depends(get_owned_session),
    manager: SessionManager = Depends(get_manager),
):
    return manager.stop_rest_timer()


# --- Templates & catalog ---

@router.get("/templates", response_model=list[Template])
async def list_templates(
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    return await store.list_templates(user_id)


@router.post("/templates", response_model=Template, status_code=201)
async def create_template(
    payload: CreateTemplateIn,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    return await store.create_template(user_id, payload)


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    if not await store.delete_template(template_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return {"deleted": True, "template_id": template_id}


@router.post("/templates/{template_id}/duplicate", response_model=Template, status_code=201)
async def duplicate_template(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    template = await store.duplicate_template(template_id, user_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


@router.get("/exercises", response_model=list[CatalogExercise])
async def list_exercises(
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    return await store.list_catalog_exercises(user_id)


@router.post("/exercises", response_model=CatalogExercise, status_code=201)
async def create_exercise(
    payload: CreateExerciseIn,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    return await store.create_catalog_exercise(user_id, payload)


# --- History & tools ---

@router.get("/history", response_model=list[WorkoutSummary])
async def workout_history(
    limit: int = 20,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    return await store.list_workouts(user_id, limit=limit, offset=offset)


@router.get("/history/{workout_id}", response_model=WorkoutDetail)
async def workout_detail(
    workout_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    workout = await store.get_workout(workout_id, user_id)
    if not workout:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout not found")
    return workout


@router.delete("/history/{workout_id}")
async def delete_workout(
    workout_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyWorkoutStore = Depends(get_workout_store),
):
    if not await store.delete_workout(workout_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout not found")
    return {"deleted": True, "workout_id": workout_id}


@router.get("/plates", response_model=PlatesOut)
async def plates(
    total: float,
    bar: float | None = None,
    settings: Settings = Depends(get_settings),
):
    bar = settings.BAR_WEIGHT_KG if bar is None else bar
    breakdown = calculate_plates(total, bar)
    return PlatesOut(
        total=total,
        bar=bar,
        per_side=[PlateCountOut(weight=p.weight, count=p.count) for p in breakdown.per_side],
        remainder=breakdown.remainder,
    )
