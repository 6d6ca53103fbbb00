from fastapi import Depends, Header, HTTPException, Request, status

from liftlog.core.config import Settings
from liftlog.engine.session_manager import SessionManager
from liftlog.nutrition.meal_log import MealLog
from liftlog.schemas.session import ActiveSession
from liftlog.storage.meals import SqlAlchemyMealStore
from liftlog.storage.workouts import SqlAlchemyWorkoutStore


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # Identity is issued elsewhere; this layer only needs the opaque user token
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return x_user_id.strip()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


def get_workout_store(request: Request) -> SqlAlchemyWorkoutStore:
    return request.app.state.workout_store


def get_owned_session(
    user_id: str = Depends(get_current_user_id),
    manager: SessionManager = Depends(get_manager),
) -> ActiveSession:
    session = manager.active_session
    if session is None or session.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active session")
    return session


def get_meal_log(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> MealLog:
    # Per request: the store is the source of truth, nothing is kept between calls
    store: SqlAlchemyMealStore = request.app.state.meal_store
    return MealLog(store, user_id)
