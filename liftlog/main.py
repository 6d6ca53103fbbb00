import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from liftlog.core.config import Settings, get_settings
from liftlog.core.db import create_engine, create_sessionmaker, init_models
from liftlog.core.logging import configure_logging
from liftlog.engine.session_manager import SessionManager
from liftlog.engine.timers import SessionTicker
from liftlog.routers.nutrition import router as nutrition_router
from liftlog.routers.workouts import router as workouts_router
from liftlog.storage.meals import SqlAlchemyMealStore
from liftlog.storage.workouts import SqlAlchemyWorkoutStore


def _rest_complete(exercise_id: str | None) -> None:
    logger.info(f"Rest finished (exercise={exercise_id})")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings.DATABASE_URL)
        await init_models(engine)
        sessionmaker = create_sessionmaker(engine)

        app.state.settings = settings
        app.state.workout_store = SqlAlchemyWorkoutStore(sessionmaker)
        app.state.meal_store = SqlAlchemyMealStore(sessionmaker)
        app.state.manager = SessionManager(
            app.state.workout_store,
            header_timeout=settings.COMMIT_HEADER_TIMEOUT_SECONDS,
            on_rest_complete=_rest_complete,
        )

        ticker = SessionTicker(app.state.manager.tick, settings.TICK_INTERVAL_SECONDS)
        if settings.TICKER_ENABLED:
            ticker.start()
        try:
            yield
        finally:
            await ticker.stop()
            await app.state.manager.tasks.drain()
            await engine.dispose()

    app = FastAPI(
        title="LiftLog API",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "workouts", "description": "Live session, templates, history"},
            {"name": "nutrition", "description": "Meal logging"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS.split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id_and_log(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = req_id
        logger.info(
            f"rid={req_id} {request.method} {request.url.path} -> {response.status_code} in {duration_ms:.1f}ms"
        )
        return response

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(workouts_router)
    app.include_router(nutrition_router)
    return app
