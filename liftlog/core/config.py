from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./liftlog.db"
    LOG_LEVEL: str = "INFO"
    ALLOW_ORIGINS: str = "*"

    # Rest timer defaults
    DEFAULT_REST_SECONDS: int = 90
    BODYWEIGHT_REST_SECONDS: int = 60
    REST_EXTENSION_SECONDS: int = 30

    BAR_WEIGHT_KG: float = 20.0

    # Finish: the workout header write is the only fatal step, so it gets a deadline
    COMMIT_HEADER_TIMEOUT_SECONDS: float = 15.0

    TICK_INTERVAL_SECONDS: float = 1.0
    TICKER_ENABLED: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
