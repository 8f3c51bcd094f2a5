from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List
import pydantic


class Settings(BaseSettings):
    """
    Manages all mission engine settings.
    Reads from environment variables (and .env file).
    """

    # --- Core Application Configuration ---
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # --- Redis & Celery Configuration ---
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @pydantic.computed_field
    @property
    def REDIS_URL(self) -> str:
        """
        Construct the full Redis URL for Celery and the status store.
        """
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    CELERY_TASK_ALWAYS_EAGER: bool = False

    # Modules the worker imports so their missions get registered
    MISSION_MODULES: List[str] = []

    # --- Missions ---
    MISSION_DEFAULT_QUEUE: str = "statused"
    MISSION_MAX_RETRIES: int = 3
    MISSION_RETRY_BACKOFF: bool = True
    MISSION_RETRY_BACKOFF_MAX: int = 600

    # "rerun": a step left in flight by a dead worker runs again.
    # "promote": it is counted as completed on re-entry.
    MISSION_STALE_STEP_POLICY: str = "rerun"

    # --- Status store ---
    STATUS_BACKEND: str = "redis"  # "redis" or "memory"
    STATUS_KEY_PREFIX: str = "mission:status"
    STATUS_TTL_SECONDS: int = 60 * 60 * 24 * 7

    @pydantic.field_validator("MISSION_STALE_STEP_POLICY")
    @classmethod
    def _check_stale_policy(cls, value: str) -> str:
        value = value.lower()
        if value not in ("rerun", "promote"):
            raise ValueError("MISSION_STALE_STEP_POLICY must be 'rerun' or 'promote'")
        return value

    @pydantic.field_validator("STATUS_BACKEND")
    @classmethod
    def _check_status_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("redis", "memory"):
            raise ValueError("STATUS_BACKEND must be 'redis' or 'memory'")
        return value

    # Pydantic-Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings object.
    Using @lru_cache ensures the .env file is read only once.
    """
    return Settings()

# Create a single, globally accessible settings instance
settings = get_settings()
