"""Application settings loaded from the environment."""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wk_tutor.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    """Settings read from WK_* environment variables or a .env file."""

    model_config = SettingsConfigDict(env_prefix="WK_", env_file=".env", extra="ignore")

    # Personal API token from the WaniKani settings page
    api_token: str = ""
    base_url: str = "https://api.wanikani.com/v2"
    api_revision: str = "20170710"

    db_path: str = DEFAULT_DB_PATH
    request_timeout: float = 10.0

    # Seconds to show answer feedback before the next review question
    feedback_delay: float = 1.0
    lessons_batch_size: int = 5

    log_level: str = "WARNING"

    @field_validator("lessons_batch_size")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("lessons_batch_size must be positive")
        return value

    @field_validator("db_path")
    @classmethod
    def _expand_db_path(cls, value: str) -> str:
        return str(Path(value).expanduser())


def get_settings(**overrides) -> Settings:
    return Settings(**overrides)
