from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_env_path),
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Matrix homeserver
    SYNAPSE_URL: str = "http://localhost:8008"
    SYNAPSE_ACCESS_TOKEN: str = "xxxxxxx"
    SYNAPSE_USER_ID: str = "@howethomas:localhost"
    SYNAPSE_HS_TOKEN: str = "yyyyyyy"

    # vCon store
    VCON_PATH: str = "./vcons"
    DOMAIN_NAME: str = "ietf.org"
    DEFAULT_ROLE: str = "agent"

    # export to the conserver
    CONSERVER_URL: str = "https://localhost:8000/vcon"
    CONSERVER_TIMEOUT_SECONDS: float = 30.0
    VCON_UPLOAD_PERIOD_MS: int = 3_600_000   # 1 hour
    VCON_RETENTION_MINUTES: int = 60

    # celery broker and per-record locks
    REDIS_URL: str = "redis://localhost:6379/0"
    RECORD_LOCK_TIMEOUT_SECONDS: int = 60
    RECORD_LOCK_WAIT_SECONDS: int = 30


@lru_cache
def get_settings() -> Settings:
    return Settings()
