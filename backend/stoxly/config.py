"""Runtime settings read from STOXLY_* environment variables."""

import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    STOXLY_API_URL: str | None = None
    STOXLY_STREAM_URL: str | None = None
    STOXLY_API_TOKEN: str | None = None
    STOXLY_QUOTE_TTL: float = Field(default=10.0, gt=0)
    STOXLY_SEARCH_TTL: float = Field(default=300.0, gt=0)
    STOXLY_RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    STOXLY_RETRY_BASE_DELAY: float = Field(default=1.0, ge=0)
    STOXLY_HTTP_TIMEOUT: float = Field(default=5.0, gt=0)
    STOXLY_STREAM_RECONNECT: bool = True
    STOXLY_SIM_INTERVAL: float = Field(default=1.0, gt=0)
    STOXLY_LOG_LEVEL: str = "INFO"

    @property
    def uses_simulator(self) -> bool:
        return not self.STOXLY_API_URL

    @classmethod
    def from_env(cls) -> "Settings":
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(name, "").strip()
            if raw:
                values[name] = raw
        values["STOXLY_STREAM_RECONNECT"] = _env_bool("STOXLY_STREAM_RECONNECT", True)
        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
