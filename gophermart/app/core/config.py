from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Gophermart Loyalty API"
    database_url: str = "sqlite:///gophermart.db"
    sqlite_busy_timeout: float = Field(default=5.0, gt=0)
    log_level: str = "INFO"

    accrual_system_address: Optional[str] = None
    accrual_request_timeout: float = Field(default=10.0, gt=0)
    accrual_default_retry_after: int = Field(default=60, gt=0)

    poll_interval: float = Field(default=5.0, gt=0)
    reconcile_batch_size: Optional[int] = Field(default=None, ge=1)
    reconcile_max_concurrency: int = Field(default=1, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GOPHERMART_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
