from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from MISSION_SIM_* variables or .env."""

    # Unset means process-local stores.
    database_url: Optional[str] = None
    catalog_path: Optional[Path] = None

    daily_deployment_cap: int = Field(10, ge=0)
    lore_drop_chance: float = Field(0.6, ge=0.0, le=1.0)
    enforce_mission_unlocks: bool = True

    admin_token: Optional[SecretStr] = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MISSION_SIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
