"""
Logic Flow Engine - Configuration Settings
Interpreter budgets, action defaults, and runtime session behavior.
"""

import logging
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Logic flow engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(default="dev", alias="LOGICFLOW_ENVIRONMENT")

    # ── Graph Defaults ────────────────────────────────────────────────
    default_loop_count: int = Field(default=10, alias="LOGICFLOW_DEFAULT_LOOP_COUNT")
    default_delay_ms: int = Field(default=1000, alias="LOGICFLOW_DEFAULT_DELAY_MS")

    # ── Interpreter Budget ────────────────────────────────────────────
    max_execution_steps: int = Field(default=10_000, alias="LOGICFLOW_MAX_EXECUTION_STEPS")
    max_execution_depth: int = Field(default=200, alias="LOGICFLOW_MAX_EXECUTION_DEPTH")

    # ── Effects ───────────────────────────────────────────────────────
    fetch_timeout_seconds: float = Field(default=30.0, alias="LOGICFLOW_FETCH_TIMEOUT_SECONDS")
    fetch_user_agent: Optional[str] = Field(default=None, alias="LOGICFLOW_FETCH_USER_AGENT")

    # ── Runtime Session ───────────────────────────────────────────────
    hot_reload_enabled: bool = Field(default=True, alias="LOGICFLOW_HOT_RELOAD_ENABLED")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["dev", "development", "qa", "test", "prod"]
        if v.lower() not in allowed:
            logger.warning(f"[SETTINGS] environment '{v}' not in {allowed}")
        return v.lower()

    @field_validator("default_loop_count", "max_execution_steps", "max_execution_depth")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


settings = Settings()
