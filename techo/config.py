"""
Runtime configuration for the Techo server.

Values come from ``TECHO_*`` environment variables or a local ``.env`` file.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"critical", "error", "warning", "info", "debug"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TECHO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///techo.db")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    # Development mode: restart the server when the code changes
    reload: bool = Field(default=False)
    log_level: str = Field(default="info")

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        v = (v or "").lower().strip()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {v!r}. Use one of {sorted(VALID_LOG_LEVELS)}"
            )
        return v


def load_settings() -> Settings:
    return Settings()
