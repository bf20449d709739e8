from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCRUB_DB_", env_file=".env", extra="ignore"
    )

    log_level: str = "INFO"

    config_path: Path | None = None
    dialect: str = ""

    detect_sample_lines: int = 200
