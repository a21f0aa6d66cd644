"""Configuration management for EMS Trainer."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EMS_TRAINER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scenario simulation
    vitals_refresh_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between background vital-sign refresh ticks",
    )

    # Scoring
    red_flag_prompt_threshold: float = Field(
        default=300.0,
        description="Seconds under which a red flag identification counts as prompt",
    )
    timing_excellent_ratio: float = Field(
        default=0.8,
        description="actual/target ratio at or under which an action is excellent",
    )
    timing_acceptable_ratio: float = Field(
        default=1.2,
        description="actual/target ratio at or under which an action is acceptable",
    )

    # Templates
    template_dir: Optional[Path] = Field(
        default=None,
        description="Directory of JSON scenario templates (built-in library when unset)",
    )

    # Telemetry
    telemetry_enabled: bool = Field(default=True)
    telemetry_dir: Path = Field(
        default=Path("./data/telemetry"),
        description="Directory for activity tracking JSON Lines files",
    )

    # Anthropic Claude (LLM oracle)
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key for the LLM patient oracle",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model to use",
    )
    oracle_timeout: int = Field(
        default=30,
        description="Timeout in seconds for oracle requests",
    )
    oracle_max_retries: int = Field(default=3, description="Max retries for oracle calls")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def has_anthropic_key(self) -> bool:
        """Check if Anthropic API key is configured."""
        return bool(self.anthropic_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
