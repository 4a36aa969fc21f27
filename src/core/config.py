"""Configuration management for planbridge."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scheduling engine connection
    engine_base_url: str = Field(
        default="http://127.0.0.1:8080", description="Base URL of the external scheduling engine"
    )
    engine_timeout_seconds: float = Field(default=30.0, description="Transport timeout for engine commands")
    engine_api_token: str | None = Field(default=None, description="Bearer token for the engine API (optional)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment label for telemetry")

    # Recalculation behaviour
    recalc_debounce_seconds: float = Field(
        default=0.5, description="Quiet period before a burst of preference changes triggers work"
    )
    critical_slack_threshold_days: float = Field(
        default=0.0, description="Tasks with total slack at or below this value are critical in local fallback"
    )
    auto_recalculate_after_edit: bool = Field(
        default=False, description="Request a debounced recalculation after every structural edit"
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # Calendars
    DEFAULT_CALENDAR_ID: str = "standard"
    CUSTOM_CALENDAR_PREFIX: str = "custom_"

    # Engine RPC channel
    ENGINE_RPC_PATH: str = "/api/rpc"
    COMMAND_PROJECT_UPDATE: str = "project.update"
    COMMAND_PROJECT_RECALCULATE: str = "project.recalculate"
    COMMAND_CONFIGURATION_UPDATE: str = "configuration.update"

    # Preference events that replace preferences wholesale instead of editing them
    BOOKKEEPING_EVENT_KEYS: frozenset[str] = frozenset({"load", "import", "reset"})

    # Wire format
    PROGRESS_WIRE_SCALE: int = 100  # Engine expects progress as 0-100
    DEFAULT_WORKING_HOURS: tuple[tuple[int, int], ...] = ((8, 12), (13, 17))

    # Logging
    MAX_LOGGED_IDS: int = 20  # Cap id lists written into structured log records


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
