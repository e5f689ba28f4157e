"""Configuration settings using pydantic-settings."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apihub_applications.domain.models.environment import Environment, Environments


def _default_environments() -> list[Environment]:
    return [
        Environment(
            id="production",
            name="Production",
            rank=1,
            is_production_like=True,
            apim_url="http://localhost:15026/apim-proxy/api-hub-apim-stubs",
            client_id="idms-client-id",
            secret="idms-secret",
            apim_environment_name="production",
        ),
        Environment(
            id="test",
            name="Test",
            rank=2,
            is_production_like=False,
            apim_url="http://localhost:15026/apim-proxy/api-hub-apim-stubs",
            client_id="idms-client-id",
            secret="idms-secret",
            promote_to="production",
            apim_environment_name="test",
        ),
    ]


class ApplicationsSettings(BaseSettings):
    """Configuration settings for the applications core.

    Settings can be loaded from environment variables or passed as a dictionary.
    Environment variables should be prefixed with 'APIHUB_' (e.g., APIHUB_DATABASE_NAME=apps).
    Complex fields such as `environments` and `email_templates` are given as JSON.

    Example:
        ```python
        # From environment variables
        settings = ApplicationsSettings()

        # From dictionary
        settings = ApplicationsSettings(events_enabled=False)

        environments = settings.load_environments()
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="APIHUB_",
        case_sensitive=False,
        extra="ignore",
    )

    # StateStore configuration
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    database_name: str = Field(
        default="api-hub-applications",
        description="MongoDB database name",
    )
    use_memory_store: bool = Field(
        default=False,
        description="Use the in-memory store instead of MongoDB",
    )

    # Events configuration
    events_enabled: bool = Field(
        default=True,
        description="Record audit events for mutations",
    )

    # Observability configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON rather than for the console",
    )

    # Identity system configuration
    idms_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for identity-system calls",
        gt=0,
    )
    breaker_failure_threshold: int = Field(
        default=5,
        description="Consecutive counted failures that open a circuit breaker",
        ge=1,
    )
    breaker_rolling_window_seconds: float = Field(
        default=60.0,
        description="Window within which consecutive failures are counted",
        gt=0,
    )
    breaker_reset_timeout_seconds: float = Field(
        default=30.0,
        description="Time an open breaker waits before letting a probe through",
        gt=0,
    )
    breaker_call_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound on a single guarded call",
        gt=0,
    )
    breaker_half_open_max_calls: int = Field(
        default=1,
        description="Probe calls allowed while half-open",
        ge=1,
    )

    # Email configuration
    email_base_url: str | None = Field(
        default=None,
        description="Base URL of the email service; emails are disabled when unset",
    )
    email_templates: dict[str, str] = Field(
        default_factory=dict,
        description="Template id per notification name",
    )

    environments: list[Environment] = Field(
        default_factory=_default_environments,
        description="Configured deployment environments",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {v!r}")
        return level

    def load_environments(self) -> Environments:
        """Validate the configured environments as a set."""
        return Environments(environments=self.environments)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "ApplicationsSettings":
        """Create settings from a dictionary.

        Args:
            config: Dictionary with configuration values.

        Returns:
            ApplicationsSettings instance.
        """
        return cls(**config)
