"""Server runtime infrastructure settings."""

from typing import Any

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings, parse_json_setting


class ServerSettings(InfrastructureSettings):
    """Server and application runtime configuration.

    Environment Variables:
        CORS_ALLOW_ORIGINS: JSON list of allowed origins outside production
        TRANSLATION_WORKER_ENABLED: Run the auto-translation worker in-process
        TRANSLATION_WORKER_INTERVAL_SECONDS: Pause between worker batches
        ENSURE_SINGLE_DEFAULT_ON_STARTUP: Repair default-language drift at boot

    Example:
        ```python
        settings = get_settings()
        if settings.server.TRANSLATION_WORKER_ENABLED:
            ...
        ```
    """

    CORS_ALLOW_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://127.0.0.1:8000"],
        alias="CORS_ALLOW_ORIGINS",
    )
    TRANSLATION_WORKER_ENABLED: bool = Field(
        default=True, alias="TRANSLATION_WORKER_ENABLED"
    )
    TRANSLATION_WORKER_INTERVAL_SECONDS: float = Field(
        default=5.0, alias="TRANSLATION_WORKER_INTERVAL_SECONDS"
    )
    ENSURE_SINGLE_DEFAULT_ON_STARTUP: bool = Field(
        default=True, alias="ENSURE_SINGLE_DEFAULT_ON_STARTUP"
    )

    @field_validator("CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def _parse_origins(cls, v: Any) -> Any:
        return parse_json_setting(v, "CORS_ALLOW_ORIGINS", [])
