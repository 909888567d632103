"""Shared base classes and helpers for settings modules."""

import json
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class IntegrationSettings(BaseSettings):
    """Base class for external integration settings.

    Integration settings (AWS, translation provider credentials) share the
    same env file loading and case sensitivity rules.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class FeatureSettings(BaseSettings):
    """Base class for feature module settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class InfrastructureSettings(BaseSettings):
    """Base class for infrastructure-level settings.

    Infrastructure settings control core system behavior like persistence
    backends, the work queue and server configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


def parse_json_setting(value: Any, name: str, default: Any) -> Any:
    """Parse a JSON-encoded environment value.

    Accepts an already-decoded value, a JSON string (optionally wrapped in
    quotes by the shell) or ``None``.

    Raises:
        ValueError: If the string is not valid JSON.
    """
    if value is None:
        return default
    if not isinstance(value, str):
        return value
    s = value.strip()
    if (s.startswith("'") and s.endswith("'")) or (
        s.startswith('"') and s.endswith('"')
    ):
        s = s[1:-1]
    if not s:
        return default
    try:
        return json.loads(s)
    except (json.JSONDecodeError, ValueError) as e:
        raise ValueError(f"Invalid {name} JSON: {e} (value: {s[:80]}...)") from e
