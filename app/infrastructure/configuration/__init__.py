"""Infrastructure configuration module - public API.

Centralized configuration management using Pydantic BaseSettings with
domain-based organization. The process-wide instance is obtained through
``infrastructure.services.get_settings()``.

Exports:
    Settings: Main settings class (for testing/overrides)
    LocalizationSettings: Localization feature settings (for testing)
    RetrySettings: Work queue settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()
    default_language = settings.localization.default_language
    ```
"""

from infrastructure.configuration.features import LocalizationSettings
from infrastructure.configuration.infrastructure import (
    PersistenceSettings,
    RetrySettings,
)
from infrastructure.configuration.settings import Settings

__all__ = ["Settings", "LocalizationSettings", "PersistenceSettings", "RetrySettings"]
