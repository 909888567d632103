"""Localization service configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    AwsSettings,
    TranslationProviderSettings,
)

# Feature settings
from infrastructure.configuration.features import LocalizationSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    PersistenceSettings,
    RetrySettings,
    ServerSettings,
)


class Settings(BaseSettings):
    """Service configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration
    object, organized by concern:

    - **Integrations**: AWS and translation provider credentials
    - **Features**: localization behaviour (providers, thresholds, timeouts)
    - **Infrastructure**: persistence backend, work queue, server runtime

    Environment Variables:
        PREFIX: Environment prefix; empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        threshold = settings.localization.auto_translate_threshold
        if settings.persistence.backend == "dynamodb":
            region = settings.aws.AWS_REGION
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"
    APP_NAME: str = "pms-localization"

    # Integration settings
    aws: AwsSettings
    translation_providers: TranslationProviderSettings

    # Feature settings
    localization: LocalizationSettings

    # Infrastructure settings
    persistence: PersistenceSettings
    retry: RetrySettings
    server: ServerSettings

    @property
    def is_production(self) -> bool:
        """True if PREFIX is empty (production), False otherwise."""
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "aws": AwsSettings,
            "translation_providers": TranslationProviderSettings,
            # Features
            "localization": LocalizationSettings,
            # Infrastructure
            "persistence": PersistenceSettings,
            "retry": RetrySettings,
            "server": ServerSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
