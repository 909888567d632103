"""Translation providers and the provider gateway."""

from modules.localization.providers.base import (
    DetectedLanguage,
    HealthCheckResult,
    HttpTranslationProvider,
    ProviderTranslation,
    TranslationProvider,
    normalize_confidence,
    provider_operation,
)
from modules.localization.providers.gateway import ProviderGateway
from modules.localization.providers.registry import ProviderRegistry, build_provider_registry

__all__ = [
    "DetectedLanguage",
    "HealthCheckResult",
    "HttpTranslationProvider",
    "ProviderTranslation",
    "TranslationProvider",
    "normalize_confidence",
    "provider_operation",
    "ProviderGateway",
    "ProviderRegistry",
    "build_provider_registry",
]
