"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.aws import AwsSettings
from infrastructure.configuration.integrations.translation_providers import (
    TranslationProviderSettings,
)

__all__ = [
    "AwsSettings",
    "TranslationProviderSettings",
]
