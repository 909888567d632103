"""Localization feature settings."""

from typing import Any, Optional

import structlog
from pydantic import Field, field_validator

from infrastructure.configuration.base import FeatureSettings, parse_json_setting

logger = structlog.stdlib.get_logger().bind(component="config.localization")

DEFAULT_PROVIDERS: list[dict[str, Any]] = [
    {"name": "deepl", "priority": 1, "timeout_ms": 10000, "is_active": True},
    {"name": "google", "priority": 2, "timeout_ms": 10000, "is_active": True},
    {"name": "azure", "priority": 3, "timeout_ms": 10000, "is_active": True},
]

KNOWN_PROVIDERS = frozenset({"google", "deepl", "azure", "aws", "manual"})


class LocalizationSettings(FeatureSettings):
    """Configuration for the multilingual content and translation feature.

    Environment Variables:
        LOCALIZATION_DEFAULT_LANGUAGE: Code of the fallback default language
        LOCALIZATION_PROVIDERS: JSON list of provider entries
        LOCALIZATION_AUTO_TRANSLATE_THRESHOLD: Confidence below which provider
            output is tagged needs_review
        LOCALIZATION_MINIMUM_CONFIDENCE: Lowest confidence at which provider
            output may be approved without a reviewer
        LOCALIZATION_FALLBACK_TO_SOURCE: Serve source text when no approved
            translation exists
        LOCALIZATION_REVIEW_REQUIRED_BY_DEFAULT: Require human review of
            automatic translations
        LOCALIZATION_MAX_PROVIDER_ATTEMPTS: Attempts across the fallback chain
        LOCALIZATION_PROVIDER_TIMEOUT_MS: Default per-attempt timeout
        LOCALIZATION_PROVIDER_DEADLINE_MS: Deadline for the whole chain
        LOCALIZATION_REVIEW_QUEUE_TIMEOUT_MS: Pending-queue query timeout
        LOCALIZATION_COMPLETENESS_CACHE_TTL_MS: Completeness cache lifetime
        LOCALIZATION_PROVIDER_CACHE_TTL_SECONDS: Provider result cache lifetime
        LOCALIZATION_ASSIGNMENT_RULES: JSON list of assignment rules
        LOCALIZATION_UI_CATALOG_PATH: Directory of YAML UI catalogs to seed
        LOCALIZATION_PROVIDER_FAILURE_THRESHOLD: Failures before a provider
            is marked unhealthy
        LOCALIZATION_PROVIDER_RECOVERY_SECONDS: Seconds before an unhealthy
            provider is tried again

    Providers Configuration (LOCALIZATION_PROVIDERS):
        [
            {"name": "deepl", "priority": 1, "timeout_ms": 8000},
            {"name": "google", "priority": 2, "is_active": false}
        ]

        Entries may carry ``api_key`` for local development; otherwise keys
        come from the provider credential settings.

    Assignment Rules (LOCALIZATION_ASSIGNMENT_RULES):
        [
            {"target_language": "FR", "assignee": "fr-team@hotel.example"},
            {"resource_type": "room_type", "assignee": "content@hotel.example"}
        ]

    Example:
        ```python
        settings = get_settings()
        deadline = settings.localization.provider_deadline_ms / 1000
        ```
    """

    default_language: str = Field(
        default="EN",
        alias="LOCALIZATION_DEFAULT_LANGUAGE",
        description="Code of the language used when no default is stored",
    )
    providers: list[dict[str, Any]] = Field(
        default_factory=lambda: [dict(p) for p in DEFAULT_PROVIDERS],
        alias="LOCALIZATION_PROVIDERS",
        description="Ordered provider entries (name, priority, timeout_ms, is_active)",
    )
    auto_translate_threshold: float = Field(
        default=0.8,
        alias="LOCALIZATION_AUTO_TRANSLATE_THRESHOLD",
        ge=0.0,
        le=1.0,
        description="Confidence below which automatic output needs review",
    )
    minimum_confidence: float = Field(
        default=0.7,
        alias="LOCALIZATION_MINIMUM_CONFIDENCE",
        ge=0.0,
        le=1.0,
        description="Lowest confidence eligible for automatic approval",
    )
    fallback_to_source: bool = Field(
        default=True,
        alias="LOCALIZATION_FALLBACK_TO_SOURCE",
        description="Serve source text for untranslated fields",
    )
    review_required_by_default: bool = Field(
        default=True,
        alias="LOCALIZATION_REVIEW_REQUIRED_BY_DEFAULT",
        description="Require reviewer approval for automatic translations",
    )
    max_provider_attempts: int = Field(
        default=3,
        alias="LOCALIZATION_MAX_PROVIDER_ATTEMPTS",
        ge=1,
        description="Maximum provider attempts per translation request",
    )
    provider_timeout_ms: int = Field(
        default=10000,
        alias="LOCALIZATION_PROVIDER_TIMEOUT_MS",
        ge=1,
        description="Per-attempt provider timeout",
    )
    provider_deadline_ms: int = Field(
        default=30000,
        alias="LOCALIZATION_PROVIDER_DEADLINE_MS",
        ge=1,
        description="Overall deadline for the provider fallback chain",
    )
    review_queue_timeout_ms: int = Field(
        default=5000,
        alias="LOCALIZATION_REVIEW_QUEUE_TIMEOUT_MS",
        ge=1,
        description="Timeout for pending review queue queries",
    )
    completeness_cache_ttl_ms: int = Field(
        default=60000,
        alias="LOCALIZATION_COMPLETENESS_CACHE_TTL_MS",
        ge=0,
        description="Lifetime of cached completeness figures (0 disables)",
    )
    provider_cache_ttl_seconds: int = Field(
        default=86400,
        alias="LOCALIZATION_PROVIDER_CACHE_TTL_SECONDS",
        ge=0,
        description="Lifetime of cached provider translations (0 disables)",
    )
    assignment_rules: list[dict[str, Any]] = Field(
        default_factory=list,
        alias="LOCALIZATION_ASSIGNMENT_RULES",
        description="Rules assigning submitted rows to translators",
    )
    ui_catalog_path: Optional[str] = Field(
        default=None,
        alias="LOCALIZATION_UI_CATALOG_PATH",
        description="Directory of YAML UI catalogs loaded at startup",
    )
    provider_failure_threshold: int = Field(
        default=3,
        alias="LOCALIZATION_PROVIDER_FAILURE_THRESHOLD",
        ge=1,
        description="Consecutive failures before a provider is unhealthy",
    )
    provider_recovery_seconds: int = Field(
        default=60,
        alias="LOCALIZATION_PROVIDER_RECOVERY_SECONDS",
        ge=1,
        description="Seconds before an unhealthy provider is retried",
    )

    @field_validator("default_language", mode="before")
    @classmethod
    def _normalize_default_language(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("providers", mode="before")
    @classmethod
    def _parse_providers(cls, v: Optional[Any]) -> Any:
        """Parse LOCALIZATION_PROVIDERS from JSON string or list."""
        return parse_json_setting(v, "LOCALIZATION_PROVIDERS", [])

    @field_validator("providers", mode="after")
    @classmethod
    def _validate_providers(cls, v: list[dict[str, Any]]) -> list[dict[str, Any]]:
        names = set()
        for entry in v:
            if not isinstance(entry, dict) or not entry.get("name"):
                raise ValueError("Each LOCALIZATION_PROVIDERS entry needs a 'name'")
            name = str(entry["name"]).lower()
            if name not in KNOWN_PROVIDERS:
                raise ValueError(f"Unknown translation provider: {name}")
            if name in names:
                raise ValueError(f"Duplicate translation provider: {name}")
            names.add(name)
            entry["name"] = name
            entry.setdefault("priority", len(names))
            entry.setdefault("is_active", True)
        if not v:
            logger.warning("no_translation_providers_configured")
        return v

    @field_validator("assignment_rules", mode="before")
    @classmethod
    def _parse_assignment_rules(cls, v: Optional[Any]) -> Any:
        """Parse LOCALIZATION_ASSIGNMENT_RULES from JSON string or list."""
        return parse_json_setting(v, "LOCALIZATION_ASSIGNMENT_RULES", [])

    @property
    def provider_deadline_seconds(self) -> float:
        return self.provider_deadline_ms / 1000

    @property
    def review_queue_timeout_seconds(self) -> float:
        return self.review_queue_timeout_ms / 1000
