"""Pydantic models for localization documents.

Documents are persisted as plain snake_case dicts; these models validate
them on the way in (``to_document``) and on the way out (``model_validate``).

Key distinctions:
  - models.py: persisted documents and their nested structures
  - schemas.py (api): request/response bodies of the HTTP routes
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.localization.domain.enums import (
    Channel,
    ContentClass,
    Direction,
    EntryStatus,
    LanguageContext,
    ProviderName,
    ReviewStatus,
    TranslationMethod,
    WorkflowPriority,
    WorkflowStage,
)

LANGUAGE_CODE_PATTERN = re.compile(r"^[A-Z]{2,3}$")
LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}-[a-z]{2}$")
UI_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*$")
NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

LANGUAGES = "languages"
TRANSLATIONS = "translations"
UI_TRANSLATIONS = "ui_translations"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_language_code(code: Any) -> str:
    """Uppercase and strip a language code; raises ValueError when malformed."""
    if not isinstance(code, str):
        raise ValueError("Language code must be a string")
    normalized = code.strip().upper()
    if not LANGUAGE_CODE_PATTERN.match(normalized):
        raise ValueError("Language code must be a valid ISO 639 code (2-3 letters)")
    return normalized


class DocumentModel(BaseModel):
    """Base for persisted documents (enum values stored as plain strings)."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        extra="ignore",
        validate_assignment=True,
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")


# --- Language ---------------------------------------------------------------


class NumberFormat(DocumentModel):
    decimal_separator: str = "."
    thousands_separator: str = ","
    currency_symbol: str = "$"
    currency_position: Literal["before", "after"] = "before"


class DateFormats(DocumentModel):
    short: str = "MM/DD/YYYY"
    medium: str = "MMM D, YYYY"
    long: str = "MMMM D, YYYY"
    full: str = "dddd, MMMM D, YYYY"


class TimeFormats(DocumentModel):
    short: str = "HH:mm"
    medium: str = "HH:mm:ss"
    long: str = "HH:mm:ss z"


class LanguageFormatting(DocumentModel):
    date_format: DateFormats = Field(default_factory=DateFormats)
    time_format: TimeFormats = Field(default_factory=TimeFormats)
    number_format: NumberFormat = Field(default_factory=NumberFormat)
    address_format: str = "{street}\n{city}, {state} {postal_code}\n{country}"


class FormattingOverrides(DocumentModel):
    """Channel or context specific formatting overrides."""

    date_format: Optional[str] = None
    time_format: Optional[str] = None
    address_format: Optional[str] = None
    decimal_separator: Optional[str] = None
    thousands_separator: Optional[str] = None


class ProviderConfig(DocumentModel):
    """Provider entry of a language's translation configuration.

    ``api_key`` is accepted for compatibility but never returned by reads;
    deployments configure provider keys through the environment.
    """

    name: ProviderName
    priority: int = Field(default=1, ge=1)
    is_active: bool = True
    api_key: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, gt=0)


class AutoTranslateConfig(DocumentModel):
    enabled: bool = False
    threshold: float = Field(default=0.8, ge=0, le=1)
    exclude_fields: List[str] = Field(default_factory=list)


class QualityConfig(DocumentModel):
    require_human_review: bool = True
    minimum_confidence: float = Field(default=0.7, ge=0, le=1)
    fallback_to_source: bool = True


class LanguageTranslationConfig(DocumentModel):
    providers: List[ProviderConfig] = Field(default_factory=list)
    auto_translate: AutoTranslateConfig = Field(default_factory=AutoTranslateConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)

    def active_providers(self) -> List[ProviderConfig]:
        """Active providers ordered by ascending priority (stable)."""
        return sorted((p for p in self.providers if p.is_active), key=lambda p: p.priority)


class ChannelMapping(DocumentModel):
    channel: Channel
    channel_language_code: Optional[str] = None
    is_supported: bool = True
    is_default: bool = False
    formatting: FormattingOverrides = Field(default_factory=FormattingOverrides)


class ContextConfig(DocumentModel):
    name: LanguageContext
    enabled: bool = True
    priority: int = 1
    overrides: FormattingOverrides = Field(default_factory=FormattingOverrides)


class LanguageUsage(DocumentModel):
    total_translations: int = 0
    total_requests: int = 0
    last_used: Optional[datetime] = None
    popular_content: List[str] = Field(default_factory=list)


class ContentCompleteness(DocumentModel):
    room_types: int = Field(default=0, ge=0, le=100)
    amenities: int = Field(default=0, ge=0, le=100)
    policies: int = Field(default=0, ge=0, le=100)
    descriptions: int = Field(default=0, ge=0, le=100)
    ui_texts: int = Field(default=0, ge=0, le=100)
    emails: int = Field(default=0, ge=0, le=100)
    overall: int = Field(default=0, ge=0, le=100)
    last_updated: Optional[datetime] = None

    def recompute_overall(self) -> int:
        values = [getattr(self, c.value) for c in ContentClass]
        return round(sum(values) / len(values)) if values else 0


class Language(DocumentModel):
    """A supported language (document id = code)."""

    code: str
    name: str = Field(..., min_length=2, max_length=100)
    native_name: str = Field(..., min_length=1, max_length=100)
    locale: str
    direction: Direction = Direction.LTR
    formatting: LanguageFormatting = Field(default_factory=LanguageFormatting)
    translation: LanguageTranslationConfig = Field(default_factory=LanguageTranslationConfig)
    channel_mappings: List[ChannelMapping] = Field(default_factory=list)
    contexts: List[ContextConfig] = Field(default_factory=list)
    is_active: bool = True
    is_default: bool = False
    usage: LanguageUsage = Field(default_factory=LanguageUsage)
    content_completeness: ContentCompleteness = Field(default_factory=ContentCompleteness)
    revision: int = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, value: Any) -> str:
        return normalize_language_code(value)

    @field_validator("locale", mode="before")
    @classmethod
    def _normalize_locale(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Locale must be a string")
        normalized = value.strip().lower().replace("_", "-")
        if not LOCALE_PATTERN.match(normalized):
            raise ValueError("Locale must be in format: language-country (e.g., en-us, fr-fr)")
        return normalized

    @field_validator("channel_mappings")
    @classmethod
    def _unique_channels(cls, value: List[ChannelMapping]) -> List[ChannelMapping]:
        channels = [m.channel for m in value]
        if len(channels) != len(set(channels)):
            raise ValueError("Each channel may be mapped only once per language")
        return value

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["id"] = self.code
        return doc

    def public_view(self) -> Dict[str, Any]:
        """Document without provider API keys."""
        doc = self.to_document()
        for provider in doc["translation"]["providers"]:
            provider.pop("api_key", None)
        return doc

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.native_name})"

    def channel_mapping(self, channel: str) -> Optional[ChannelMapping]:
        return next((m for m in self.channel_mappings if m.channel == channel), None)

    def context(self, name: str) -> Optional[ContextConfig]:
        return next((c for c in self.contexts if c.name == name), None)


# --- Translation ------------------------------------------------------------


class TranslationKey(BaseModel):
    """Version-less key identifying one translated field."""

    model_config = ConfigDict(frozen=True)

    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1)
    field_name: str = Field(..., min_length=1)
    target_language: str

    @field_validator("target_language", mode="before")
    @classmethod
    def _normalize_target(cls, value: Any) -> str:
        return normalize_language_code(value)

    @property
    def dedup_key(self) -> str:
        return f"{self.resource_type}|{self.resource_id}|{self.field_name}|{self.target_language}"

    def query(self) -> Dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "field_name": self.field_name,
            "target_language": self.target_language,
        }


class TranslationQuality(DocumentModel):
    confidence: float = Field(default=0.5, ge=0, le=1)
    review_status: ReviewStatus = ReviewStatus.PENDING
    reviewer: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    quality_score: int = Field(default=0, ge=0, le=100)


class TranslationWorkflow(DocumentModel):
    stage: WorkflowStage = WorkflowStage.DRAFT
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: WorkflowPriority = WorkflowPriority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class TranslationContext(DocumentModel):
    channel: Optional[
        Literal["website", "booking_engine", "mobile_app", "email", "sms", "ota", "staff_interface"]
    ] = None
    audience: Optional[Literal["guest", "staff", "admin", "public"]] = None
    tone: Optional[Literal["formal", "casual", "friendly", "professional", "marketing"]] = None
    max_length: Optional[int] = Field(default=None, gt=0)
    formatting: Optional[Literal["plain_text", "html", "markdown", "rich_text"]] = None
    variables: List[str] = Field(default_factory=list)


class TranslationUsage(DocumentModel):
    impressions: int = 0
    last_used: Optional[datetime] = None
    contexts: List[str] = Field(default_factory=list)


class Translation(DocumentModel):
    """One version of one translated field."""

    id: Optional[str] = None
    resource_type: str
    resource_id: str
    field_name: str
    source_language: str
    target_language: str
    original_text: str
    translated_text: Optional[str] = None
    translation_method: TranslationMethod = TranslationMethod.MANUAL
    provider: Optional[str] = None
    quality: TranslationQuality = Field(default_factory=TranslationQuality)
    workflow: TranslationWorkflow = Field(default_factory=TranslationWorkflow)
    version: int = Field(default=1, ge=1)
    previous_version: Optional[str] = None
    context: TranslationContext = Field(default_factory=TranslationContext)
    usage: TranslationUsage = Field(default_factory=TranslationUsage)
    is_active: bool = True
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("source_language", "target_language", mode="before")
    @classmethod
    def _normalize_languages(cls, value: Any) -> str:
        return normalize_language_code(value)

    @model_validator(mode="after")
    def _check_languages(self) -> "Translation":
        if self.source_language == self.target_language:
            raise ValueError("Source and target languages must be different")
        return self

    @property
    def key(self) -> TranslationKey:
        return TranslationKey(
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            field_name=self.field_name,
            target_language=self.target_language,
        )

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        if doc["id"] is None:
            doc.pop("id")
        return doc


class FieldTranslation(BaseModel):
    """Result of a single-field read: the served text and its status."""

    resource_type: str
    resource_id: str
    field_name: str
    target_language: str
    text: Optional[str]
    status: str
    is_fallback: bool = False
    translation: Optional[Translation] = None


# --- UI translation ---------------------------------------------------------


class UIEntry(DocumentModel):
    language: str
    text: str
    status: EntryStatus = EntryStatus.TRANSLATED
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    provider: Optional[str] = None
    translated_at: Optional[datetime] = None
    reviewer: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, value: Any) -> str:
        return normalize_language_code(value)


class UITranslation(DocumentModel):
    """UI string keyed by (namespace, key); document id ``namespace:key``."""

    namespace: str
    key: str
    source_language: str = "EN"
    source_text: str
    translations: List[UIEntry] = Field(default_factory=list)
    contexts: List[str] = Field(default_factory=list)
    priority: WorkflowPriority = WorkflowPriority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        if not NAMESPACE_PATTERN.match(value):
            raise ValueError("Namespace may only contain letters, digits, '_' and '-'")
        return value

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not UI_KEY_PATTERN.match(value):
            raise ValueError("Key must be a dotted path such as 'category.sub.item'")
        return value

    @field_validator("source_language", mode="before")
    @classmethod
    def _normalize_source(cls, value: Any) -> str:
        return normalize_language_code(value)

    @field_validator("translations")
    @classmethod
    def _unique_languages(cls, value: List[UIEntry]) -> List[UIEntry]:
        languages = [entry.language for entry in value]
        if len(languages) != len(set(languages)):
            raise ValueError("Each language may appear only once in translations")
        return value

    @staticmethod
    def document_id(namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def entry(self, language: str) -> Optional[UIEntry]:
        return next((e for e in self.translations if e.language == language), None)

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["id"] = self.document_id(self.namespace, self.key)
        return doc


# --- Resource status --------------------------------------------------------


class ResourceTranslationStatus(DocumentModel):
    """Per-language status embedded on an owning resource."""

    language: str
    status: EntryStatus = EntryStatus.PENDING
    completeness: int = Field(default=0, ge=0, le=100)
    last_updated: datetime = Field(default_factory=utc_now)
