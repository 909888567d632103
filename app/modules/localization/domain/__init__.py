"""Localization domain: enums, errors and document models."""

from modules.localization.domain.enums import (
    ErrorKind,
    EntryStatus,
    ReviewAction,
    ReviewStatus,
    TranslationMethod,
    WorkflowPriority,
    WorkflowStage,
)
from modules.localization.domain.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    LocalizationError,
    NotFoundError,
    PermissionDeniedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    WorkflowStateError,
    error_from_result,
)
from modules.localization.domain.models import (
    FieldTranslation,
    Language,
    ResourceTranslationStatus,
    Translation,
    TranslationKey,
    UIEntry,
    UITranslation,
)

__all__ = [
    "ErrorKind",
    "EntryStatus",
    "ReviewAction",
    "ReviewStatus",
    "TranslationMethod",
    "WorkflowPriority",
    "WorkflowStage",
    "ConflictError",
    "InternalError",
    "InvalidInputError",
    "LocalizationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "WorkflowStateError",
    "error_from_result",
    "FieldTranslation",
    "Language",
    "ResourceTranslationStatus",
    "Translation",
    "TranslationKey",
    "UIEntry",
    "UITranslation",
]
