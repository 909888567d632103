"""Enumerations shared by the localization components."""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds surfaced by every localization verb."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    WORKFLOW_STATE = "workflow_state"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    TIMEOUT = "timeout"
    PERMISSION = "permission"
    INTERNAL = "internal"


class Direction(str, Enum):
    LTR = "ltr"
    RTL = "rtl"


class ProviderName(str, Enum):
    GOOGLE = "google"
    DEEPL = "deepl"
    AZURE = "azure"
    AWS = "aws"
    MANUAL = "manual"


class Channel(str, Enum):
    """OTA channels with language mappings."""

    BOOKING_COM = "booking_com"
    EXPEDIA = "expedia"
    AIRBNB = "airbnb"
    AGODA = "agoda"
    HOTELS_COM = "hotels_com"
    TRIVAGO = "trivago"


class LanguageContext(str, Enum):
    WEBSITE = "website"
    BOOKING_ENGINE = "booking_engine"
    GUEST_PORTAL = "guest_portal"
    STAFF_INTERFACE = "staff_interface"
    EMAIL = "email"
    SMS = "sms"


class ContentClass(str, Enum):
    """Resource classes tracked in a language's content completeness."""

    ROOM_TYPES = "room_types"
    AMENITIES = "amenities"
    POLICIES = "policies"
    DESCRIPTIONS = "descriptions"
    UI_TEXTS = "ui_texts"
    EMAILS = "emails"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REVIEW = "needs_review"


class WorkflowStage(str, Enum):
    DRAFT = "draft"
    TRANSLATION = "translation"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"


class TranslationMethod(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    HYBRID = "hybrid"


class WorkflowPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ResourcePriority(str, Enum):
    """Translation priority declared by a resource."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EntryStatus(str, Enum):
    """Status of a UI translation entry or a resource's per-language status."""

    PENDING = "pending"
    TRANSLATED = "translated"
    APPROVED = "approved"
    PUBLISHED = "published"


class ReviewAction(str, Enum):
    """Homogeneous decision applied by a bulk review."""

    APPROVE = "approve"
    REJECT = "reject"


# urgent > high > medium > low
PRIORITY_RANK = {
    WorkflowPriority.URGENT.value: 4,
    WorkflowPriority.HIGH.value: 3,
    WorkflowPriority.MEDIUM.value: 2,
    WorkflowPriority.LOW.value: 1,
}

# A resource's "critical" maps onto the workflow's "urgent".
RESOURCE_TO_WORKFLOW_PRIORITY = {
    ResourcePriority.LOW.value: WorkflowPriority.LOW.value,
    ResourcePriority.MEDIUM.value: WorkflowPriority.MEDIUM.value,
    ResourcePriority.HIGH.value: WorkflowPriority.HIGH.value,
    ResourcePriority.CRITICAL.value: WorkflowPriority.URGENT.value,
}

SERVED_STAGES = (WorkflowStage.APPROVED.value, WorkflowStage.PUBLISHED.value)
COMPLETE_ENTRY_STATUSES = (EntryStatus.APPROVED.value, EntryStatus.PUBLISHED.value)
