"""Request and response schemas of the localization HTTP API."""

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from modules.localization.domain.enums import ReviewAction, WorkflowPriority


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    success: bool = False
    error: str
    error_code: str
    details: Dict[str, Any] = Field(default_factory=dict)


# --- languages ----------------------------------------------------------------


class LanguageCreateRequest(BaseModel):
    """Schema for creating a language; nested sections are validated by the registry."""

    code: Annotated[
        str,
        Field(..., min_length=2, max_length=3, json_schema_extra={"example": "FR"}),
    ]
    name: Annotated[str, Field(..., json_schema_extra={"example": "French"})]
    native_name: Annotated[str, Field(..., json_schema_extra={"example": "Français"})]
    locale: Annotated[str, Field(..., json_schema_extra={"example": "fr-fr"})]
    direction: Optional[str] = None
    is_default: bool = False
    formatting: Optional[Dict[str, Any]] = None
    translation: Annotated[
        Optional[Dict[str, Any]],
        Field(
            default=None,
            description="Providers, auto_translate and quality settings",
            json_schema_extra={
                "example": {
                    "providers": [{"name": "deepl", "priority": 1}],
                    "auto_translate": {"enabled": True, "threshold": 0.8},
                }
            },
        ),
    ] = None
    channel_mappings: Optional[List[Dict[str, Any]]] = None
    contexts: Optional[List[Dict[str, Any]]] = None


class LanguageUpdateRequest(BaseModel):
    changes: Annotated[
        Dict[str, Any],
        Field(..., json_schema_extra={"example": {"name": "French (France)"}}),
    ]
    expected_revision: Annotated[
        Optional[int],
        Field(default=None, ge=1, description="Revision the caller last read"),
    ] = None


class ChannelSupportRequest(BaseModel):
    channel_language_code: Optional[str] = None
    is_supported: bool = True
    is_default: bool = False
    formatting: Optional[Dict[str, Any]] = None


class FormatRequest(BaseModel):
    """Schema for rendering a value with a language's conventions."""

    kind: Literal["number", "currency", "date", "time", "address"]
    value: Annotated[
        Optional[Union[float, datetime, date]],
        Field(default=None, json_schema_extra={"example": 1234.5}),
    ] = None
    style: str = "short"
    decimals: Annotated[int, Field(default=2, ge=0, le=6)] = 2
    symbol: Optional[str] = None
    channel: Optional[str] = None
    context: Optional[str] = None
    parts: Optional[Dict[str, str]] = None


# --- translations -------------------------------------------------------------


class SubmitRequest(BaseModel):
    translated_text: Optional[str] = None


class ApproveRequest(BaseModel):
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    notes: Annotated[str, Field(..., min_length=1, description="Reason for rejection")]


class BulkReviewRequest(BaseModel):
    """Schema for applying one review decision to many translations."""

    ids: Annotated[
        List[str],
        Field(..., min_length=1, json_schema_extra={"example": ["6f1c...", "a93e..."]}),
    ]
    action: ReviewAction
    notes: Optional[str] = None


class CreateVersionRequest(BaseModel):
    resource_type: Annotated[str, Field(..., json_schema_extra={"example": "room_type"})]
    resource_id: str
    field_name: Annotated[str, Field(..., json_schema_extra={"example": "description"})]
    target_language: Annotated[str, Field(..., json_schema_extra={"example": "FR"})]
    translated_text: Annotated[str, Field(..., min_length=1)]
    notes: Optional[str] = None


class TranslateRequest(BaseModel):
    text: Annotated[str, Field(..., min_length=1)]
    source_language: Annotated[str, Field(..., json_schema_extra={"example": "EN"})]
    target_language: Annotated[str, Field(..., json_schema_extra={"example": "DE"})]
    providers: Optional[List[str]] = None
    use_cache: bool = True


class DetectRequest(BaseModel):
    text: Annotated[str, Field(..., min_length=1)]


class InitializeResourceRequest(BaseModel):
    """Schema for opening translation rows for arbitrary fields of a resource."""

    resource_type: str
    resource_id: str
    fields: Annotated[
        Dict[str, Optional[str]],
        Field(..., json_schema_extra={"example": {"name": "Deluxe Room"}}),
    ]
    source_language: str = "EN"
    target_languages: Optional[List[str]] = None
    priority: WorkflowPriority = WorkflowPriority.MEDIUM
    auto_translate: bool = False


class ResourceSaveRequest(BaseModel):
    document: Annotated[
        Dict[str, Any],
        Field(
            ...,
            json_schema_extra={
                "example": {
                    "name": "Deluxe Room",
                    "description": "Sea view",
                    "content": {"base_language": "EN", "auto_translate": True},
                }
            },
        ),
    ]
    target_languages: Optional[List[str]] = None


# --- ui translations ----------------------------------------------------------


class UISaveRequest(BaseModel):
    """Schema for creating or updating a UI key."""

    key: Annotated[str, Field(..., json_schema_extra={"example": "booking.form.submit"})]
    namespace: Annotated[str, Field(default="common", json_schema_extra={"example": "booking"})]
    source_text: Annotated[str, Field(..., min_length=1)]
    translations: Annotated[
        Optional[Dict[str, str]],
        Field(default=None, json_schema_extra={"example": {"FR": "Réserver"}}),
    ] = None
    auto_approve: bool = False
    tags: Optional[List[str]] = None
    priority: Optional[WorkflowPriority] = None
    contexts: Optional[List[str]] = None
    source_language: Optional[str] = None


class UIBatchRequest(BaseModel):
    keys: Annotated[List[str], Field(..., min_length=1)]
    language: str
    namespace: Optional[str] = None


class UITranslateRequest(BaseModel):
    text: Annotated[str, Field(..., min_length=1)]
    target_language: str
    source_language: Optional[str] = None
    namespace: Optional[str] = None
    key: Optional[str] = None
    providers: Optional[List[str]] = None


class UIApproveRequest(BaseModel):
    language: str
