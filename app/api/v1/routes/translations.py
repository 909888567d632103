from typing import Optional

from fastapi import APIRouter, Request

from api.dependencies.localization import CurrentUserDep, LocalizationServiceDep
from api.dependencies.rate_limits import get_limiter
from modules.localization import schemas
from modules.localization.domain.models import FieldTranslation, Translation

router = APIRouter(prefix="/translations", tags=["Translations"])
limiter = get_limiter()


# Review queue and statistics
@router.get("/pending")
async def list_pending_translations(
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    target_language: Optional[str] = None,
    assignee: Optional[str] = None,
    priority: Optional[str] = None,
    resource_type: Optional[str] = None,
    stage: Optional[str] = None,
    limit: int = 50,
):
    """Rows awaiting review: due date first, then priority, then age."""
    filters = {
        "target_language": target_language,
        "assignee": assignee,
        "priority": priority,
        "resource_type": resource_type,
        "stage": stage,
    }
    return await service.translations.list_pending(user, filters, limit=limit)


@router.get("/stats")
async def translation_stats(
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    resource_type: Optional[str] = None,
    target_language: Optional[str] = None,
):
    return await service.translations.stats(user, resource_type, target_language)


@router.get("/resource-types/stats")
async def resource_type_stats(
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    resource_type: Optional[str] = None,
    target_language: Optional[str] = None,
):
    """Completeness per (resource type, target language)."""
    return await service.resources.type_stats(user, resource_type, target_language)


@router.get("/queue/stats", tags=["admin"])
async def work_queue_stats(user: CurrentUserDep, service: LocalizationServiceDep):
    return await service.translations.queue_stats(user)


# Providers
@router.get("/providers/supported")
async def supported_languages(user: CurrentUserDep, service: LocalizationServiceDep):
    """Target languages each provider supports."""
    return await service.translations.supported_languages(user)


@router.get("/providers/health", tags=["health"])
async def provider_health(
    user: CurrentUserDep, service: LocalizationServiceDep, probe: bool = False
):
    """Provider health from the circuit breakers; `probe=true` calls each provider."""
    return await service.translations.provider_health(user, probe=probe)


@router.post("/detect")
@limiter.limit("60/minute")
async def detect_language(
    request: Request,  # pylint: disable=unused-argument
    body: schemas.DetectRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.translations.detect_language(user, body.text)


@router.post("/translate")
@limiter.limit("60/minute")
async def translate_text(
    request: Request,  # pylint: disable=unused-argument
    body: schemas.TranslateRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Machine-translate text through the provider fallback chain; nothing is stored."""
    options = {"use_cache": body.use_cache}
    if body.providers:
        options["providers"] = body.providers
    return await service.translations.translate(
        user, body.text, body.source_language, body.target_language, options
    )


# Bulk and versioning
@router.post("/bulk-review")
async def bulk_review(
    request: schemas.BulkReviewRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Approve or reject many translations in one batch.

    Rows that are not eligible are reported per item and never abort the
    batch.
    """
    return await service.translations.bulk_update(
        user, request.ids, request.action.value, request.notes
    )


@router.post("/versions", response_model=Translation)
async def create_translation_version(
    request: schemas.CreateVersionRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Supersede the active translation of a field with new text."""
    return await service.translations.create_version(
        user,
        request.resource_type,
        request.resource_id,
        request.field_name,
        request.target_language,
        request.translated_text,
        notes=request.notes,
    )


@router.post("/initialize")
async def initialize_resource(
    request: schemas.InitializeResourceRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    rows = await service.translations.initialize_resource(
        user,
        request.resource_type,
        request.resource_id,
        request.fields,
        request.source_language,
        target_languages=request.target_languages,
        priority=request.priority.value,
        auto_translate=request.auto_translate,
    )
    return {"opened": len(rows), "translations": rows}


@router.post("/initialize/bulk")
async def bulk_initialize(
    requests: list[schemas.InitializeResourceRequest],
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    items = [item.model_dump(mode="json") for item in requests]
    return await service.translations.bulk_initialize(user, items)


# Resources
@router.get("/resources/{resource_type}")
async def list_resources(
    resource_type: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    language: Optional[str] = None,
    limit: Optional[int] = None,
    skip: int = 0,
):
    """Resources of a type, localized when `language` is given."""
    return await service.resources.list(user, resource_type, language, limit=limit, skip=skip)


@router.post("/resources/{resource_type}")
async def save_resource(
    resource_type: str,
    request: schemas.ResourceSaveRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Create or update a resource and open translations for its changed fields."""
    return await service.resources.save(
        user, resource_type, request.document, target_languages=request.target_languages
    )


@router.get("/resources/{resource_type}/{resource_id}")
async def get_resource_translations(
    resource_type: str,
    resource_id: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    target_language: Optional[str] = None,
    approved_only: bool = False,
    include_history: bool = False,
):
    return await service.translations.get_for_resource(
        user,
        resource_type,
        resource_id,
        target_language=target_language,
        approved_only=approved_only,
        include_history=include_history,
    )


@router.get("/resources/{resource_type}/{resource_id}/localized")
async def localize_resource(
    resource_type: str,
    resource_id: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    language: Optional[str] = None,
):
    """The resource with approved translations overlaid on its source fields."""
    return await service.resources.localize(user, resource_type, resource_id, language)


@router.get("/resources/{resource_type}/{resource_id}/languages")
async def resource_languages(
    resource_type: str, resource_id: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return await service.resources.available_languages(user, resource_type, resource_id)


@router.get("/resources/{resource_type}/{resource_id}/workflow")
async def resource_workflow_status(
    resource_type: str, resource_id: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return await service.translations.workflow_status(user, resource_type, resource_id)


@router.get("/resources/{resource_type}/{resource_id}/completeness/{language}")
async def resource_completeness(
    resource_type: str,
    resource_id: str,
    language: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    completeness = await service.resources.completeness(
        user, resource_type, resource_id, language
    )
    return {"language": language.upper(), "completeness": completeness}


@router.get(
    "/resources/{resource_type}/{resource_id}/fields/{field_name}/{target_language}",
    response_model=FieldTranslation,
)
async def get_field_translation(
    resource_type: str,
    resource_id: str,
    field_name: str,
    target_language: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    approved_only: bool = True,
    context: Optional[str] = None,
):
    """Served text of one field; falls back to the source text while pending."""
    return await service.translations.get_field(
        user,
        resource_type,
        resource_id,
        field_name,
        target_language,
        approved_only=approved_only,
        usage_context=context,
    )


@router.get(
    "/resources/{resource_type}/{resource_id}/fields/{field_name}/{target_language}/history"
)
async def get_field_history(
    resource_type: str,
    resource_id: str,
    field_name: str,
    target_language: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Version chain of a field, newest first."""
    return await service.translations.history(
        user, resource_type, resource_id, field_name, target_language
    )


# Single rows and workflow transitions
@router.get("/{translation_id}", response_model=Translation)
async def get_translation(
    translation_id: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return await service.translations.get(user, translation_id)


@router.post("/{translation_id}/submit", response_model=Translation)
async def submit_translation(
    translation_id: str,
    request: schemas.SubmitRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.translations.submit(user, translation_id, request.translated_text)


@router.post("/{translation_id}/complete", response_model=Translation)
async def complete_translation(
    translation_id: str,
    request: schemas.SubmitRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.translations.complete(user, translation_id, request.translated_text)


@router.post("/{translation_id}/approve", response_model=Translation)
async def approve_translation(
    translation_id: str,
    request: schemas.ApproveRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.translations.approve(user, translation_id, request.notes)


@router.post("/{translation_id}/reject", response_model=Translation)
async def reject_translation(
    translation_id: str,
    request: schemas.RejectRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.translations.reject(user, translation_id, request.notes)


@router.post("/{translation_id}/publish", response_model=Translation)
async def publish_translation(
    translation_id: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return await service.translations.publish(user, translation_id)
