from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Request, Response, status

from api.dependencies.localization import CurrentUserDep, LocalizationServiceDep
from api.dependencies.rate_limits import get_limiter
from modules.localization import schemas
from modules.localization.domain.models import UITranslation

router = APIRouter(prefix="/ui-translations", tags=["UI Translations"])
limiter = get_limiter()


@router.get("/namespaces")
async def list_namespaces(user: CurrentUserDep, service: LocalizationServiceDep):
    """Namespaces with key counts and per-language completeness."""
    return await service.ui.list_namespaces(user)


@router.get("/stats")
async def ui_translation_stats(
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    namespace: Optional[str] = None,
    language: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    date_range = (start, end) if start or end else None
    return await service.ui.stats(user, namespace, language, date_range)


@router.post("/batch")
async def get_batch(
    request: schemas.UIBatchRequest, user: CurrentUserDep, service: LocalizationServiceDep
):
    """Text for each key; unknown keys are returned as themselves."""
    return await service.ui.get_batch(user, request.keys, request.language, request.namespace)


@router.post("/translate")
@limiter.limit("60/minute")
async def translate_and_persist(
    request: Request,  # pylint: disable=unused-argument
    body: schemas.UITranslateRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Machine-translate text; with `namespace` and `key` the result is stored as well."""
    options = {"providers": body.providers} if body.providers else None
    return await service.ui.translate_and_persist(
        user,
        body.text,
        body.target_language,
        source_language=body.source_language,
        namespace=body.namespace,
        key=body.key,
        options=options,
    )


@router.post("", response_model=UITranslation)
async def save_ui_translation(
    request: schemas.UISaveRequest, user: CurrentUserDep, service: LocalizationServiceDep
):
    """Create or update a key; languages not named in `translations` are kept."""
    return await service.ui.save(
        user,
        request.key,
        request.namespace,
        request.source_text,
        request.translations,
        auto_approve=request.auto_approve,
        tags=request.tags,
        priority=request.priority.value if request.priority else None,
        contexts=request.contexts,
        source_language=request.source_language,
    )


@router.get("/{namespace}")
async def get_namespace(
    namespace: str,
    language: str,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    include_status: bool = False,
    context: Optional[str] = None,
):
    """Every key of a namespace; missing translations carry the source text."""
    return await service.ui.get_namespace(user, namespace, language, include_status, context)


@router.delete("/{namespace}/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ui_translation(
    namespace: str, key: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    await service.ui.delete(user, namespace, key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{namespace}/{key}/approve", response_model=UITranslation)
async def approve_ui_translation(
    namespace: str,
    key: str,
    request: schemas.UIApproveRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.ui.approve(user, namespace, key, request.language)
