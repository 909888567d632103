from typing import Any, Dict, List, Optional

from fastapi import APIRouter, status

from api.dependencies.localization import CurrentUserDep, LocalizationServiceDep
from modules.localization import schemas

# Thin adapters: validate the request, call the service verb, return its result.
router = APIRouter(prefix="/languages", tags=["Languages"])


@router.get("", response_model=List[Dict[str, Any]])
async def list_languages(
    user: CurrentUserDep,
    service: LocalizationServiceDep,
    direction: Optional[str] = None,
):
    """Active languages, default first."""
    filters = {"direction": direction} if direction else None
    return await service.languages.list(user, filters)


@router.get("/default")
async def get_default_language(user: CurrentUserDep, service: LocalizationServiceDep):
    return await service.languages.get_default(user)


@router.get("/channel/{channel}")
async def list_languages_by_channel(
    channel: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    """Languages supported on an OTA channel, channel default first."""
    return await service.languages.list_by_channel(user, channel)


@router.get("/context/{context}")
async def list_languages_by_context(
    context: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return await service.languages.list_by_context(user, context)


@router.get("/{code}")
async def get_language(code: str, user: CurrentUserDep, service: LocalizationServiceDep):
    return await service.languages.get_by_code(user, code)


@router.get("/{code}/channels/{channel}/code")
async def get_channel_language_code(
    code: str, channel: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    """Code a channel expects for this language."""
    return {
        "code": code.upper(),
        "channel": channel,
        "channel_language_code": await service.languages.channel_code(user, code, channel),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_language(
    request: schemas.LanguageCreateRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Create a language (admin).

    The first active language, or one created with `is_default`, becomes the
    default; provider API keys are never stored.
    """
    return await service.languages.create(user, request.model_dump(exclude_none=True))


@router.patch("/{code}")
async def update_language(
    code: str,
    request: schemas.LanguageUpdateRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Update a language (admin).

    Pass `expected_revision` to fail with 409 when the language changed since
    it was read.
    """
    return await service.languages.update(
        user, code, request.changes, request.expected_revision
    )


@router.post("/{code}/deactivate")
async def deactivate_language(code: str, user: CurrentUserDep, service: LocalizationServiceDep):
    return await service.languages.deactivate(user, code)


@router.post("/{code}/default")
async def set_default_language(code: str, user: CurrentUserDep, service: LocalizationServiceDep):
    return await service.languages.set_default(user, code)


@router.put("/{code}/channels/{channel}")
async def set_channel_support(
    code: str,
    channel: str,
    request: schemas.ChannelSupportRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    return await service.languages.set_channel_support(
        user, code, channel, request.model_dump(exclude_none=True)
    )


@router.post("/{code}/completeness/refresh")
async def refresh_language_completeness(
    code: str, user: CurrentUserDep, service: LocalizationServiceDep
):
    return {
        "code": code.upper(),
        "content_completeness": await service.languages.refresh_completeness(user, code),
    }


@router.post("/{code}/format")
async def format_value(
    code: str,
    request: schemas.FormatRequest,
    user: CurrentUserDep,
    service: LocalizationServiceDep,
):
    """Render a number, amount, date, time or address the way the language writes it."""
    options = request.model_dump(exclude_none=True, exclude={"kind", "value"})
    return {
        "code": code.upper(),
        "kind": request.kind,
        "formatted": await service.languages.format(
            user, code, request.kind, request.value, **options
        ),
    }
