"""Service boundary for the localization module.

Verb-style operations used by the HTTP controllers and in-process callers.
Each verb takes the calling ``User`` first, checks its role, validates the
input and delegates to the components held by the LocalizationContext:

- ``languages``: language catalogue, formatting and channel codes
- ``translations``: translation rows, workflow transitions and statistics
- ``ui``: UI string namespaces
- ``resources``: owning resources and their localized views

Reads need an authenticated caller. Writes need ``admin`` or the role named
on the verb; a missing role is a PermissionDeniedError. Persistence failures
surface as InternalError.
"""

import functools
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from infrastructure.identity import Role, User
from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentStoreError, DuplicateDocumentError
from modules.localization.context import LocalizationContext
from modules.localization.domain.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    error_from_result,
)
from modules.localization.domain.models import (
    FieldTranslation,
    Translation,
    UITranslation,
    normalize_language_code,
)
from modules.localization.languages import formatting

logger = get_module_logger()

__all__ = [
    "LocalizationService",
    "LanguageVerbs",
    "TranslationVerbs",
    "UIVerbs",
    "ResourceVerbs",
]


def store_errors_as_internal(func):
    """Surface persistence failures of a verb as InternalError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DuplicateDocumentError as e:
            raise ConflictError(str(e), field="id") from e
        except DocumentStoreError as e:
            status = e.result.status.value if e.result else None
            logger.error("localization_store_failure", verb=func.__qualname__, error=str(e))
            raise InternalError(
                "The translation store is unavailable", details={"status": status}
            ) from e

    return wrapper


def language_code(value: str, field: str = "language") -> str:
    try:
        return normalize_language_code(value)
    except ValueError as e:
        raise InvalidInputError(str(e), field=field) from e


def require_user(user: Optional[User]) -> User:
    if user is None:
        raise PermissionDeniedError("Authentication required")
    return user


def require_role(user: Optional[User], *roles: Role) -> User:
    """Caller must hold one of ``roles``; admins hold every role."""
    user = require_user(user)
    if not user.has_role(*roles):
        wanted = ", ".join(dict.fromkeys(r.value for r in (Role.ADMIN, *roles)))
        logger.warning(
            "localization_permission_denied",
            user_id=user.user_id,
            roles=user.roles,
            required=wanted,
        )
        raise PermissionDeniedError(
            f"One of the roles [{wanted}] is required", details={"required": wanted}
        )
    return user


class _Verbs:
    def __init__(self, context: LocalizationContext):
        self.context = context


class LanguageVerbs(_Verbs):
    """Language catalogue verbs; results never carry provider API keys."""

    @store_errors_as_internal
    async def list(self, user: User, filters: Optional[Mapping[str, Any]] = None) -> List[dict]:
        require_user(user)
        return [lang.public_view() for lang in await self.context.languages.list_active(filters)]

    @store_errors_as_internal
    async def get_by_code(self, user: User, code: str) -> dict:
        require_user(user)
        language = await self.context.languages.get_by_code(code)
        return language.public_view()

    @store_errors_as_internal
    async def get_default(self, user: User) -> dict:
        require_user(user)
        return (await self.context.languages.get_default()).public_view()

    @store_errors_as_internal
    async def list_by_channel(self, user: User, channel: str) -> List[dict]:
        require_user(user)
        try:
            languages = await self.context.languages.list_by_channel(channel)
        except ValueError as e:
            raise InvalidInputError(f"Unknown channel '{channel}'", field="channel") from e
        return [lang.public_view() for lang in languages]

    @store_errors_as_internal
    async def list_by_context(self, user: User, context: str) -> List[dict]:
        require_user(user)
        try:
            languages = await self.context.languages.list_by_context(context)
        except ValueError as e:
            raise InvalidInputError(f"Unknown context '{context}'", field="context") from e
        return [lang.public_view() for lang in languages]

    @store_errors_as_internal
    async def channel_code(self, user: User, code: str, channel: str) -> str:
        require_user(user)
        return await self.context.languages.get_channel_code(code, channel)

    @store_errors_as_internal
    async def format(
        self, user: User, code: str, kind: str, value: Any = None, **options: Any
    ) -> str:
        """Render ``value`` with the number, date or address conventions of ``code``."""
        require_user(user)
        language = await self.context.languages.get_by_code(code)
        channel = options.get("channel")
        context = options.get("context")
        if kind == "address":
            return formatting.format_address(language, **(options.get("parts") or {}))
        if value is None:
            raise InvalidInputError(f"A value is required to format a {kind}", field="value")
        if kind == "number":
            return formatting.format_number(
                language, value, options.get("decimals", 2), channel=channel, context=context
            )
        if kind == "currency":
            return formatting.format_currency(
                language,
                value,
                symbol=options.get("symbol"),
                decimals=options.get("decimals", 2),
                channel=channel,
            )
        if isinstance(value, (int, float)):
            raise InvalidInputError(f"A date is required to format a {kind}", field="value")
        style = options.get("style", "short")
        if kind == "date":
            return formatting.format_date(language, value, style, channel=channel, context=context)
        if kind == "time":
            return formatting.format_time(language, value, style, channel=channel, context=context)
        raise InvalidInputError(f"Unknown format kind '{kind}'", field="kind")

    @store_errors_as_internal
    async def create(self, user: User, data: Mapping[str, Any]) -> dict:
        require_role(user, Role.ADMIN)
        language = await self.context.languages.create(data)
        logger.info("language_created_by", language=language.code, user_id=user.user_id)
        return language.public_view()

    @store_errors_as_internal
    async def update(
        self,
        user: User,
        code: str,
        changes: Mapping[str, Any],
        expected_revision: Optional[int] = None,
    ) -> dict:
        require_role(user, Role.ADMIN)
        language = await self.context.languages.update(code, changes, expected_revision)
        return language.public_view()

    @store_errors_as_internal
    async def deactivate(self, user: User, code: str) -> dict:
        require_role(user, Role.ADMIN)
        return (await self.context.languages.deactivate(code)).public_view()

    @store_errors_as_internal
    async def set_default(self, user: User, code: str) -> dict:
        require_role(user, Role.ADMIN)
        return (await self.context.languages.set_default(code)).public_view()

    @store_errors_as_internal
    async def set_channel_support(
        self,
        user: User,
        code: str,
        channel: str,
        options: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        require_role(user, Role.ADMIN)
        language = await self.context.languages.set_channel_support(code, channel, options)
        return language.public_view()

    @store_errors_as_internal
    async def refresh_completeness(self, user: User, code: str) -> Dict[str, int]:
        require_role(user, Role.ADMIN)
        code = language_code(code, "code")
        return await self.context.stats.refresh_language_completeness(code)


class TranslationVerbs(_Verbs):
    """Translation rows: reads, workflow transitions, providers and statistics."""

    @store_errors_as_internal
    async def get(self, user: User, translation_id: str) -> Translation:
        require_user(user)
        return await self.context.store.get(translation_id)

    @store_errors_as_internal
    async def get_for_resource(
        self,
        user: User,
        resource_type: str,
        resource_id: str,
        target_language: Optional[str] = None,
        approved_only: bool = False,
        include_history: bool = False,
    ) -> List[Translation]:
        require_user(user)
        if target_language:
            target_language = language_code(target_language, "target_language")
        return await self.context.store.get_for_resource(
            resource_type,
            resource_id,
            target_language=target_language,
            approved_only=approved_only,
            include_history=include_history,
        )

    @store_errors_as_internal
    async def get_field(
        self,
        user: User,
        resource_type: str,
        resource_id: str,
        field_name: str,
        target_language: str,
        approved_only: bool = True,
        usage_context: Optional[str] = None,
    ) -> FieldTranslation:
        """Served text of one field, honouring the language's fallback setting."""
        require_user(user)
        language = await self.context.languages.find(target_language)
        fallback = (
            language.translation.quality.fallback_to_source
            if language
            else self.context.settings.localization.fallback_to_source
        )
        result = await self.context.store.get_field(
            resource_type,
            resource_id,
            field_name,
            target_language,
            approved_only=approved_only,
            fallback_to_source=fallback,
        )
        if usage_context and result.translation is not None and not result.is_fallback:
            await self.context.store.track_usage(result.translation, usage_context)
        return result

    @store_errors_as_internal
    async def history(
        self,
        user: User,
        resource_type: str,
        resource_id: str,
        field_name: str,
        target_language: str,
    ) -> List[Translation]:
        require_user(user)
        key = self.context.store.make_key(resource_type, resource_id, field_name, target_language)
        return await self.context.store.get_history(key)

    @store_errors_as_internal
    async def list_pending(
        self, user: User, filters: Optional[Mapping[str, Any]] = None, limit: int = 50
    ) -> List[Translation]:
        require_user(user)
        if limit < 1:
            raise InvalidInputError("Limit must be positive", field="limit")
        filters = dict(filters or {})
        if filters.get("target_language"):
            filters["target_language"] = language_code(filters["target_language"], "target_language")
        return await self.context.store.get_pending(filters, limit=limit)

    @store_errors_as_internal
    async def submit(
        self, user: User, translation_id: str, translated_text: Optional[str] = None
    ) -> Translation:
        require_role(user, Role.TRANSLATOR)
        return await self.context.engine.submit(translation_id, user.user_id, translated_text)

    @store_errors_as_internal
    async def complete(
        self, user: User, translation_id: str, translated_text: Optional[str] = None
    ) -> Translation:
        require_role(user, Role.TRANSLATOR)
        return await self.context.engine.complete(translation_id, user.user_id, translated_text)

    @store_errors_as_internal
    async def approve(
        self, user: User, translation_id: str, notes: Optional[str] = None
    ) -> Translation:
        require_role(user, Role.REVIEWER)
        return await self.context.engine.approve(translation_id, user.user_id, notes)

    @store_errors_as_internal
    async def reject(self, user: User, translation_id: str, notes: str) -> Translation:
        require_role(user, Role.REVIEWER)
        return await self.context.engine.reject(translation_id, user.user_id, notes)

    @store_errors_as_internal
    async def publish(self, user: User, translation_id: str) -> Translation:
        require_role(user, Role.REVIEWER)
        return await self.context.engine.publish(translation_id, user.user_id)

    @store_errors_as_internal
    async def bulk_update(
        self,
        user: User,
        translation_ids: Sequence[str],
        action: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_role(user, Role.REVIEWER)
        if not translation_ids:
            raise InvalidInputError("At least one translation id is required", field="ids")
        return await self.context.engine.bulk_review(translation_ids, action, user.user_id, notes)

    @store_errors_as_internal
    async def create_version(
        self,
        user: User,
        resource_type: str,
        resource_id: str,
        field_name: str,
        target_language: str,
        translated_text: str,
        notes: Optional[str] = None,
    ) -> Translation:
        """Supersede the active row of a key with manually supplied text.

        The new version starts at stage ``translation`` awaiting review.
        """
        require_role(user, Role.TRANSLATOR)
        if not translated_text or not translated_text.strip():
            raise InvalidInputError("Translated text is required", field="translated_text")
        key = self.context.store.make_key(resource_type, resource_id, field_name, target_language)
        current = await self.context.store.get_active(key)
        if current is None:
            raise NotFoundError(
                f"No translation exists for '{key.dedup_key}'", field="field_name"
            )
        successor = await self.context.store.create_new_version(
            current,
            translated_text,
            user.user_id,
            translation_method="manual",
            provider=None,
            quality={"confidence": 1.0},
            workflow={"notes": notes} if notes else {},
        )
        await self.context.stats.on_translation_changed(successor)
        return successor

    @store_errors_as_internal
    async def translate(
        self,
        user: User,
        text: str,
        source_language: str,
        target_language: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Ad-hoc machine translation; nothing is stored."""
        require_role(user, Role.TRANSLATOR)
        language = await self.context.languages.find(target_language)
        result = await self.context.gateway.translate(
            text, source_language, target_language, language=language, options=options
        )
        if not result.is_success:
            raise error_from_result(result)
        return result.data.to_dict()

    async def detect_language(self, user: User, text: str) -> Dict[str, Any]:
        require_user(user)
        result = await self.context.gateway.detect_language(text)
        if not result.is_success:
            raise error_from_result(result)
        return result.data.to_dict()

    async def supported_languages(self, user: User) -> Dict[str, List[str]]:
        require_user(user)
        return await self.context.gateway.list_supported_languages()

    async def provider_health(self, user: User, probe: bool = False) -> Dict[str, Dict[str, Any]]:
        require_user(user)
        return await self.context.gateway.health(probe=probe)

    @store_errors_as_internal
    async def workflow_status(self, user: User, resource_type: str, resource_id: str) -> Dict[str, Any]:
        require_user(user)
        return await self.context.engine.get_workflow_status(resource_type, resource_id)

    @store_errors_as_internal
    async def stats(
        self,
        user: User,
        resource_type: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_user(user)
        if target_language:
            target_language = language_code(target_language, "target_language")
        return await self.context.stats.translation_stats(resource_type, target_language)

    @store_errors_as_internal
    async def initialize_resource(
        self,
        user: User,
        resource_type: str,
        resource_id: str,
        fields: Mapping[str, Optional[str]],
        source_language: str,
        target_languages: Optional[Sequence[str]] = None,
        **options: Any,
    ) -> List[Translation]:
        require_role(user, Role.TRANSLATOR)
        return await self.context.engine.initialize_resource(
            resource_type,
            resource_id,
            fields,
            source_language,
            user.user_id,
            target_languages=target_languages,
            **options,
        )

    @store_errors_as_internal
    async def bulk_initialize(
        self, user: User, items: Sequence[Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        require_role(user, Role.TRANSLATOR)
        return await self.context.engine.bulk_initialize(items, user.user_id)

    async def queue_stats(self, user: User) -> Dict[str, Any]:
        require_role(user, Role.ADMIN)
        return await self.context.work_queue.stats()


class UIVerbs(_Verbs):
    """UI namespace verbs."""

    @store_errors_as_internal
    async def list_namespaces(self, user: User) -> List[Dict[str, Any]]:
        require_user(user)
        return await self.context.ui.list_namespaces()

    @store_errors_as_internal
    async def get_namespace(
        self,
        user: User,
        namespace: str,
        language: str,
        include_status: bool = False,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_user(user)
        return await self.context.ui.get_namespace(namespace, language, include_status, context)

    @store_errors_as_internal
    async def get_batch(
        self,
        user: User,
        keys: Sequence[str],
        language: str,
        namespace: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_user(user)
        return await self.context.ui.get_batch(keys, language, namespace)

    @store_errors_as_internal
    async def translate_and_persist(
        self,
        user: User,
        text: str,
        target_language: str,
        source_language: Optional[str] = None,
        namespace: Optional[str] = None,
        key: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        require_role(user, Role.TRANSLATOR)
        return await self.context.ui.translate_and_persist(
            namespace, key, text, source_language, target_language, options
        )

    @store_errors_as_internal
    async def save(
        self,
        user: User,
        key: str,
        namespace: str,
        source_text: str,
        translations: Optional[Mapping[str, str]] = None,
        auto_approve: bool = False,
        **options: Any,
    ) -> UITranslation:
        require_role(user, Role.TRANSLATOR)
        if auto_approve:
            # landing entries as approved is a review decision
            require_role(user, Role.REVIEWER)
        return await self.context.ui.save(
            key,
            namespace,
            source_text,
            translations,
            auto_approve=auto_approve,
            reviewer=user.user_id if auto_approve else None,
            **options,
        )

    @store_errors_as_internal
    async def delete(self, user: User, namespace: str, key: str) -> None:
        require_role(user, Role.ADMIN)
        await self.context.ui.delete_entry(namespace, key)

    @store_errors_as_internal
    async def approve(self, user: User, namespace: str, key: str, language: str) -> UITranslation:
        require_role(user, Role.REVIEWER)
        return await self.context.ui.approve_entry(namespace, key, language, user.user_id)

    @store_errors_as_internal
    async def stats(
        self,
        user: User,
        namespace: Optional[str] = None,
        language: Optional[str] = None,
        date_range: Optional[Tuple[Optional[datetime], Optional[datetime]]] = None,
    ) -> Dict[str, Any]:
        require_user(user)
        return await self.context.ui.stats(namespace, language, date_range)


class ResourceVerbs(_Verbs):
    """Owning resources: localized reads and edits that open translation rows."""

    @store_errors_as_internal
    async def localize(
        self, user: User, resource_type: str, resource_id: str, language: Optional[str] = None
    ) -> Dict[str, Any]:
        require_user(user)
        if language is None:
            return await self.context.resources.get(resource_type, resource_id)
        return await self.context.adapter.localize(
            resource_type, resource_id, language_code(language)
        )

    @store_errors_as_internal
    async def list(
        self,
        user: User,
        resource_type: str,
        language: Optional[str] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        require_user(user)
        resources = await self.context.resources.find(resource_type, limit=limit, skip=skip)
        if language is None:
            return resources
        return await self.context.adapter.localize_many(
            resource_type,
            [resource["id"] for resource in resources],
            language_code(language),
        )

    @store_errors_as_internal
    async def available_languages(
        self, user: User, resource_type: str, resource_id: str
    ) -> List[str]:
        require_user(user)
        return await self.context.adapter.available_languages(resource_type, resource_id)

    @store_errors_as_internal
    async def save(
        self,
        user: User,
        resource_type: str,
        document: Mapping[str, Any],
        target_languages: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Store a resource and open translation rows for its changed fields.

        Returns ``{"resource", "opened"}`` with the number of rows opened.
        """
        require_role(user, Role.ADMIN)
        stored, previous = await self.context.resources.save(resource_type, document)
        opened = await self.context.adapter.on_resource_changed(
            resource_type,
            stored,
            previous=previous,
            author=user.user_id,
            targets=target_languages,
        )
        await self.context.stats.refresh_resource_status(resource_type, stored["id"])
        resource = await self.context.resources.get(resource_type, stored["id"])
        return {"resource": resource, "opened": len(opened)}

    @store_errors_as_internal
    async def completeness(
        self, user: User, resource_type: str, resource_id: str, language: str
    ) -> int:
        require_user(user)
        language = language_code(language)
        return await self.context.stats.resource_completeness(resource_type, resource_id, language)

    @store_errors_as_internal
    async def type_stats(
        self,
        user: User,
        resource_type: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        require_user(user)
        if target_language:
            target_language = language_code(target_language, "target_language")
        return await self.context.stats.resource_type_stats(resource_type, target_language)


class LocalizationService:
    """Entry point bundling the verb groups over one LocalizationContext.

    Example:
        service = LocalizationService(context)
        await service.translations.approve(user, translation_id)
    """

    def __init__(self, context: LocalizationContext):
        self.context = context
        self.languages = LanguageVerbs(context)
        self.translations = TranslationVerbs(context)
        self.ui = UIVerbs(context)
        self.resources = ResourceVerbs(context)
