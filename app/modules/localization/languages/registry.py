"""Language registry.

Catalogue of supported languages: creation and updates with optimistic
concurrency on ``revision``, default-language management, OTA channel
mappings and content-completeness bookkeeping.

Provider API keys are never persisted on language documents; they come
from ``TranslationProviderSettings``. Keys sent with a create or update are
dropped (and logged) before the document is written.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.caching import Cache
from infrastructure.logging import get_module_logger
from infrastructure.persistence import (
    BulkUpdate,
    DocumentStore,
    DuplicateDocumentError,
)
from modules.localization.domain.enums import Channel, ContentClass, LanguageContext
from modules.localization.domain.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from modules.localization.domain.models import (
    LANGUAGES,
    ChannelMapping,
    Language,
    normalize_language_code,
    utc_now,
)
from modules.localization.domain.validation import validate_model

logger = get_module_logger()

IMMUTABLE_FIELDS = ("code", "id", "created_at", "revision", "usage", "content_completeness")


def _normalize_code(code: str, field: str = "code") -> str:
    try:
        return normalize_language_code(code)
    except ValueError as exc:
        raise InvalidInputError(str(exc), field=field) from exc


def _merge(base: Dict[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; lists and scalars in ``changes`` replace."""
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _strip_api_keys(data: Dict[str, Any], code: str) -> None:
    providers = (data.get("translation") or {}).get("providers") or []
    for provider in providers:
        if isinstance(provider, dict) and provider.pop("api_key", None):
            logger.warning(
                "provider_credential_ignored",
                language=code,
                provider=provider.get("name"),
            )


class LanguageRegistry:
    """Supported languages stored in the ``languages`` collection.

    Args:
        store: Document store
        default_language: Code promoted by ``ensure_single_default`` when no
            active language is flagged as default
        cache: Optional best-effort cache for ``get_by_code``
        translation_defaults: Deployment defaults for the ``translation``
            section of new languages (auto-translate threshold, minimum
            confidence, fallback to source)
    """

    def __init__(
        self,
        store: DocumentStore,
        default_language: str = "EN",
        cache: Optional[Cache] = None,
        translation_defaults: Optional[Mapping[str, Any]] = None,
    ):
        self.store = store
        self.default_language = default_language.upper()
        self.cache = cache
        self.translation_defaults = dict(translation_defaults or {})

    # -- reads -----------------------------------------------------------------

    def _cache_key(self, code: str) -> str:
        return f"language:{code}"

    def _invalidate(self, code: Optional[str] = None) -> None:
        if not self.cache:
            return
        if code:
            self.cache.delete(self._cache_key(code))
        else:
            self.cache.invalidate_prefix("language:")

    async def _load(self, code: str) -> Optional[Language]:
        doc = await self.store.get(LANGUAGES, code)
        return Language.model_validate(doc) if doc else None

    async def _require(self, code: str, active_only: bool = True) -> Language:
        language = await self._load(code)
        if language is None or (active_only and not language.is_active):
            raise NotFoundError(f"Language '{code}' not found", field="code")
        return language

    async def get_by_code(self, code: str, include_inactive: bool = False) -> Language:
        """Case-insensitive lookup of an active language.

        Raises:
            NotFoundError: If the language is unknown or inactive
        """
        normalized = _normalize_code(code)
        if self.cache and not include_inactive:
            cached = self.cache.get(self._cache_key(normalized))
            if cached is not None:
                return Language.model_validate(cached)
        language = await self._require(normalized, active_only=not include_inactive)
        if self.cache and language.is_active:
            self.cache.set(self._cache_key(normalized), language.to_document())
        return language

    async def find(self, code: str) -> Optional[Language]:
        """Like ``get_by_code`` but returns None for unknown or inactive codes."""
        try:
            return await self.get_by_code(code)
        except (NotFoundError, InvalidInputError):
            return None

    async def list_active(self, filters: Optional[Mapping[str, Any]] = None) -> List[Language]:
        """Active languages, default first, then by name."""
        query: Dict[str, Any] = {"is_active": True}
        query.update(filters or {})
        docs = await self.store.find(LANGUAGES, query, sort=[("is_default", -1), ("name", 1)])
        return [Language.model_validate(doc) for doc in docs]

    async def list_by_channel(self, channel: str) -> List[Language]:
        """Active languages supported on ``channel``; channel default first."""
        Channel(channel)
        docs = await self.store.find(
            LANGUAGES,
            {
                "is_active": True,
                "channel_mappings": {"$elemMatch": {"channel": channel, "is_supported": True}},
            },
        )
        languages = [Language.model_validate(doc) for doc in docs]
        languages.sort(
            key=lambda lang: (not lang.channel_mapping(channel).is_default, lang.name)
        )
        return languages

    async def list_by_context(self, context: str) -> List[Language]:
        """Active languages enabled for ``context``, by context priority then name."""
        LanguageContext(context)
        docs = await self.store.find(
            LANGUAGES,
            {
                "is_active": True,
                "contexts": {"$elemMatch": {"name": context, "enabled": True}},
            },
        )
        languages = [Language.model_validate(doc) for doc in docs]
        languages.sort(key=lambda lang: (lang.context(context).priority, lang.name))
        return languages

    async def get_default(self) -> Language:
        """The active default language (falls back to the configured default)."""
        doc = await self.store.find_one(
            LANGUAGES,
            {"is_default": True, "is_active": True},
            sort=[("updated_at", -1), ("code", 1)],
        )
        if doc:
            return Language.model_validate(doc)
        fallback = await self._load(self.default_language)
        if fallback and fallback.is_active:
            logger.warning("default_language_missing", fallback=fallback.code)
            return fallback
        raise NotFoundError("No default language configured", field="is_default")

    async def is_language_supported(self, code: str, context: Optional[str] = None) -> bool:
        language = await self.find(code)
        if language is None:
            return False
        if context is None:
            return True
        ctx = language.context(context)
        return ctx is not None and ctx.enabled

    async def get_channel_code(self, code: str, channel: str) -> str:
        """Channel-specific language code, else the lowercase language code."""
        language = await self.get_by_code(code)
        mapping = language.channel_mapping(channel)
        if mapping and mapping.channel_language_code:
            return mapping.channel_language_code
        return language.code.lower()

    # -- writes ----------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Language:
        """Create a language.

        The first active language becomes the default; a new default demotes
        the previous one.

        Raises:
            InvalidInputError: If the payload is invalid
            ConflictError: If the code already exists
        """
        payload = dict(data)
        for field in ("revision", "usage", "content_completeness", "created_at", "updated_at"):
            payload.pop(field, None)
        _strip_api_keys(payload, str(payload.get("code")))
        if self.translation_defaults:
            payload["translation"] = _merge(
                self.translation_defaults, payload.get("translation") or {}
            )
        language = validate_model(Language, payload)

        if await self.store.get(LANGUAGES, language.code):
            raise ConflictError(f"Language '{language.code}' already exists", field="code")

        if not language.is_default and not await self.store.count(LANGUAGES, {"is_active": True}):
            language.is_default = True

        try:
            await self.store.insert(LANGUAGES, language.to_document())
        except DuplicateDocumentError as exc:
            raise ConflictError(
                f"Language '{language.code}' already exists", field="code"
            ) from exc

        if language.is_default:
            await self._demote_other_defaults(language.code)
        for mapping in language.channel_mappings:
            if mapping.is_default:
                await self._demote_channel_defaults(mapping.channel, language.code)

        self._invalidate()
        logger.info(
            "language_created",
            language=language.code,
            locale=language.locale,
            is_default=language.is_default,
        )
        return language

    async def update(
        self,
        code: str,
        changes: Mapping[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Language:
        """Update a language under optimistic concurrency.

        ``is_default=True`` is delegated to ``set_default`` and
        ``is_active=False`` to ``deactivate``.

        Raises:
            NotFoundError: If the language does not exist
            ConflictError: If ``expected_revision`` is stale
            InvalidInputError: If the changes are invalid
        """
        normalized = _normalize_code(code)
        current = await self._require(normalized, active_only=False)
        if expected_revision is not None and expected_revision != current.revision:
            raise ConflictError(
                f"Language '{normalized}' was modified (revision {current.revision})",
                field="revision",
                details={"current_revision": current.revision},
            )

        payload = dict(changes)
        for field in IMMUTABLE_FIELDS:
            if field in payload and field != "code":
                payload.pop(field)
        if "code" in payload and _normalize_code(payload.pop("code")) != normalized:
            raise InvalidInputError("Language code cannot be changed", field="code")

        make_default = payload.pop("is_default", None)
        active = payload.pop("is_active", None)
        if make_default is False and current.is_default:
            raise ConflictError(
                "The default language cannot be unset; promote another language instead",
                field="is_default",
            )
        _strip_api_keys(payload, normalized)

        language = current
        if payload:
            merged = _merge(current.to_document(), payload)
            merged["revision"] = current.revision + 1
            merged["updated_at"] = utc_now()
            language = validate_model(Language, merged)
            updated = await self.store.update(
                LANGUAGES,
                normalized,
                {"$set": {k: v for k, v in language.to_document().items() if k != "id"}},
                expected={"revision": current.revision},
            )
            if updated is None:
                raise ConflictError(
                    f"Language '{normalized}' was modified concurrently", field="revision"
                )
            language = Language.model_validate(updated)
            for mapping in language.channel_mappings:
                previous = current.channel_mapping(mapping.channel)
                if mapping.is_default and not (previous and previous.is_default):
                    await self._demote_channel_defaults(mapping.channel, normalized)
            self._invalidate(normalized)
            logger.info("language_updated", language=normalized, revision=language.revision)

        if active is False:
            language = await self.deactivate(normalized)
        elif active is True and not language.is_active:
            language = await self._set_active(language)
        if make_default:
            language = await self.set_default(normalized)
        return language

    async def _set_active(self, language: Language) -> Language:
        updated = await self.store.update(
            LANGUAGES,
            language.code,
            {"$set": {"is_active": True, "updated_at": utc_now()}, "$inc": {"revision": 1}},
            expected={"revision": language.revision},
        )
        if updated is None:
            raise ConflictError(f"Language '{language.code}' was modified concurrently", field="revision")
        self._invalidate(language.code)
        logger.info("language_reactivated", language=language.code)
        return Language.model_validate(updated)

    async def deactivate(self, code: str) -> Language:
        """Deactivate a language (languages are never deleted).

        Raises:
            ConflictError: If the language is the default
        """
        normalized = _normalize_code(code)
        current = await self._require(normalized, active_only=False)
        if current.is_default:
            raise ConflictError(
                "The default language cannot be deactivated", field="is_default"
            )
        if not current.is_active:
            return current
        updated = await self.store.update(
            LANGUAGES,
            normalized,
            {"$set": {"is_active": False, "updated_at": utc_now()}, "$inc": {"revision": 1}},
            expected={"revision": current.revision, "is_default": False},
        )
        if updated is None:
            raise ConflictError(f"Language '{normalized}' was modified concurrently", field="revision")
        self._invalidate(normalized)
        logger.info("language_deactivated", language=normalized)
        return Language.model_validate(updated)

    async def set_default(self, code: str) -> Language:
        """Promote ``code`` to default and demote every other default."""
        normalized = _normalize_code(code)
        target = await self._require(normalized)
        if not target.is_default:
            updated = await self.store.update(
                LANGUAGES,
                normalized,
                {"$set": {"is_default": True, "updated_at": utc_now()}, "$inc": {"revision": 1}},
                expected={"is_active": True},
            )
            if updated is None:
                raise NotFoundError(f"Language '{normalized}' not found", field="code")
            target = Language.model_validate(updated)
        demoted = await self._demote_other_defaults(normalized)
        self._invalidate()
        logger.info("default_language_set", language=normalized, demoted=demoted)
        return target

    async def _demote_other_defaults(self, keep: str) -> int:
        return await self.store.update_many(
            LANGUAGES,
            {"is_default": True, "id": {"$ne": keep}},
            {"$set": {"is_default": False, "updated_at": utc_now()}, "$inc": {"revision": 1}},
        )

    async def set_channel_support(
        self, code: str, channel: str, options: Optional[Mapping[str, Any]] = None
    ) -> Language:
        """Upsert the mapping of ``code`` on ``channel``.

        A default mapping demotes the default of every other language on the
        same channel in one bulk operation.
        """
        normalized = _normalize_code(code)
        options = dict(options or {})
        mapping = validate_model(
            ChannelMapping,
            {
                "channel": channel,
                "channel_language_code": options.get("channel_language_code") or normalized,
                "is_supported": options.get("is_supported", True) is not False,
                "is_default": bool(options.get("is_default", False)),
                "formatting": options.get("formatting") or {},
            },
        )

        for _ in range(3):
            current = await self._require(normalized)
            mappings = [m for m in current.channel_mappings if m.channel != mapping.channel]
            mappings.append(mapping)
            updated = await self.store.update(
                LANGUAGES,
                normalized,
                {
                    "$set": {
                        "channel_mappings": [m.to_document() for m in mappings],
                        "updated_at": utc_now(),
                    },
                    "$inc": {"revision": 1},
                },
                expected={"revision": current.revision},
            )
            if updated is not None:
                break
        else:
            raise ConflictError(f"Language '{normalized}' was modified concurrently", field="revision")

        if mapping.is_default:
            await self._demote_channel_defaults(mapping.channel, normalized)
        self._invalidate(normalized)
        logger.info(
            "channel_support_updated",
            language=normalized,
            channel=mapping.channel,
            is_default=mapping.is_default,
        )
        return Language.model_validate(updated)

    async def _demote_channel_defaults(self, channel: str, keep: str) -> int:
        others = await self.store.find(
            LANGUAGES,
            {
                "id": {"$ne": keep},
                "channel_mappings": {"$elemMatch": {"channel": channel, "is_default": True}},
            },
        )
        if not others:
            return 0
        operations = []
        for doc in others:
            mappings = [dict(m) for m in doc.get("channel_mappings", [])]
            for m in mappings:
                if m.get("channel") == channel:
                    m["is_default"] = False
            operations.append(
                BulkUpdate(
                    doc_id=doc["id"],
                    update={
                        "$set": {"channel_mappings": mappings, "updated_at": utc_now()},
                        "$inc": {"revision": 1},
                    },
                )
            )
        result = await self.store.bulk_update(LANGUAGES, operations)
        self._invalidate()
        logger.info(
            "channel_defaults_demoted",
            channel=channel,
            kept=keep,
            modified=result.modified,
        )
        return result.modified

    async def ensure_single_default(self) -> Optional[str]:
        """Repair default-language drift; idempotent.

        Several defaults: the oldest (created_at, then code) is kept. No active
        default: the configured default language, else the oldest active
        language, is promoted. Defaults on inactive languages are cleared.

        Returns:
            The code of the default language after the pass, or None when no
            active language exists.
        """
        defaults = await self.store.find(
            LANGUAGES,
            {"is_default": True},
            sort=[("created_at", 1), ("code", 1)],
        )
        active_defaults = [d for d in defaults if d.get("is_active")]
        keep: Optional[str] = active_defaults[0]["id"] if active_defaults else None

        if keep is None:
            preferred = await self._load(self.default_language)
            if preferred and preferred.is_active:
                keep = preferred.code
            else:
                oldest = await self.store.find_one(
                    LANGUAGES, {"is_active": True}, sort=[("created_at", 1), ("code", 1)]
                )
                keep = oldest["id"] if oldest else None
            if keep is None:
                logger.warning("ensure_single_default_no_active_language")
                return None
            await self.store.update(
                LANGUAGES,
                keep,
                {"$set": {"is_default": True, "updated_at": utc_now()}, "$inc": {"revision": 1}},
            )
            logger.info("default_language_promoted", language=keep)

        cleared = await self._demote_other_defaults(keep)
        if cleared:
            logger.info("multiple_default_languages_resolved", kept=keep, cleared=cleared)
        self._invalidate()
        return keep

    async def record_usage(self, code: str, content: Optional[str] = None) -> None:
        """Bump request counters of a language (best effort)."""
        update: Dict[str, Any] = {
            "$inc": {"usage.total_requests": 1},
            "$set": {"usage.last_used": utc_now()},
        }
        if content:
            update["$addToSet"] = {"usage.popular_content": content}
        await self.store.update(LANGUAGES, _normalize_code(code), update)

    async def record_translations(self, code: str, count: int = 1) -> None:
        await self.store.update(
            LANGUAGES, _normalize_code(code), {"$inc": {"usage.total_translations": count}}
        )

    async def update_content_completeness(
        self, code: str, content_class: str, percentage: float
    ) -> Language:
        """Store the completeness of ``content_class`` (clamped to 0..100)."""
        normalized = _normalize_code(code)
        try:
            field = ContentClass(content_class).value
        except ValueError as exc:
            raise InvalidInputError(
                f"Unknown content class '{content_class}'", field="content_class"
            ) from exc
        value = max(0, min(100, round(percentage)))
        current = await self._require(normalized, active_only=False)
        completeness = current.content_completeness.model_copy(update={field: value})
        completeness.overall = completeness.recompute_overall()
        now: datetime = utc_now()
        completeness.last_updated = now
        updated = await self.store.update(
            LANGUAGES,
            normalized,
            {"$set": {"content_completeness": completeness.to_document(), "updated_at": now}},
        )
        self._invalidate(normalized)
        logger.debug(
            "language_completeness_updated",
            language=normalized,
            content_class=field,
            percentage=value,
        )
        return Language.model_validate(updated) if updated else current
