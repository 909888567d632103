"""UI string translations grouped by namespace.

Each document holds one key of one namespace with its source text and one
entry per translated language. Namespace reads fall back to the source text
for missing languages; completeness counts approved and published entries
over every key of the namespace.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from infrastructure.caching import Cache, CacheKeyBuilder
from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentStore
from modules.localization.domain.enums import (
    COMPLETE_ENTRY_STATUSES,
    EntryStatus,
    WorkflowPriority,
)
from modules.localization.domain.errors import InvalidInputError, NotFoundError, error_from_result
from modules.localization.domain.models import (
    UI_KEY_PATTERN,
    UI_TRANSLATIONS,
    UIEntry,
    UITranslation,
    normalize_language_code,
    utc_now,
)
from modules.localization.domain.validation import validate_model
from modules.localization.providers.gateway import ProviderGateway
from modules.localization.ui.catalog import YAMLCatalogLoader, interpolate

logger = get_module_logger()

DEFAULT_NAMESPACE = "common"
MANUAL_PROVIDER = "manual"


def _language_code(value: str, field: str = "language") -> str:
    try:
        return normalize_language_code(value)
    except ValueError as exc:
        raise InvalidInputError(str(exc), field=field) from exc


def percentage(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _priority(value: str) -> WorkflowPriority:
    try:
        return WorkflowPriority(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown priority '{value}'", field="priority") from exc


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # naive bounds are read as UTC; stored timestamps are aware
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UITranslationService:
    """Namespace reads, edits, approvals and statistics for UI strings.

    Args:
        documents: Document store holding the ``ui_translations`` collection
        gateway: Provider gateway used by ``translate_and_persist``
        cache: Optional cache for namespace views
        cache_ttl_seconds: TTL of cached namespace views
        source_language: Source language of seeded and new keys
    """

    def __init__(
        self,
        documents: DocumentStore,
        gateway: ProviderGateway,
        cache: Optional[Cache] = None,
        cache_ttl_seconds: float = 60.0,
        source_language: str = "EN",
    ):
        self.documents = documents
        self.gateway = gateway
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.source_language = _language_code(source_language)
        self._keys = CacheKeyBuilder("ui_namespace")

    # -- helpers ---------------------------------------------------------------

    def _invalidate(self, namespace: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_prefix(self._keys.prefix(namespace))

    @staticmethod
    def _check_key(namespace: str, key: str) -> None:
        if not namespace:
            raise InvalidInputError("Namespace is required", field="namespace")
        if not key or not UI_KEY_PATTERN.match(key):
            raise InvalidInputError(
                f"Invalid key '{key}': expected a dotted path such as 'category.sub.item'",
                field="key",
            )

    async def _load(self, namespace: str, key: str) -> Optional[UITranslation]:
        doc = await self.documents.get(UI_TRANSLATIONS, UITranslation.document_id(namespace, key))
        return UITranslation.model_validate(doc) if doc else None

    async def _active_docs(
        self, namespace: str, context: Optional[str] = None
    ) -> List[UITranslation]:
        query: Dict[str, Any] = {"namespace": namespace, "is_active": True}
        if context:
            query["contexts"] = context
        docs = await self.documents.find(UI_TRANSLATIONS, query, sort=[("key", 1)])
        return [UITranslation.model_validate(doc) for doc in docs]

    async def _write(self, item: UITranslation, created: bool) -> UITranslation:
        item.updated_at = utc_now()
        doc = item.to_document()
        if created:
            stored = await self.documents.insert(UI_TRANSLATIONS, doc)
        else:
            changes = {k: v for k, v in doc.items() if k not in ("id", "created_at")}
            stored = await self.documents.update(UI_TRANSLATIONS, doc["id"], {"$set": changes})
            if stored is None:
                raise NotFoundError(
                    f"UI translation '{item.namespace}:{item.key}' not found", field="key"
                )
        self._invalidate(item.namespace)
        return UITranslation.model_validate(stored)

    @staticmethod
    def _put_entry(item: UITranslation, entry: UIEntry) -> None:
        for index, existing in enumerate(item.translations):
            if existing.language == entry.language:
                item.translations[index] = entry
                return
        item.translations.append(entry)

    # -- reads -----------------------------------------------------------------

    async def list_namespaces(self) -> List[Dict[str, Any]]:
        """Namespaces with key counts, languages and per-language completeness."""
        keys = await self.documents.group_count(
            UI_TRANSLATIONS, {"is_active": True}, by=["namespace"]
        )
        entries = await self.documents.group_count(
            UI_TRANSLATIONS,
            {"is_active": True},
            by=["namespace", "translations.language"],
            unwind="translations",
            sums={"complete": {"translations.status": {"$in": list(COMPLETE_ENTRY_STATUSES)}}},
        )
        latest = await self.documents.find(
            UI_TRANSLATIONS, {"is_active": True}, sort=[("updated_at", -1)]
        )
        last_updated: Dict[str, Any] = {}
        for doc in latest:
            last_updated.setdefault(doc["namespace"], doc.get("updated_at"))

        namespaces: Dict[str, Dict[str, Any]] = {}
        for group in keys:
            name = group["key"]["namespace"]
            namespaces[name] = {
                "name": name,
                "key_count": group["count"],
                "languages": [],
                "completeness": {},
                "last_updated": last_updated.get(name),
            }
        for group in entries:
            namespace = namespaces[group["key"]["namespace"]]
            language = group["key"]["translations.language"]
            namespace["languages"].append(language)
            namespace["completeness"][language] = percentage(
                group["complete"], namespace["key_count"]
            )
        for namespace in namespaces.values():
            namespace["languages"].sort()
        return sorted(namespaces.values(), key=lambda ns: ns["name"])

    async def get_namespace(
        self,
        namespace: str,
        language: str,
        include_status: bool = False,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Every key of ``namespace`` in ``language``.

        Returns:
            ``{"data": {key: text | {text, status, ...}}, "meta": {namespace,
            language, key_count, completeness}}``. Missing translations carry
            the source text and status ``pending``.
        """
        language = _language_code(language)
        cache_key = self._keys.build(
            namespace, language, include_status=include_status, context=context
        )
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        data: Dict[str, Any] = {}
        complete = 0
        items = await self._active_docs(namespace, context)
        for item in items:
            entry = item.entry(language)
            if entry is not None and entry.status in COMPLETE_ENTRY_STATUSES:
                complete += 1
            if not include_status:
                data[item.key] = entry.text if entry else item.source_text
            elif entry is None:
                data[item.key] = {
                    "text": item.source_text,
                    "status": EntryStatus.PENDING.value,
                    "source_text": item.source_text,
                    "confidence": 0,
                }
            else:
                data[item.key] = {
                    "text": entry.text,
                    "status": entry.status,
                    "source_text": item.source_text,
                    "confidence": entry.confidence,
                    "provider": entry.provider,
                    "translated_at": entry.translated_at,
                }

        view = {
            "data": data,
            "meta": {
                "namespace": namespace,
                "language": language,
                "key_count": len(items),
                "completeness": percentage(complete, len(items)),
            },
        }
        if self.cache is not None:
            self.cache.set(cache_key, view, ttl_seconds=self.cache_ttl_seconds)
        return view

    async def get_batch(
        self, keys: Sequence[str], language: str, namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        """Text for each key; unknown keys map to themselves and are reported missing."""
        if not keys:
            raise InvalidInputError("At least one key is required", field="keys")
        namespace = namespace or DEFAULT_NAMESPACE
        language = _language_code(language)
        docs = await self.documents.find(
            UI_TRANSLATIONS,
            {"namespace": namespace, "key": {"$in": list(keys)}, "is_active": True},
        )
        found = {doc["key"]: UITranslation.model_validate(doc) for doc in docs}

        data: Dict[str, str] = {}
        missing: List[str] = []
        for key in keys:
            item = found.get(key)
            if item is None:
                data[key] = key
                missing.append(key)
                continue
            entry = item.entry(language)
            data[key] = entry.text if entry else item.source_text
        return {"data": data, "meta": {"found": len(data) - len(missing), "missing": missing}}

    # -- writes ----------------------------------------------------------------

    async def save(
        self,
        key: str,
        namespace: str,
        source_text: str,
        translations: Optional[Mapping[str, str]] = None,
        auto_approve: bool = False,
        tags: Optional[Iterable[str]] = None,
        priority: Optional[str] = None,
        contexts: Optional[Iterable[str]] = None,
        source_language: Optional[str] = None,
        reviewer: Optional[str] = None,
    ) -> UITranslation:
        """Create or update a key; each provided language replaces its entry.

        Entries land ``approved`` when ``auto_approve`` is set, otherwise
        ``translated``. Languages not named in ``translations`` are kept.
        """
        self._check_key(namespace, key)
        if not source_text or not source_text.strip():
            raise InvalidInputError("Source text is required", field="source_text")

        now = utc_now()
        status = EntryStatus.APPROVED if auto_approve else EntryStatus.TRANSLATED
        item = await self._load(namespace, key)
        created = item is None
        if created:
            item = validate_model(
                UITranslation,
                {
                    "namespace": namespace,
                    "key": key,
                    "source_language": source_language or self.source_language,
                    "source_text": source_text,
                    "tags": list(tags or []),
                    "contexts": list(contexts or []),
                    "priority": priority or "medium",
                },
            )
        else:
            item.source_text = source_text
            item.is_active = True
            if tags is not None:
                item.tags = list(tags)
            if contexts is not None:
                item.contexts = list(contexts)
            if priority:
                item.priority = _priority(priority)

        for language, text in (translations or {}).items():
            entry = validate_model(
                UIEntry,
                {
                    "language": language,
                    "text": text,
                    "status": status,
                    "confidence": 1.0,
                    "provider": MANUAL_PROVIDER,
                    "translated_at": now,
                    "reviewer": reviewer if auto_approve else None,
                    "reviewed_at": now if auto_approve else None,
                },
            )
            if entry.language == item.source_language:
                raise InvalidInputError(
                    "A translation cannot target the source language", field="translations"
                )
            self._put_entry(item, entry)

        saved = await self._write(item, created)
        logger.info(
            "ui_translation_saved",
            namespace=namespace,
            key=key,
            created=created,
            languages=sorted(normalize_language_code(code) for code in (translations or {})),
            auto_approve=auto_approve,
        )
        return saved

    async def translate_and_persist(
        self,
        namespace: Optional[str],
        key: Optional[str],
        text: str,
        source_language: Optional[str],
        target_language: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Machine-translate ``text``; with a namespace and key also store the entry.

        The stored entry lands ``translated`` with the provider's confidence.
        A failure to store is logged and does not fail the translation.
        """
        if not target_language:
            raise InvalidInputError("Target language is required", field="target_language")
        source = _language_code(source_language or self.source_language)
        target = _language_code(target_language)
        options = dict(options or {})

        result = await self.gateway.translate(text, source, target, options=options)
        if not result.is_success:
            raise error_from_result(result)
        translation = result.data

        if namespace and key:
            try:
                await self._persist_machine_entry(
                    namespace, key, text, source, target, translation, options
                )
            except (InvalidInputError, NotFoundError) as e:
                logger.warning(
                    "ui_translation_persist_failed",
                    namespace=namespace,
                    key=key,
                    error=e.message,
                )
        return translation.to_dict()

    async def _persist_machine_entry(
        self,
        namespace: str,
        key: str,
        text: str,
        source: str,
        target: str,
        translation: Any,
        options: Mapping[str, Any],
    ) -> None:
        self._check_key(namespace, key)
        item = await self._load(namespace, key)
        created = item is None
        if created:
            item = validate_model(
                UITranslation,
                {
                    "namespace": namespace,
                    "key": key,
                    "source_language": source,
                    "source_text": text,
                    "priority": options.get("priority", "medium"),
                    "contexts": [options["context"]] if options.get("context") else [],
                },
            )
        entry = UIEntry(
            language=target,
            text=translation.translated_text,
            status=EntryStatus.TRANSLATED,
            confidence=translation.confidence,
            provider=translation.provider,
            translated_at=utc_now(),
        )
        self._put_entry(item, entry)
        await self._write(item, created)
        logger.info(
            "ui_translation_machine_saved",
            namespace=namespace,
            key=key,
            language=target,
            provider=translation.provider,
        )

    async def delete_entry(self, namespace: str, key: str) -> None:
        item = await self._load(namespace, key)
        if item is None or not item.is_active:
            raise NotFoundError(f"UI translation '{namespace}:{key}' not found", field="key")
        await self.documents.delete(UI_TRANSLATIONS, UITranslation.document_id(namespace, key))
        self._invalidate(namespace)
        logger.info("ui_translation_deleted", namespace=namespace, key=key)

    async def approve_entry(
        self, namespace: str, key: str, language: str, reviewer: str
    ) -> UITranslation:
        if not reviewer:
            raise InvalidInputError("A reviewer is required", field="reviewer")
        item = await self._load(namespace, key)
        if item is None or not item.is_active:
            raise NotFoundError(f"UI translation '{namespace}:{key}' not found", field="key")
        entry = item.entry(_language_code(language))
        if entry is None:
            raise NotFoundError(
                f"No {language.upper()} translation for '{namespace}:{key}'", field="language"
            )
        entry.status = EntryStatus.APPROVED
        entry.reviewer = reviewer
        entry.reviewed_at = utc_now()
        approved = await self._write(item, created=False)
        logger.info(
            "ui_translation_approved",
            namespace=namespace,
            key=key,
            language=entry.language,
            reviewer=reviewer,
        )
        return approved

    # -- statistics ------------------------------------------------------------

    async def stats(
        self,
        namespace: Optional[str] = None,
        language: Optional[str] = None,
        date_range: Optional[Tuple[Optional[datetime], Optional[datetime]]] = None,
    ) -> Dict[str, Any]:
        """Overview, per-language and per-namespace translation statistics.

        Completeness is approved-or-published entries over the number of keys
        (a key without an entry counts as incomplete).
        """
        query: Dict[str, Any] = {"is_active": True}
        if namespace:
            query["namespace"] = namespace
        items = [
            UITranslation.model_validate(doc)
            for doc in await self.documents.find(UI_TRANSLATIONS, query)
        ]
        if date_range:
            start, end = (_as_utc(bound) for bound in date_range)
            items = [
                item
                for item in items
                if (start is None or item.updated_at >= start)
                and (end is None or item.updated_at <= end)
            ]
        wanted = _language_code(language) if language else None

        total_keys = len(items)
        by_language: Dict[str, Dict[str, int]] = {}
        by_namespace: Dict[str, Dict[str, Any]] = {}
        for item in items:
            ns = by_namespace.setdefault(
                item.namespace, {"key_count": 0, "complete": 0, "last_updated": None}
            )
            ns["key_count"] += 1
            if ns["last_updated"] is None or item.updated_at > ns["last_updated"]:
                ns["last_updated"] = item.updated_at
            for entry in item.translations:
                if wanted and entry.language != wanted:
                    continue
                counts = by_language.setdefault(
                    entry.language, {status.value: 0 for status in EntryStatus}
                )
                counts[entry.status] += 1
                if entry.status in COMPLETE_ENTRY_STATUSES:
                    ns["complete"] += 1

        languages = {}
        complete_total = 0
        for code, counts in sorted(by_language.items()):
            complete = sum(counts[status] for status in COMPLETE_ENTRY_STATUSES)
            complete_total += complete
            languages[code] = {
                "key_count": total_keys,
                "translated_count": sum(counts.values()),
                "pending_count": total_keys - complete,
                "approved_count": complete,
                "status_counts": counts,
                "completeness": percentage(complete, total_keys),
            }
        if wanted and wanted not in languages:
            languages[wanted] = {
                "key_count": total_keys,
                "translated_count": 0,
                "pending_count": total_keys,
                "approved_count": 0,
                "status_counts": {status.value: 0 for status in EntryStatus},
                "completeness": 0,
            }

        namespaces = {}
        language_count = max(len(languages), 1)
        for name, ns in sorted(by_namespace.items()):
            namespaces[name] = {
                "key_count": ns["key_count"],
                "completeness": percentage(ns["complete"], ns["key_count"] * language_count),
                "last_updated": ns["last_updated"],
            }

        return {
            "overview": {
                "total_keys": total_keys,
                "total_translations": sum(len(item.translations) for item in items),
                "completeness": percentage(complete_total, total_keys * language_count),
                "last_updated": max((item.updated_at for item in items), default=None),
            },
            "by_language": languages,
            "by_namespace": namespaces,
        }

    # -- seeding ---------------------------------------------------------------

    async def load_catalog(self, path: Path, reviewer: str = "catalog") -> int:
        """Seed namespaces from YAML files; existing entries are left untouched.

        Returns the number of entries written.
        """
        catalog = YAMLCatalogLoader(path).load()
        written = 0
        for namespace, keys in catalog.items():
            for key, texts in keys.items():
                source_text = texts.get(self.source_language)
                if source_text is None:
                    logger.warning(
                        "catalog_key_without_source", namespace=namespace, key=key
                    )
                    continue
                existing = await self._load(namespace, key)
                known = {entry.language for entry in existing.translations} if existing else set()
                missing = {
                    language: text
                    for language, text in texts.items()
                    if language != self.source_language and language not in known
                }
                if existing is not None and not missing:
                    continue
                await self.save(
                    key,
                    namespace,
                    existing.source_text if existing else source_text,
                    missing,
                    auto_approve=True,
                    reviewer=reviewer,
                    tags=None if existing else ["catalog"],
                )
                written += len(missing) or 1
        logger.info("ui_catalog_seeded", catalog_dir=str(path), entries=written)
        return written

    @staticmethod
    def interpolate(text: str, variables: Mapping[str, Any]) -> str:
        return interpolate(text, variables)
