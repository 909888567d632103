"""Translation completeness and statistics.

Figures are derived from Translation and UI translation aggregates and
written back where listings need them without a join:

- a resource's ``translation_status`` list (per language)
- a language's ``content_completeness`` (per content class)

Computed figures are cached for ``completeness_cache_ttl_ms``; any
translation state change clears the cache.
"""

from typing import Any, Dict, List, Mapping, Optional

from infrastructure.caching import Cache, CacheKeyBuilder
from infrastructure.logging import get_module_logger
from modules.localization.domain.enums import (
    SERVED_STAGES,
    ContentClass,
    EntryStatus,
    ReviewStatus,
    WorkflowStage,
)
from modules.localization.domain.errors import NotFoundError
from modules.localization.domain.models import (
    ResourceTranslationStatus,
    Translation,
    normalize_language_code,
    utc_now,
)
from modules.localization.languages.registry import LanguageRegistry
from modules.localization.resources.registry import ResourceRegistry
from modules.localization.translations.store import TranslationStore
from modules.localization.ui.service import UITranslationService, percentage

logger = get_module_logger()

SERVED = {"workflow.stage": {"$in": list(SERVED_STAGES)}}
PUBLISHED = {"workflow.stage": WorkflowStage.PUBLISHED.value}
WITH_TEXT = {"translated_text": {"$exists": True, "$ne": None}}


class CompletenessService:
    """Completeness figures for resources, resource types, namespaces and languages.

    Args:
        store: Translation store
        resources: Owning resources and their descriptors
        languages: Language registry
        ui: UI namespace service
        cache: Optional cache for computed figures
        cache_ttl_seconds: TTL of cached figures
    """

    def __init__(
        self,
        store: TranslationStore,
        resources: ResourceRegistry,
        languages: LanguageRegistry,
        ui: UITranslationService,
        cache: Optional[Cache] = None,
        cache_ttl_seconds: float = 300.0,
    ):
        self.store = store
        self.resources = resources
        self.languages = languages
        self.ui = ui
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self._keys = CacheKeyBuilder("completeness")

    def _cached(self, key: str) -> Optional[Any]:
        return self.cache.get(key) if self.cache is not None else None

    def _remember(self, key: str, value: Any) -> Any:
        if self.cache is not None:
            self.cache.set(key, value, ttl_seconds=self.cache_ttl_seconds)
        return value

    def invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate_prefix(self._keys.prefix())

    # -- resources -------------------------------------------------------------

    async def resource_completeness(
        self, resource_type: str, resource_id: str, language: str
    ) -> int:
        """round(served fields / declared fields × 100) for one resource."""
        statuses = await self.resource_status(resource_type, resource_id, [language])
        return statuses[0].completeness if statuses else 0

    async def resource_status(
        self,
        resource_type: str,
        resource_id: str,
        languages: Optional[List[str]] = None,
    ) -> List[ResourceTranslationStatus]:
        """Per-language status of one resource.

        Only the fields its descriptor declares count; a language is
        ``approved`` (or ``published``) once every field is served,
        ``translated`` while some field has text, else ``pending``.
        """
        resource = await self.resources.get(resource_type, resource_id)
        descriptor = self.resources.descriptors.get(resource_type)
        fields = descriptor.field_names(resource)
        base = descriptor.base_language(resource)
        if languages is None:
            languages = [lang.code for lang in await self.languages.list_active()]
        targets = [code for code in map(normalize_language_code, languages) if code != base]

        groups = await self.store.group_counts(
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "field_name": {"$in": fields},
            },
            by=["target_language"],
            sums={"served": SERVED, "published": PUBLISHED, "with_text": WITH_TEXT},
        )
        by_language = {group["key"]["target_language"]: group for group in groups}

        now = utc_now()
        statuses = []
        for code in targets:
            group = by_language.get(code, {})
            served = group.get("served", 0)
            completeness = percentage(served, len(fields))
            if fields and served >= len(fields):
                status = (
                    EntryStatus.PUBLISHED
                    if group.get("published", 0) >= len(fields)
                    else EntryStatus.APPROVED
                )
            elif group.get("with_text", 0):
                status = EntryStatus.TRANSLATED
            else:
                status = EntryStatus.PENDING
            statuses.append(
                ResourceTranslationStatus(
                    language=code, status=status, completeness=completeness, last_updated=now
                )
            )
        return statuses

    async def refresh_resource_status(
        self, resource_type: str, resource_id: str
    ) -> List[ResourceTranslationStatus]:
        """Recompute and store a resource's ``translation_status`` list."""
        statuses = await self.resource_status(resource_type, resource_id)
        await self.resources.write_translation_status(resource_type, resource_id, statuses)
        logger.debug(
            "resource_translation_status_refreshed",
            resource_type=resource_type,
            resource_id=resource_id,
            languages=len(statuses),
        )
        return statuses

    async def resource_type_stats(
        self,
        resource_type: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Per (resource_type, target_language): counts by review status and completeness."""
        cache_key = self._keys.build("resource_types", resource_type=resource_type, lang=target_language)
        cached = self._cached(cache_key)
        if cached is not None:
            return cached

        filters: Dict[str, Any] = {}
        if resource_type:
            filters["resource_type"] = resource_type
        if target_language:
            filters["target_language"] = normalize_language_code(target_language)
        sums: Dict[str, Mapping[str, Any]] = {
            status.value: {"quality.review_status": status.value} for status in ReviewStatus
        }
        sums["served"] = SERVED
        groups = await self.store.group_counts(
            filters, by=["resource_type", "target_language"], sums=sums
        )

        stats = []
        for group in groups:
            stats.append(
                {
                    "resource_type": group["key"]["resource_type"],
                    "target_language": group["key"]["target_language"],
                    "total": group["count"],
                    "by_review_status": {status.value: group[status.value] for status in ReviewStatus},
                    "approved": group["served"],
                    "completeness": percentage(group["served"], group["count"]),
                }
            )
        stats.sort(key=lambda s: (s["resource_type"], s["target_language"]))
        return self._remember(cache_key, stats)

    async def translation_stats(
        self,
        resource_type: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Totals by review status, by stage and by method, plus per-pair completeness."""
        filters: Dict[str, Any] = {}
        if resource_type:
            filters["resource_type"] = resource_type
        if target_language:
            filters["target_language"] = normalize_language_code(target_language)
        by_status = await self.store.group_counts(filters, by=["quality.review_status"])
        by_stage = await self.store.group_counts(filters, by=["workflow.stage"])
        by_method = await self.store.group_counts(filters, by=["translation_method"])
        pairs = await self.resource_type_stats(resource_type, target_language)

        return {
            "total": sum(group["count"] for group in by_status),
            "by_review_status": {
                group["key"]["quality.review_status"]: group["count"] for group in by_status
            },
            "by_stage": {group["key"]["workflow.stage"]: group["count"] for group in by_stage},
            "by_method": {group["key"]["translation_method"]: group["count"] for group in by_method},
            "by_resource_type": pairs,
        }

    # -- namespaces ------------------------------------------------------------

    async def namespace_completeness(self, namespace: str, language: str) -> int:
        """Approved-or-published entries over all keys of the namespace."""
        view = await self.ui.get_namespace(namespace, language)
        return view["meta"]["completeness"]

    # -- languages -------------------------------------------------------------

    async def _class_completeness(self, language: str, content_class: str) -> Optional[int]:
        if content_class == ContentClass.UI_TEXTS.value:
            stats = await self.ui.stats(language=language)
            if not stats["overview"]["total_keys"]:
                return None
            return stats["by_language"][language]["completeness"]

        types = [
            d.resource_type
            for d in self.resources.descriptors
            if d.content_class == content_class
        ]
        if not types:
            return None
        groups = await self.store.group_counts(
            {"resource_type": {"$in": types}, "target_language": language},
            by=["target_language"],
            sums={"served": SERVED},
        )
        if not groups:
            return 0
        return percentage(groups[0]["served"], groups[0]["count"])

    async def refresh_language_completeness(self, code: str) -> Dict[str, int]:
        """Recompute and store a language's completeness per content class."""
        code = normalize_language_code(code)
        cache_key = self._keys.build("language", code)
        cached = self._cached(cache_key)
        if cached is not None:
            return cached

        figures: Dict[str, int] = {}
        for content_class in ContentClass:
            value = await self._class_completeness(code, content_class.value)
            if value is None:
                continue
            figures[content_class.value] = value
            await self.languages.update_content_completeness(code, content_class.value, value)
        logger.info("language_completeness_refreshed", language=code, figures=figures)
        return self._remember(cache_key, figures)

    # -- change notifications --------------------------------------------------

    async def on_translation_changed(self, row: Translation) -> None:
        """Workflow listener: clear cached figures and refresh the owner's status."""
        self.invalidate()
        descriptors = self.resources.descriptors
        if row.resource_type not in descriptors or not descriptors.get(row.resource_type).collection:
            return
        try:
            await self.refresh_resource_status(row.resource_type, row.resource_id)
        except NotFoundError:
            logger.debug(
                "translation_owner_missing",
                resource_type=row.resource_type,
                resource_id=row.resource_id,
            )
