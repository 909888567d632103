"""Localized views of owning resources.

``localize`` overlays approved translations onto a copy of the resource;
fields without an approved row keep their source text. Writes to a
resource's translatable fields open translation rows through the workflow
engine.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from infrastructure.logging import get_module_logger
from modules.localization.domain.enums import RESOURCE_TO_WORKFLOW_PRIORITY
from modules.localization.domain.models import Translation, normalize_language_code
from modules.localization.resources.descriptors import (
    CodedCollection,
    DescriptorTable,
    ResourceDescriptor,
)
from modules.localization.resources.registry import ResourceRegistry
from modules.localization.translations.store import TranslationStore
from modules.localization.workflow.engine import WorkflowEngine

logger = get_module_logger()


def _latest_by_field(rows: Sequence[Translation]) -> Dict[str, Translation]:
    # rows arrive sorted by field name then version desc
    latest: Dict[str, Translation] = {}
    for row in rows:
        if row.translated_text and row.field_name not in latest:
            latest[row.field_name] = row
    return latest


class ResourceLocalizationAdapter:
    def __init__(
        self,
        resources: ResourceRegistry,
        store: TranslationStore,
        engine: WorkflowEngine,
    ):
        self.resources = resources
        self.store = store
        self.engine = engine

    @property
    def descriptors(self) -> DescriptorTable:
        return self.resources.descriptors

    async def localize(self, resource_type: str, resource_id: str, language: str) -> Dict[str, Any]:
        resource = await self.resources.get(resource_type, resource_id)
        return await self.localize_document(resource_type, resource, language)

    async def localize_document(
        self, resource_type: str, resource: Mapping[str, Any], language: str
    ) -> Dict[str, Any]:
        """Overlay approved translations of ``language`` onto ``resource``."""
        descriptor = self.descriptors.get(resource_type)
        language = normalize_language_code(language)
        if language == descriptor.base_language(resource):
            return dict(resource)

        localized = copy.deepcopy(dict(resource))
        applied: List[str] = []

        fields = descriptor.field_names(resource)
        if fields:
            rows = await self.store.get_for_resource(
                resource_type,
                str(resource["id"]),
                target_language=language,
                approved_only=True,
                field_names=fields,
            )
            for field_name, row in _latest_by_field(rows).items():
                if descriptor.apply(localized, field_name, row.translated_text):
                    applied.append(field_name)

        for collection in descriptor.coded_collections:
            applied.extend(
                await self._overlay_collection(localized, descriptor, collection, language)
            )

        localized["language"] = language
        localized["localized_fields"] = applied
        return localized

    async def _overlay_collection(
        self,
        localized: Dict[str, Any],
        descriptor: ResourceDescriptor,
        collection: CodedCollection,
        language: str,
    ) -> List[str]:
        codes = descriptor.codes(localized, collection)
        if not codes:
            return []
        item_descriptor = self.descriptors.get(collection.resource_type)
        rows = await self.store.get_for_resources(collection.resource_type, codes, language)
        by_code: Dict[str, List[Translation]] = {}
        for row in rows:
            by_code.setdefault(row.resource_id, []).append(row)

        applied: List[str] = []
        for item in localized.get(collection.path) or []:
            code = str(item.get(collection.code_field))
            for field_name, row in _latest_by_field(by_code.get(code, [])).items():
                if item_descriptor.apply(item, field_name, row.translated_text):
                    applied.append(f"{collection.path}.{code}.{field_name}")
        return applied

    async def localize_many(
        self, resource_type: str, resource_ids: Sequence[str], language: str
    ) -> List[Dict[str, Any]]:
        localized = []
        for resource_id in resource_ids:
            localized.append(await self.localize(resource_type, resource_id, language))
        return localized

    async def available_languages(self, resource_type: str, resource_id: str) -> List[str]:
        """Base language plus every language with a served translation."""
        resource = await self.resources.get(resource_type, resource_id)
        base = self.descriptors.get(resource_type).base_language(resource)
        served = await self.store.available_languages(resource_type, resource_id)
        return [base] + [code for code in served if code != base]

    # -- write side ------------------------------------------------------------

    def changed_fields(
        self,
        resource_type: str,
        before: Optional[Mapping[str, Any]],
        after: Mapping[str, Any],
    ) -> Dict[str, str]:
        """Translatable fields of ``after`` whose source text differs from ``before``."""
        descriptor = self.descriptors.get(resource_type)
        current = descriptor.translatable_fields(after)
        if not before:
            return current
        previous = descriptor.translatable_fields(before)
        return {name: text for name, text in current.items() if previous.get(name) != text}

    def _changed_items(
        self,
        descriptor: ResourceDescriptor,
        before: Optional[Mapping[str, Any]],
        after: Mapping[str, Any],
    ) -> List[tuple]:
        changed = []
        for collection in descriptor.coded_collections:
            old_items = {
                str(item.get(collection.code_field)): item
                for item in (before or {}).get(collection.path) or []
            }
            for item in after.get(collection.path) or []:
                code = item.get(collection.code_field)
                if not code:
                    continue
                fields = self.changed_fields(
                    collection.resource_type, old_items.get(str(code)), item
                )
                if fields:
                    changed.append((collection.resource_type, str(code), fields))
        return changed

    async def on_resource_changed(
        self,
        resource_type: str,
        resource: Mapping[str, Any],
        previous: Optional[Mapping[str, Any]] = None,
        author: str = "system",
        targets: Optional[Sequence[str]] = None,
    ) -> List[Translation]:
        """Open translation rows for every changed translatable field.

        Target languages come from ``targets``, the resource's own
        ``content.target_languages`` or, failing both, every active language.
        """
        descriptor = self.descriptors.get(resource_type)
        base = descriptor.base_language(resource)
        priority = RESOURCE_TO_WORKFLOW_PRIORITY[descriptor.translation_priority(resource)]
        auto_translate = descriptor.auto_translate_enabled(resource)
        codes = targets if targets is not None else descriptor.target_languages(resource)
        languages = None
        if codes is not None:
            languages = [await self.engine.languages.get_by_code(code) for code in codes]

        work = [
            (resource_type, str(resource["id"]), self.changed_fields(resource_type, previous, resource))
        ]
        work.extend(self._changed_items(descriptor, previous, resource))

        opened: List[Translation] = []
        for item_type, item_id, fields in work:
            if not fields:
                continue
            opened.extend(
                await self.engine.open_translations(
                    item_type,
                    item_id,
                    fields,
                    base,
                    author,
                    targets=languages,
                    priority=priority,
                    auto_translate=auto_translate,
                )
            )
        logger.info(
            "resource_translations_opened",
            resource_type=resource_type,
            resource_id=resource["id"],
            rows=len(opened),
        )
        return opened
