"""Auto-translation work queue.

Thin push/claim/complete façade over a RetryStore. Items are de-duplicated
by the translation key four-tuple while one is still queued.
"""

from typing import Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience import RetryRecord, RetryStore
from modules.localization.domain.enums import PRIORITY_RANK
from modules.localization.domain.models import Translation

logger = get_module_logger()

AUTO_TRANSLATE = "localization.auto_translate"


class TranslationWorkQueue:
    def __init__(self, store: RetryStore):
        self.store = store

    async def push(self, row: Translation, priority: Optional[str] = None) -> str:
        """Queue ``row`` for automatic translation; returns the item id.

        Pushing a key that is already queued returns the queued item's id.
        """
        priority = priority or row.workflow.priority
        record = RetryRecord(
            operation_type=AUTO_TRANSLATE,
            payload={
                "translation_id": row.id,
                "resource_type": row.resource_type,
                "resource_id": row.resource_id,
                "field_name": row.field_name,
                "source_language": row.source_language,
                "target_language": row.target_language,
                "priority": priority,
            },
            dedup_key=row.key.dedup_key,
            priority=PRIORITY_RANK.get(priority, 0),
        )
        item_id = await self.store.save(record)
        logger.info(
            "auto_translation_queued",
            item_id=item_id,
            key=row.key.dedup_key,
            priority=priority,
        )
        return item_id

    async def find(self, row: Translation) -> Optional[RetryRecord]:
        return await self.store.find_active(row.key.dedup_key)

    async def stats(self) -> dict:
        return await self.store.get_stats()

    async def dead_letters(self) -> list:
        return await self.store.get_dlq_entries()
