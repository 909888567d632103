"""Work-queue processor running automatic translations.

A work item names a translation row; the processor re-reads the key's
active row, asks the provider gateway for a translation and hands the
result to the workflow engine. Stale items (row superseded by a human edit
or already past translation) complete without calling a provider.
"""

from infrastructure.logging import bind_work_item_context, get_module_logger
from infrastructure.resilience import RetryRecord, RetryResult
from modules.localization.domain.enums import ErrorKind, TranslationMethod, WorkflowStage
from modules.localization.domain.errors import ConflictError
from modules.localization.providers.gateway import ProviderGateway
from modules.localization.translations.store import TranslationStore
from modules.localization.workflow.engine import WorkflowEngine
from modules.localization.workflow.queue import AUTO_TRANSLATE

logger = get_module_logger()

OPEN_STAGES = (WorkflowStage.DRAFT.value, WorkflowStage.TRANSLATION.value)


class AutoTranslateProcessor:
    """RetryProcessor for ``localization.auto_translate`` items."""

    def __init__(self, store: TranslationStore, gateway: ProviderGateway, engine: WorkflowEngine):
        self.store = store
        self.gateway = gateway
        self.engine = engine

    async def process_record(self, record: RetryRecord) -> RetryResult:
        with bind_work_item_context(record.id, record.operation_type, record.dedup_key):
            return await self._process(record)

    async def _process(self, record: RetryRecord) -> RetryResult:
        if record.operation_type != AUTO_TRANSLATE:
            record.last_error = f"Unsupported operation type: {record.operation_type}"
            return RetryResult.PERMANENT_FAILURE

        payload = record.payload
        key = self.store.make_key(
            payload["resource_type"],
            payload["resource_id"],
            payload["field_name"],
            payload["target_language"],
        )
        row = await self.store.get_active(key)
        if row is None:
            logger.info("auto_translation_row_missing", key=key.dedup_key)
            return RetryResult.SUCCESS
        human_text = row.translated_text and row.translation_method != TranslationMethod.AUTOMATIC.value
        if row.workflow.stage not in OPEN_STAGES or human_text:
            logger.info(
                "auto_translation_skipped_stale",
                key=key.dedup_key,
                stage=row.workflow.stage,
            )
            return RetryResult.SUCCESS

        language = await self.engine.languages.find(row.target_language)
        result = await self.gateway.translate(
            row.original_text, row.source_language, row.target_language, language=language
        )
        if not result.is_success:
            record.last_error = f"{result.kind}: {result.message}"
            record.retry_after = result.retry_after
            if result.kind == ErrorKind.VALIDATION.value:
                return RetryResult.PERMANENT_FAILURE
            return RetryResult.RETRY

        try:
            await self.engine.apply_provider_result(row, result.data)
        except ConflictError:
            # the row moved on while the provider was working
            logger.info("auto_translation_discarded_conflict", key=key.dedup_key)
        return RetryResult.SUCCESS
