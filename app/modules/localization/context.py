"""Process-scoped wiring of the localization components.

Every registry, cache and circuit breaker lives on one LocalizationContext
built at startup and stored on ``app.state``; nothing is kept in module
globals.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from infrastructure.caching import InMemoryTTLCache
from infrastructure.configuration import Settings
from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentStore, create_document_store
from infrastructure.resilience import (
    CircuitBreakerRegistry,
    RetryConfig,
    RetryWorker,
    create_retry_store,
)
from infrastructure.resilience.retry.document_store import WORK_ITEMS, WORK_ITEMS_DLQ
from modules.localization.domain.models import (
    LANGUAGES,
    TRANSLATIONS,
    UI_TRANSLATIONS,
    ProviderConfig,
)
from modules.localization.languages.registry import LanguageRegistry
from modules.localization.providers.gateway import ProviderGateway
from modules.localization.providers.registry import ProviderRegistry, build_provider_registry
from modules.localization.resources.adapter import ResourceLocalizationAdapter
from modules.localization.resources.descriptors import DescriptorTable, default_descriptors
from modules.localization.resources.registry import ResourceRegistry
from modules.localization.stats.service import CompletenessService
from modules.localization.translations.store import TranslationStore
from modules.localization.ui.service import UITranslationService
from modules.localization.workflow.assignments import AssignmentRules
from modules.localization.workflow.engine import WorkflowEngine
from modules.localization.workflow.processor import AutoTranslateProcessor
from modules.localization.workflow.queue import TranslationWorkQueue

logger = get_module_logger()

ROOM_TYPES = "room_types"


@dataclass
class LocalizationContext:
    settings: Settings
    documents: DocumentStore
    http_client: Optional[httpx.AsyncClient]
    breakers: CircuitBreakerRegistry
    providers: ProviderRegistry
    gateway: ProviderGateway
    languages: LanguageRegistry
    descriptors: DescriptorTable
    resources: ResourceRegistry
    store: TranslationStore
    work_queue: TranslationWorkQueue
    engine: WorkflowEngine
    adapter: ResourceLocalizationAdapter
    ui: UITranslationService
    stats: CompletenessService
    worker: RetryWorker

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()

    async def seed_ui_catalog(self) -> int:
        path = self.settings.localization.ui_catalog_path
        if not path:
            return 0
        return await self.ui.load_catalog(Path(path))


def build_context(
    settings: Settings,
    documents: Optional[DocumentStore] = None,
    providers: Optional[ProviderRegistry] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    descriptors: Optional[DescriptorTable] = None,
) -> LocalizationContext:
    """Build every localization component from ``settings``.

    Args:
        settings: Application settings
        documents: Document store override (tests); defaults to the
            configured backend
        providers: Provider registry override (tests); defaults to the HTTP
            providers named in ``LOCALIZATION_PROVIDERS``
        http_client: Shared client for HTTP providers
        descriptors: Resource descriptor table; defaults to room types and
            amenities
    """
    config = settings.localization
    documents = documents or create_document_store(
        settings,
        collections=(
            LANGUAGES,
            TRANSLATIONS,
            UI_TRANSLATIONS,
            ROOM_TYPES,
            WORK_ITEMS,
            WORK_ITEMS_DLQ,
        ),
    )
    if providers is None:
        http_client = http_client or httpx.AsyncClient()
        providers = build_provider_registry(settings, client=http_client)

    breakers = CircuitBreakerRegistry(
        failure_threshold=config.provider_failure_threshold,
        timeout_seconds=config.provider_recovery_seconds,
    )
    default_chain = [
        ProviderConfig.model_validate(
            {k: v for k, v in entry.items() if k != "api_key"}
        )
        for entry in config.providers
    ]
    gateway = ProviderGateway(
        providers,
        breakers,
        default_providers=default_chain,
        cache=InMemoryTTLCache("provider_translations", max_entries=10000)
        if config.provider_cache_ttl_seconds
        else None,
        cache_ttl_seconds=config.provider_cache_ttl_seconds,
        max_attempts=config.max_provider_attempts,
        attempt_timeout=config.provider_timeout_ms / 1000,
        deadline=config.provider_deadline_seconds,
    )

    languages = LanguageRegistry(
        documents,
        default_language=config.default_language,
        cache=InMemoryTTLCache("languages", default_ttl_seconds=300),
        translation_defaults={
            "auto_translate": {"threshold": config.auto_translate_threshold},
            "quality": {
                "minimum_confidence": config.minimum_confidence,
                "fallback_to_source": config.fallback_to_source,
                "require_human_review": config.review_required_by_default,
            },
        },
    )

    descriptors = descriptors or default_descriptors()
    resources = ResourceRegistry(documents, descriptors)
    store = TranslationStore(
        documents,
        source_resolver=resources.source_text,
        review_queue_timeout=config.review_queue_timeout_seconds,
    )

    retry_config = RetryConfig.from_settings(settings.retry)
    work_queue = TranslationWorkQueue(
        create_retry_store(retry_config, settings.retry.backend, document_store=documents)
    )
    engine = WorkflowEngine(
        store,
        languages,
        work_queue,
        assignments=AssignmentRules(config.assignment_rules),
        review_required_by_default=config.review_required_by_default,
        default_threshold=config.auto_translate_threshold,
    )
    adapter = ResourceLocalizationAdapter(resources, store, engine)

    completeness_ttl = config.completeness_cache_ttl_ms / 1000
    ui = UITranslationService(
        documents,
        gateway,
        cache=InMemoryTTLCache("ui_namespaces") if completeness_ttl else None,
        cache_ttl_seconds=completeness_ttl,
        source_language=config.default_language,
    )
    stats = CompletenessService(
        store,
        resources,
        languages,
        ui,
        cache=InMemoryTTLCache("completeness") if completeness_ttl else None,
        cache_ttl_seconds=completeness_ttl,
    )
    engine.add_listener(stats.on_translation_changed)

    worker = RetryWorker(
        work_queue.store,
        AutoTranslateProcessor(store, gateway, engine),
        retry_config,
        worker_id="localization-auto-translate",
    )

    logger.info(
        "localization_context_built",
        persistence=settings.persistence.backend,
        work_queue=settings.retry.backend,
        providers=providers.names(),
        resource_types=descriptors.types(),
    )
    return LocalizationContext(
        settings=settings,
        documents=documents,
        http_client=http_client,
        breakers=breakers,
        providers=providers,
        gateway=gateway,
        languages=languages,
        descriptors=descriptors,
        resources=resources,
        store=store,
        work_queue=work_queue,
        engine=engine,
        adapter=adapter,
        ui=ui,
        stats=stats,
        worker=worker,
    )
