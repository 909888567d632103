"""Process-scoped translation provider registry.

The registry lives on the LocalizationContext; providers are registered
explicitly at startup (or by tests) rather than discovered into module
globals.
"""

from typing import Callable, Dict, List, Optional

import httpx

from infrastructure.configuration import Settings
from infrastructure.logging import get_module_logger
from modules.localization.providers.azure import AzureTranslatorProvider
from modules.localization.providers.base import TranslationProvider
from modules.localization.providers.deepl import DeepLProvider
from modules.localization.providers.google import GoogleTranslateProvider

logger = get_module_logger()


class ProviderRegistry:
    """Name → provider instance."""

    def __init__(self) -> None:
        self._providers: Dict[str, TranslationProvider] = {}

    def register(self, provider: TranslationProvider, name: Optional[str] = None) -> None:
        key = (name or provider.name).lower()
        if key in self._providers:
            logger.warning("translation_provider_replaced", provider=key)
        self._providers[key] = provider
        logger.debug(
            "translation_provider_registered",
            provider=key,
            class_name=type(provider).__name__,
        )

    def unregister(self, name: str) -> None:
        self._providers.pop(name.lower(), None)

    def get(self, name: str) -> Optional[TranslationProvider]:
        return self._providers.get(name.lower())

    def names(self) -> List[str]:
        return list(self._providers)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._providers

    def __len__(self) -> int:
        return len(self._providers)


ProviderFactory = Callable[[Settings, httpx.AsyncClient, Optional[int]], TranslationProvider]


def _google(settings: Settings, client: httpx.AsyncClient, timeout_ms: Optional[int]):
    creds = settings.translation_providers
    return GoogleTranslateProvider(
        api_key=creds.GOOGLE_TRANSLATE_API_KEY,
        base_url=creds.GOOGLE_TRANSLATE_URL,
        client=client,
        timeout_ms=timeout_ms,
    )


def _deepl(settings: Settings, client: httpx.AsyncClient, timeout_ms: Optional[int]):
    creds = settings.translation_providers
    return DeepLProvider(
        api_key=creds.DEEPL_API_KEY,
        base_url=creds.DEEPL_API_URL,
        client=client,
        timeout_ms=timeout_ms,
    )


def _azure(settings: Settings, client: httpx.AsyncClient, timeout_ms: Optional[int]):
    creds = settings.translation_providers
    return AzureTranslatorProvider(
        api_key=creds.AZURE_TRANSLATOR_KEY,
        base_url=creds.AZURE_TRANSLATOR_URL,
        region=creds.AZURE_TRANSLATOR_REGION,
        client=client,
        timeout_ms=timeout_ms,
    )


PROVIDER_FACTORIES: Dict[str, ProviderFactory] = {
    "google": _google,
    "deepl": _deepl,
    "azure": _azure,
}


def build_provider_registry(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> ProviderRegistry:
    """Instantiate the HTTP providers named in ``LOCALIZATION_PROVIDERS``.

    Entries without a built-in implementation (``aws``, ``manual``) are
    skipped; they can be registered on the returned registry directly.
    """
    registry = ProviderRegistry()
    client = client or httpx.AsyncClient()
    for entry in settings.localization.providers:
        name = entry["name"]
        factory = PROVIDER_FACTORIES.get(name)
        if factory is None:
            logger.info("translation_provider_not_built_in", provider=name)
            continue
        provider = factory(settings, client, entry.get("timeout_ms"))
        if entry.get("api_key") and not provider.is_configured:
            # local development convenience; never stored on languages
            provider.api_key = entry["api_key"]
        registry.register(provider)
        if not provider.is_configured:
            logger.warning("translation_provider_missing_credentials", provider=name)
    logger.info("translation_providers_built", providers=registry.names())
    return registry
