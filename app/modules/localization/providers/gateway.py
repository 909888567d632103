"""Provider gateway: one translation call across a ranked fallback chain.

Selection:
    Providers of the target language (active, ascending priority), or the
    configured providers when the language lists none. Providers whose
    circuit breaker is open are skipped. Each attempt has its own timeout
    and the whole chain shares one deadline.

Every outcome is an ``OperationResult``; failures carry an ErrorKind value
in ``error_code`` (``provider_unavailable``, ``timeout``, ``validation``).
"""

import asyncio
import inspect
import time
from typing import Any, Dict, List, Optional, Sequence

from infrastructure.caching import Cache, CacheKeyBuilder
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.resilience import CircuitBreakerRegistry
from modules.localization.domain.enums import ErrorKind
from modules.localization.domain.models import (
    Language,
    ProviderConfig,
    normalize_language_code,
)
from modules.localization.providers.base import (
    DetectedLanguage,
    HealthCheckResult,
    ProviderTranslation,
    TranslationProvider,
    normalize_confidence,
)
from modules.localization.providers.registry import ProviderRegistry

logger = get_module_logger()

SAME_LANGUAGE_PROVIDER = "none"

_cache_keys = CacheKeyBuilder("provider_translation")


async def _invoke(func, *args) -> Any:
    """Call a provider method that may be synchronous or a coroutine."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await asyncio.to_thread(func, *args)
    if inspect.isawaitable(result):
        return await result
    return result


def _as_translation(value: Any, provider: str) -> Optional[ProviderTranslation]:
    """Accept ProviderTranslation, ``{text, confidence}`` dicts or plain strings."""
    if isinstance(value, ProviderTranslation):
        value.confidence = normalize_confidence(value.confidence)
        return value
    if isinstance(value, dict):
        text = value.get("translated_text", value.get("text"))
        if not text:
            return None
        return ProviderTranslation(
            translated_text=text,
            confidence=normalize_confidence(value.get("confidence")),
            provider=value.get("provider") or provider,
        )
    if isinstance(value, str) and value:
        return ProviderTranslation(
            translated_text=value, confidence=normalize_confidence(None), provider=provider
        )
    return None


class ProviderGateway:
    """Uniform façade over the registered translation providers.

    Args:
        providers: Provider registry
        breakers: Circuit breakers keyed by provider name
        default_providers: Chain used when a language lists no providers
        cache: Optional translation cache
        cache_ttl_seconds: Lifetime of cached translations (0 disables)
        max_attempts: Attempts across the chain
        attempt_timeout: Default per-attempt timeout in seconds
        deadline: Overall deadline of the chain in seconds
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        breakers: CircuitBreakerRegistry,
        default_providers: Sequence[ProviderConfig] = (),
        cache: Optional[Cache] = None,
        cache_ttl_seconds: float = 0,
        max_attempts: int = 3,
        attempt_timeout: float = 10.0,
        deadline: float = 30.0,
    ):
        self.providers = providers
        self.breakers = breakers
        self.default_providers = list(default_providers)
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_attempts = max_attempts
        self.attempt_timeout = attempt_timeout
        self.deadline = deadline

    def select(self, language: Optional[Language] = None) -> List[ProviderConfig]:
        """Ranked provider chain for a target language."""
        chain = language.translation.active_providers() if language else []
        if not chain:
            chain = sorted(
                (p for p in self.default_providers if p.is_active), key=lambda p: p.priority
            )
        return chain

    async def translate(
        self,
        text: str,
        source: str,
        target: str,
        language: Optional[Language] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        """Translate through the fallback chain.

        Args:
            text: Source text
            source: Source language code
            target: Target language code
            language: Target Language document (provider chain and timeouts)
            options: ``providers`` (explicit name list), ``use_cache``

        Returns:
            SUCCESS with a ProviderTranslation, or an error whose
            ``error_code`` is ``validation``, ``provider_unavailable`` or
            ``timeout``.
        """
        options = options or {}
        if not text or not text.strip():
            return OperationResult.permanent_error(
                "Text to translate must not be empty",
                error_code=ErrorKind.VALIDATION.value,
                data={"field": "text"},
            )
        try:
            source = normalize_language_code(source)
            target = normalize_language_code(target)
        except ValueError as exc:
            return OperationResult.permanent_error(
                str(exc), error_code=ErrorKind.VALIDATION.value, data={"field": "language"}
            )

        if source == target:
            return OperationResult.success(
                data=ProviderTranslation(
                    translated_text=text, confidence=1.0, provider=SAME_LANGUAGE_PROVIDER
                )
            )

        cache_key = _cache_keys.build(source, target, text=text)
        use_cache = self.cache is not None and options.get("use_cache", True)
        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("provider_translation_cache_hit", source=source, target=target)
                return OperationResult.success(data=ProviderTranslation(**{**cached, "cached": True}))

        chain = self.select(language)
        if options.get("providers"):
            wanted = [name.lower() for name in options["providers"]]
            try:
                chain = [ProviderConfig(name=name, priority=i + 1) for i, name in enumerate(wanted)]
            except ValueError as exc:
                return OperationResult.permanent_error(
                    f"Unknown translation provider in {wanted}",
                    error_code=ErrorKind.VALIDATION.value,
                    data={"field": "providers", "error": str(exc)},
                )

        result = await self._run_chain(chain, text, source, target)
        if result.is_success and use_cache and self.cache_ttl_seconds:
            payload = result.data.to_dict()
            payload.pop("cached", None)
            self.cache.set(cache_key, payload, ttl_seconds=self.cache_ttl_seconds)
        return result

    async def _run_chain(
        self, chain: List[ProviderConfig], text: str, source: str, target: str
    ) -> OperationResult:
        started = time.monotonic()
        attempts: List[Dict[str, Any]] = []
        skipped: List[str] = []

        for config in chain:
            if len(attempts) >= self.max_attempts:
                break
            provider = self.providers.get(config.name)
            if provider is None:
                skipped.append(config.name)
                logger.debug("provider_not_registered", provider=config.name)
                continue
            breaker = self.breakers.get(config.name)
            if not breaker.is_healthy:
                skipped.append(config.name)
                logger.info("provider_skipped_unhealthy", provider=config.name)
                continue

            remaining = self.deadline - (time.monotonic() - started)
            if remaining <= 0:
                return self._deadline_exceeded(attempts, skipped)
            per_attempt = (config.timeout_ms or provider.timeout_ms or 0) / 1000
            timeout = min(per_attempt or self.attempt_timeout, remaining)

            outcome = await self._attempt(provider, config.name, timeout, text, source, target)
            if outcome.is_success:
                breaker.record_success()
                logger.info(
                    "provider_translation_succeeded",
                    provider=config.name,
                    source=source,
                    target=target,
                    attempt=len(attempts) + 1,
                    confidence=outcome.data.confidence,
                )
                return outcome

            breaker.record_failure(outcome.message)
            attempts.append(
                {"provider": config.name, "kind": outcome.kind, "message": outcome.message}
            )
            logger.warning(
                "provider_attempt_failed",
                provider=config.name,
                error_code=outcome.kind,
                error=outcome.message,
            )
            if self.deadline - (time.monotonic() - started) <= 0:
                return self._deadline_exceeded(attempts, skipped)

        logger.error(
            "all_providers_failed",
            source=source,
            target=target,
            attempts=len(attempts),
            skipped=skipped,
        )
        return OperationResult.transient_error(
            "No translation provider could complete the request",
            error_code=ErrorKind.PROVIDER_UNAVAILABLE.value,
            data={"attempts": attempts, "skipped": skipped},
        )

    def _deadline_exceeded(self, attempts: List[dict], skipped: List[str]) -> OperationResult:
        logger.error("provider_chain_deadline_exceeded", deadline_seconds=self.deadline)
        return OperationResult.transient_error(
            f"Translation providers did not answer within {self.deadline:g}s",
            error_code=ErrorKind.TIMEOUT.value,
            data={"attempts": attempts, "skipped": skipped},
        )

    async def _attempt(
        self,
        provider: TranslationProvider,
        name: str,
        timeout: float,
        text: str,
        source: str,
        target: str,
    ) -> OperationResult:
        try:
            raw = await asyncio.wait_for(
                _invoke(provider.translate, text, source, target), timeout=timeout
            )
        except asyncio.TimeoutError:
            return OperationResult.transient_error(
                f"{name} timed out after {timeout:g}s",
                error_code=ErrorKind.TIMEOUT.value,
            )
        except Exception as e:  # noqa: BLE001 - classified into a result
            if isinstance(provider, TranslationProvider):
                return provider.classify_error(e)
            return OperationResult.transient_error(str(e), error_code="PROVIDER_ERROR")

        if isinstance(raw, OperationResult):
            if not raw.is_success:
                return raw
            raw = raw.data
        translation = _as_translation(raw, name)
        if translation is None:
            return OperationResult.transient_error(
                f"{name} returned no translation", error_code="BAD_RESPONSE"
            )
        return OperationResult.success(data=translation)

    async def batch_translate(
        self,
        texts: Sequence[str],
        source: str,
        target: str,
        language: Optional[Language] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[OperationResult]:
        """Translate each text independently; one failure never aborts the rest."""
        results = []
        for text in texts:
            results.append(await self.translate(text, source, target, language, options))
        return results

    async def detect_language(self, text: str) -> OperationResult:
        """First successful detection across the configured providers."""
        if not text or not text.strip():
            return OperationResult.permanent_error(
                "Text must not be empty",
                error_code=ErrorKind.VALIDATION.value,
                data={"field": "text"},
            )
        failures = []
        for config in self.select():
            provider = self.providers.get(config.name)
            if provider is None or not self.breakers.get(config.name).is_healthy:
                continue
            try:
                result = await asyncio.wait_for(
                    _invoke(provider.detect, text), timeout=self.attempt_timeout
                )
            except asyncio.TimeoutError:
                failures.append({"provider": config.name, "kind": ErrorKind.TIMEOUT.value})
                continue
            if isinstance(result, OperationResult) and result.is_success:
                data = result.data
                if isinstance(data, dict):
                    data = DetectedLanguage(
                        language=str(data["language"]).upper(),
                        confidence=normalize_confidence(data.get("confidence")),
                        provider=config.name,
                    )
                return OperationResult.success(data=data)
            failures.append(
                {"provider": config.name, "kind": getattr(result, "kind", None)}
            )
        return OperationResult.transient_error(
            "No provider could detect the language",
            error_code=ErrorKind.PROVIDER_UNAVAILABLE.value,
            data={"attempts": failures},
        )

    async def list_supported_languages(self) -> Dict[str, List[str]]:
        """Supported target languages per provider (empty list on failure)."""
        supported: Dict[str, List[str]] = {}
        for name in self.providers.names():
            provider = self.providers.get(name)
            try:
                result = await asyncio.wait_for(
                    _invoke(provider.supported_languages), timeout=self.attempt_timeout
                )
            except asyncio.TimeoutError:
                supported[name] = []
                continue
            if isinstance(result, OperationResult):
                supported[name] = list(result.data or []) if result.is_success else []
            else:
                supported[name] = list(result or [])
        return supported

    async def health(self, probe: bool = False) -> Dict[str, Dict[str, Any]]:
        """Per-provider status from the circuit breakers, optionally probed."""
        status: Dict[str, Dict[str, Any]] = {}
        for name in self.providers.names():
            provider = self.providers.get(name)
            breaker = self.breakers.get(name)
            entry: Dict[str, Any] = {
                "up": breaker.is_healthy,
                "circuit": breaker.get_stats(),
                "configured": getattr(provider, "is_configured", True),
            }
            if probe:
                started = time.monotonic()
                try:
                    check = await asyncio.wait_for(
                        _invoke(provider.health_check), timeout=self.attempt_timeout
                    )
                except asyncio.TimeoutError:
                    check = HealthCheckResult(healthy=False, status="timeout")
                entry["up"] = entry["up"] and check.healthy
                entry["status"] = check.status
                entry["latency_ms"] = check.latency_ms or round(
                    (time.monotonic() - started) * 1000, 1
                )
            status[name] = entry
        return status
