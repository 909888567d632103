"""Translation provider contracts and base classes.

Key separation of concerns:
  - base.py: result dataclasses, the provider ABC and the operation decorator
  - google.py / deepl.py / azure.py: HTTP providers built on httpx
  - registry.py: process-scoped provider registry built from settings
  - gateway.py: priority selection, health skipping, fallback and deadlines

Providers return ``OperationResult`` values. They may implement their
operations synchronously or as coroutines; the gateway runs synchronous
ones in a worker thread.
"""

import functools
import inspect
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.operations.classifiers import classify_http_error

logger = get_module_logger()

DEFAULT_CONFIDENCE = 0.5


def normalize_confidence(value: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    """Map a native provider score onto [0, 1].

    Scores above 1 are percentages.
    """
    if value is None:
        return default
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if score > 1:
        score = score / 100
    return max(0.0, min(1.0, score))


@dataclass
class ProviderTranslation:
    """Successful translation returned by a provider or the gateway."""

    translated_text: str
    confidence: float
    provider: str
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DetectedLanguage:
    language: str
    confidence: float
    provider: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HealthCheckResult:
    """Result of a provider health probe.

    Attributes:
        healthy: Whether the provider answered
        status: "healthy", "unhealthy" or "unconfigured"
        latency_ms: Round-trip time of the probe
        details: Provider-specific details
    """

    healthy: bool
    status: str
    latency_ms: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


def provider_operation(func):
    """Wrap a provider operation so that exceptions become OperationResults.

    - OperationResult return values pass through unchanged
    - other return values are wrapped in a SUCCESS result
    - exceptions are classified by the provider's ``classify_error``

    Works on both plain functions and coroutine functions.
    """

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:  # noqa: BLE001 - classified into a result
                return self.classify_error(e)
            if isinstance(result, OperationResult):
                return result
            return OperationResult.success(data=result)

        return async_wrapper

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            result = func(self, *args, **kwargs)
        except Exception as e:  # noqa: BLE001 - classified into a result
            return self.classify_error(e)
        if isinstance(result, OperationResult):
            return result
        return OperationResult.success(data=result)

    return wrapper


class TranslationProvider(ABC):
    """Abstract base class for machine-translation providers.

    Subclasses set ``name`` and implement ``translate``; ``detect``,
    ``supported_languages`` and ``health_check`` have conservative defaults.
    Implementations may be synchronous or ``async def``.
    """

    name: str = "provider"

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def translate(self, text: str, source: str, target: str) -> OperationResult:
        """Translate ``text``; SUCCESS data is a ProviderTranslation."""

    def detect(self, text: str) -> OperationResult:
        return OperationResult.permanent_error(
            f"{self.name} does not support language detection",
            error_code="UNSUPPORTED",
        )

    def supported_languages(self) -> OperationResult:
        return OperationResult.success(data=[])

    def health_check(self) -> HealthCheckResult:
        if not self.is_configured:
            return HealthCheckResult(healthy=False, status="unconfigured")
        return HealthCheckResult(healthy=True, status="healthy")

    def classify_error(self, exc: Exception) -> OperationResult:
        """Classify a provider exception into an OperationResult."""
        if isinstance(exc, httpx.HTTPError):
            result = classify_http_error(exc, service=self.name)
        elif isinstance(exc, (KeyError, IndexError, TypeError, ValueError)):
            result = OperationResult.transient_error(
                f"{self.name} returned an unexpected payload: {exc}",
                error_code="BAD_RESPONSE",
            )
        else:
            result = OperationResult.transient_error(
                f"{self.name} failed: {type(exc).__name__}: {exc}",
                error_code="PROVIDER_ERROR",
            )
        logger.warning(
            "provider_error_classified",
            provider=self.name,
            error_code=result.error_code,
            status=result.status.value,
            error=str(exc),
        )
        return result


class HttpTranslationProvider(TranslationProvider):
    """Provider talking JSON/form HTTP through a shared ``httpx.AsyncClient``.

    Args:
        api_key: Credential read from TranslationProviderSettings
        base_url: Service endpoint
        client: Shared AsyncClient (one per LocalizationContext)
        timeout_ms: Per-request timeout
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout_ms: Optional[int] = None,
    ):
        super().__init__(timeout_ms=timeout_ms)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    @property
    def timeout(self) -> Optional[float]:
        return self.timeout_ms / 1000 if self.timeout_ms else None

    def _missing_credentials(self) -> OperationResult:
        return OperationResult.permanent_error(
            f"{self.name} API key is not configured", error_code="NOT_CONFIGURED"
        )

    async def _post(self, url: str, **kwargs) -> Any:
        response = await self.client.post(url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json()

    async def _get(self, url: str, **kwargs) -> Any:
        response = await self.client.get(url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json()

    async def health_check(self) -> HealthCheckResult:
        if not self.is_configured:
            return HealthCheckResult(healthy=False, status="unconfigured")
        result = await self.supported_languages()
        if result.is_success:
            return HealthCheckResult(
                healthy=True, status="healthy", details={"languages": len(result.data or [])}
            )
        return HealthCheckResult(
            healthy=False,
            status="unhealthy",
            details={"error": result.message, "error_code": result.error_code},
        )


def language_list(codes: List[str]) -> List[str]:
    """Uppercase, de-duplicated language codes in first-seen order."""
    seen: List[str] = []
    for code in codes:
        normalized = str(code).split("-")[0].upper()
        if normalized not in seen:
            seen.append(normalized)
    return seen
