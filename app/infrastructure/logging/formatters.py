"""structlog processors shared by every renderer.

Translation providers authenticate with keys that travel in query strings
(Google ``?key=``), headers (``DeepL-Auth-Key``, ``Ocp-Apim-Subscription-Key``)
and provider config dicts. Error messages raised by httpx quote the request
URL, so secrets are scrubbed from string values as well as from keys.

Usage:
    from infrastructure.logging.formatters import add_app_info, mask_sensitive_data
"""

import re
from typing import Any


def add_app_info(app_name: str, app_version: str = "unknown"):
    """Processor stamping ``app_name`` and ``app_version`` on every entry."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("app_name", app_name)
        event_dict.setdefault("app_version", app_version)
        return event_dict

    return processor


# Key fragments whose values are never logged
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "auth_key",
        "authorization",
        "credential",
        "subscription_key",
        "cookie",
    }
)

# Credentials embedded in free text: URL query params and auth header values
_INLINE_SECRETS = (
    re.compile(r"([?&](?:key|auth_key|api_key)=)[^&\s'\"]+", re.IGNORECASE),
    re.compile(r"(DeepL-Auth-Key\s+)\S+", re.IGNORECASE),
    re.compile(r"(Ocp-Apim-Subscription-Key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+", re.IGNORECASE),
)


def _is_sensitive(key: str, patterns: frozenset[str]) -> bool:
    lowered = key.lower()
    return any(pattern in lowered for pattern in patterns)


def _scrub(value: Any, patterns: frozenset[str], mask_value: str) -> Any:
    if isinstance(value, dict):
        return {
            k: mask_value
            if isinstance(k, str) and _is_sensitive(k, patterns) and v is not None
            else _scrub(v, patterns, mask_value)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(item, patterns, mask_value) for item in value)
    if isinstance(value, str):
        for pattern in _INLINE_SECRETS:
            value = pattern.sub(rf"\g<1>{mask_value}", value)
    return value


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that redacts credentials from log entries.

    Values under keys containing a sensitive fragment are replaced at any
    depth (provider lists nest ``api_key`` inside dicts); string values keep
    their text with inline credentials replaced.

    Args:
        mask_value: Replacement for redacted values.
        additional_patterns: Extra key fragments to treat as sensitive.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        return _scrub(event_dict, patterns, mask_value)

    return processor


# Fields carrying guest-facing content, logged as short excerpts only
TEXT_FIELDS = frozenset({"text", "original_text", "translated_text", "source_text"})


def truncate_large_values(max_length: int = 500, text_length: int = 120):
    """Create a processor that shortens long string values.

    Content fields in ``TEXT_FIELDS`` are cut at ``text_length``, anything
    else at ``max_length``.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if not isinstance(value, str):
                continue
            limit = text_length if key in TEXT_FIELDS else max_length
            if len(value) > limit:
                event_dict[key] = value[:limit] + f"...[truncated, {len(value)} chars total]"
        return event_dict

    return processor
