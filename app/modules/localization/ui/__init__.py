"""UI string namespaces: reads with source fallback, edits, approvals, seeding."""

from modules.localization.ui.catalog import YAMLCatalogLoader, flatten, interpolate
from modules.localization.ui.service import DEFAULT_NAMESPACE, UITranslationService

__all__ = [
    "DEFAULT_NAMESPACE",
    "UITranslationService",
    "YAMLCatalogLoader",
    "flatten",
    "interpolate",
]
