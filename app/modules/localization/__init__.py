# modules/localization/__init__.py
"""Multilingual content and translation module.

Keeps hotel content (room types, amenities, UI strings) available in every
supported language:

- Language catalogue with OTA channel mappings and formatting conventions
- Versioned translation rows driven through a review workflow
- Machine translation through a ranked provider fallback chain
- Localized views of owning resources and UI namespaces
- Completeness statistics per resource, namespace and language

Components are wired once per process by ``context.build_context`` and
exposed to callers through ``service.LocalizationService``.
"""
