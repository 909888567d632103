"""Versioned translation rows."""

from modules.localization.translations.store import TranslationStore

__all__ = ["TranslationStore"]
