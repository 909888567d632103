"""Language registry and locale formatting."""

from modules.localization.languages.formatting import (
    format_address,
    format_currency,
    format_date,
    format_number,
    format_time,
)
from modules.localization.languages.registry import LanguageRegistry

__all__ = [
    "LanguageRegistry",
    "format_address",
    "format_currency",
    "format_date",
    "format_number",
    "format_time",
]
