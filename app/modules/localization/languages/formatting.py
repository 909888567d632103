"""Locale formatting helpers driven by a language's formatting settings.

Date patterns use the tokens stored on languages (``YYYY``, ``MMM``,
``dddd``, ``HH``...); numbers use the language's separators and currency
placement. Channel or context overrides take precedence over the
language's own settings.
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from modules.localization.domain.models import FormattingOverrides, Language

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_TOKEN = re.compile(r"YYYY|YY|MMMM|MMM|MM|M|dddd|ddd|DD|D|HH|H|hh|h|mm|ss|A|z")

Number = Union[int, float, Decimal]


def _render_token(token: str, value: datetime) -> str:
    hour12 = value.hour % 12 or 12
    return {
        "YYYY": f"{value.year:04d}",
        "YY": f"{value.year % 100:02d}",
        "MMMM": MONTHS[value.month - 1],
        "MMM": MONTHS[value.month - 1][:3],
        "MM": f"{value.month:02d}",
        "M": str(value.month),
        "dddd": WEEKDAYS[value.weekday()],
        "ddd": WEEKDAYS[value.weekday()][:3],
        "DD": f"{value.day:02d}",
        "D": str(value.day),
        "HH": f"{value.hour:02d}",
        "H": str(value.hour),
        "hh": f"{hour12:02d}",
        "h": str(hour12),
        "mm": f"{value.minute:02d}",
        "ss": f"{value.second:02d}",
        "A": "AM" if value.hour < 12 else "PM",
        "z": value.tzname() or "UTC",
    }[token]


def render_pattern(pattern: str, value: Union[date, datetime]) -> str:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return _TOKEN.sub(lambda m: _render_token(m.group(0), value), pattern)


def resolve_overrides(
    language: Language,
    channel: Optional[str] = None,
    context: Optional[str] = None,
) -> FormattingOverrides:
    """Context overrides win over channel overrides."""
    merged = {}
    if channel:
        mapping = language.channel_mapping(channel)
        if mapping:
            merged.update(mapping.formatting.model_dump(exclude_none=True))
    if context:
        ctx = language.context(context)
        if ctx:
            merged.update(ctx.overrides.model_dump(exclude_none=True))
    return FormattingOverrides(**merged)


def format_date(
    language: Language,
    value: Union[date, datetime],
    style: str = "short",
    channel: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    overrides = resolve_overrides(language, channel, context)
    pattern = overrides.date_format or getattr(
        language.formatting.date_format, style, language.formatting.date_format.short
    )
    return render_pattern(pattern, value)


def format_time(
    language: Language,
    value: datetime,
    style: str = "short",
    channel: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    overrides = resolve_overrides(language, channel, context)
    pattern = overrides.time_format or getattr(
        language.formatting.time_format, style, language.formatting.time_format.short
    )
    return render_pattern(pattern, value)


def format_number(
    language: Language,
    value: Number,
    decimals: int = 2,
    channel: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    """Group thousands and place the decimal separator of the language."""
    number_format = language.formatting.number_format
    overrides = resolve_overrides(language, channel, context)
    decimal_sep = overrides.decimal_separator or number_format.decimal_separator
    thousands_sep = (
        overrides.thousands_separator
        if overrides.thousands_separator is not None
        else number_format.thousands_separator
    )

    quantum = Decimal(1).scaleb(-decimals) if decimals > 0 else Decimal(1)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    integer, _, fraction = f"{abs(rounded):f}".partition(".")

    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    text = thousands_sep.join(groups)
    if fraction:
        text = f"{text}{decimal_sep}{fraction}"
    return f"{sign}{text}"


def format_currency(
    language: Language,
    value: Number,
    symbol: Optional[str] = None,
    decimals: int = 2,
    channel: Optional[str] = None,
) -> str:
    number_format = language.formatting.number_format
    amount = format_number(language, value, decimals=decimals, channel=channel)
    symbol = symbol if symbol is not None else number_format.currency_symbol
    if number_format.currency_position == "after":
        return f"{amount} {symbol}"
    return f"{symbol}{amount}"


def format_address(language: Language, **parts: str) -> str:
    """Fill the language's address template; missing parts render empty."""
    template = language.formatting.address_format
    values = {name: "" for name in re.findall(r"{(\w+)}", template)}
    values.update({k: v for k, v in parts.items() if v is not None})
    lines = [line.strip(" ,") for line in template.format(**values).splitlines()]
    return "\n".join(line for line in lines if line)
