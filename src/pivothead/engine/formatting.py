"""Display formatting for cell values: currency, number, percentage, date.

Pure functions.  Two locales are understood: ``en-US`` (thousands grouped by
three) and ``en-IN`` (Indian system, 1,23,456).  Anything else falls back to
``en-US``.  Empty-group sentinels (NaN, +/-inf) render as a placeholder.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from pivothead.engine.aggregator import is_sentinel
from pivothead.engine.models import FORMAT_TYPES, FormatOptions

logger = logging.getLogger(__name__)

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}


def format_value(value: object, fmt: FormatOptions | None, placeholder: str = "-") -> str:
    """Render *value* per *fmt*.

    Returns ``str(value)`` when no rule applies or formatting fails, and
    *placeholder* for NaN / infinity.
    """
    if value is None:
        return ""
    if is_sentinel(value):
        return placeholder
    if fmt is None or fmt.type not in FORMAT_TYPES:
        return str(value)

    try:
        if fmt.type == "currency":
            return format_currency(float(value), fmt.currency, fmt.decimals, fmt.locale)
        if fmt.type == "number":
            return format_number(float(value), fmt.decimals, fmt.locale)
        if fmt.type == "percentage":
            return format_number(float(value) * 100, fmt.decimals, fmt.locale) + "%"
        return format_date(value, fmt.locale)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.warning("Could not format %r as %s: %s", value, fmt.type, exc)
        return str(value)


def format_number(value: float, decimals: int = 0, locale: str = "en-US") -> str:
    """Fixed-point number with locale digit grouping."""
    decimals = max(0, int(decimals))
    text = f"{abs(value):.{decimals}f}"
    int_part, _, decimal_part = text.partition(".")

    if locale == "en-IN":
        grouped = _group_indian(int_part)
    else:
        grouped = f"{int(int_part):,}"

    result = grouped
    if decimal_part:
        result += "." + decimal_part
    if value < 0 and float(text) != 0:
        result = "-" + result
    return result


def format_currency(value: float, currency: str = "USD", decimals: int = 0, locale: str = "en-US") -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    body = format_number(abs(value), decimals, locale)
    if value < 0 and body.strip("0.,") != "":
        return f"-{symbol}{body}"
    return f"{symbol}{body}"


def format_date(value: object, locale: str = "en-US") -> str:
    """Medium date style: ``Jan 5, 2024`` (en-US) or ``5 Jan 2024`` (en-IN)."""
    d = _to_date(value)
    if locale == "en-IN":
        return f"{d.day} {d:%b} {d.year}"
    return f"{d:%b} {d.day}, {d.year}"


def _to_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as produced by most JSON date encoders.
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    raise TypeError(f"Cannot interpret {type(value).__name__} as a date")


def _group_indian(int_part: str) -> str:
    """Group digits the Indian way: last three together, then pairs.

        1234567  -> 12,34,567
        12345    -> 12,345
        123      -> 123
    """
    if len(int_part) <= 3:
        return int_part
    last3 = int_part[-3:]
    rest = int_part[:-3]
    chunks: list[str] = []
    while len(rest) > 2:
        chunks.append(rest[-2:])
        rest = rest[:-2]
    if rest:
        chunks.append(rest)
    chunks.reverse()
    return ",".join(chunks) + "," + last3
