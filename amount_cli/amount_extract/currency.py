"""Currency hint detection."""

from __future__ import annotations

import re
from typing import NamedTuple

DEFAULT_CURRENCY = "USD"


class CurrencyHint(NamedTuple):
    code: str
    pattern: re.Pattern[str]


# Scan order matters: on equal counts the earlier entry wins.
CURRENCY_HINTS: tuple[CurrencyHint, ...] = (
    CurrencyHint("INR", re.compile(r"\b(?:inr|rs\.?|rupees?)\b|₹")),
    CurrencyHint("USD", re.compile(r"\b(?:usd|dollars?)\b|\$")),
    CurrencyHint("EUR", re.compile(r"\b(?:eur|euros?)\b|€")),
    CurrencyHint("GBP", re.compile(r"\b(?:gbp|pounds?)\b|£")),
)


def count_currency_markers(text: str) -> dict[str, int]:
    """Return per-currency match counts over the lowercased text."""

    lowered = (text or "").lower()
    return {hint.code: len(hint.pattern.findall(lowered)) for hint in CURRENCY_HINTS}


def detect_currency(text: str) -> str:
    """Return the currency code with the most markers, defaulting to USD."""

    counts = count_currency_markers(text)
    best_code: str | None = None
    best_count = 0
    for hint in CURRENCY_HINTS:
        if counts[hint.code] > best_count:
            best_code = hint.code
            best_count = counts[hint.code]
    return best_code or DEFAULT_CURRENCY
