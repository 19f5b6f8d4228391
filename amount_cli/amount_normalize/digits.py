"""OCR digit-correction tables and numeric helpers shared by every stage."""

from __future__ import annotations

import math
import re
from types import MappingProxyType
from typing import Mapping

# Letters Tesseract commonly emits in place of digits on receipts.
DIGIT_CORRECTIONS: Mapping[str, str] = MappingProxyType(
    {
        "l": "1", "L": "1", "I": "1", "i": "1",
        "O": "0", "o": "0", "D": "0",
        "S": "5", "s": "5",
        "Z": "2", "z": "2",
        "B": "8", "b": "8",
        "G": "6", "g": "6",
        "T": "7", "t": "7",
    }
)

# Subset that the candidate regex ``[l1IO0-9,]`` can capture case-insensitively.
CANDIDATE_CORRECTIONS: Mapping[str, str] = MappingProxyType(
    {"l": "1", "L": "1", "i": "1", "I": "1", "O": "0", "o": "0"}
)

_SEPARATOR_RE = re.compile(r"[,\s]")

# Numeral-like run as captured from a receipt line, letters allowed. The run must
# hold a real digit or be at least two characters long, so the "I" of "INR" after
# a colon is not taken for a one-digit amount.
NUMERAL_RUN = r"(?=[l1IO0-9,]*\d|[l1IO0-9,]{2})[l1IO0-9,]+(?:\.[l1IO0-9]{1,2})?"


def correct_candidate(raw: str) -> str:
    """Strip separators and map look-alike letters in a regex-captured numeral run."""

    cleaned = _SEPARATOR_RE.sub("", raw)
    return "".join(CANDIDATE_CORRECTIONS.get(char, char) for char in cleaned)


def parse_candidate(raw: str) -> float | None:
    """Return the numeric value of a captured run, or ``None`` when it does not parse."""

    corrected = correct_candidate(raw)
    if not corrected:
        return None
    try:
        value = float(corrected)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def round_currency(value: float) -> float:
    """Round half-up to two decimal places."""

    return math.floor(value * 100 + 0.5) / 100
