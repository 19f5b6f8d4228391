"""Static classification rules mapping snippet context to an amount role."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    type: str
    keywords: tuple[str, ...]
    patterns: tuple[re.Pattern[str], ...]
    priority: int

    def first_pattern_match(self, snippet: str) -> re.Pattern[str] | None:
        for pattern in self.patterns:
            if pattern.search(snippet):
                return pattern
        return None

    def matched_keywords(self, snippet: str) -> list[str]:
        lowered = snippet.lower()
        return [keyword for keyword in self.keywords if keyword.lower() in lowered]


def _rule(type_: str, keywords: tuple[str, ...], patterns: tuple[str, ...], priority: int) -> ClassificationRule:
    return ClassificationRule(
        type=type_,
        keywords=keywords,
        patterns=tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns),
        priority=priority,
    )


# Declaration order is the tie-break order for equal scores.
DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    _rule(
        "total_bill",
        ("total amount", "grand total", "invoice total", "net amount", "total", "t0tal", "t0tal:"),
        (r"t[0o]tal",),
        10,
    ),
    _rule(
        "paid",
        ("amount paid", "paid", "received", "payment", "cash", "pald", "pald:"),
        (r"pa[il]d",),
        9,
    ),
    _rule(
        "due",
        ("balance due", "due", "balance", "remaining", "outstanding", "due:", "balance:"),
        (r"\bdue\b", r"\bbalance\b"),
        9,
    ),
    _rule(
        "subtotal",
        ("subtotal", "sub-total", "sub total", "before tax"),
        (r"sub\s*total",),
        8,
    ),
    _rule(
        "tax",
        ("tax", "gst", "vat", "cgst", "sgst", "igst"),
        (r"\btax\b", r"\bgst\b", r"\bvat\b"),
        7,
    ),
    _rule(
        "discount",
        ("discount", "off", "reduction"),
        (r"discount",),
        6,
    ),
    _rule(
        "service_charge",
        ("room charges", "consultation", "lab tests", "medicines", "charges"),
        (r"charges", r"consultation"),
        5,
    ),
)

CLASSIFICATION_TYPES: tuple[str, ...] = tuple(rule.type for rule in DEFAULT_RULES)
SINGLETON_TYPES: tuple[str, ...] = ("total_bill", "subtotal", "paid")
