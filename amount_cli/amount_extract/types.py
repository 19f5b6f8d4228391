"""Dataclasses describing extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ExtractionOutput:
    """Raw monetary tokens pulled from text, plus the text they came from."""

    raw_tokens: list[str] = field(default_factory=list)
    currency_hint: str | None = None
    confidence: float = 0.0
    extracted_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw_tokens": list(self.raw_tokens),
            "currency_hint": self.currency_hint,
            "confidence": self.confidence,
            "extracted_text": self.extracted_text,
        }
