"""Dataclasses describing classification and validation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class SnippetMatch:
    """Best-scoring rule for one snippet."""

    type: str
    confidence: float
    score: int
    keywords: list[str] = field(default_factory=list)
    pattern_matched: bool = False


@dataclass(slots=True)
class ClassifiedAmount:
    type: str
    value: float
    source: str
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value, "source": self.source}


@dataclass(slots=True)
class ClassificationDetail:
    amount: float
    snippet: str
    type: str
    matched_keywords: list[str] = field(default_factory=list)
    pattern_matched: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "snippet": self.snippet,
            "type": self.type,
            "matched_keywords": list(self.matched_keywords),
            "pattern_matched": self.pattern_matched,
        }


@dataclass(slots=True)
class ClassificationOutput:
    amounts: list[ClassifiedAmount] = field(default_factory=list)
    confidence: float = 0.0
    classification_details: list[ClassificationDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "amounts": [amount.to_dict() for amount in self.amounts],
            "confidence": self.confidence,
            "classification_details": [detail.to_dict() for detail in self.classification_details],
        }


@dataclass(slots=True)
class ValidationIssue:
    """Single consistency finding."""

    code: str
    message: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregate report returned by ``validate_classification``."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues

    def add(self, code: str, message: str) -> None:
        self.issues.append(ValidationIssue(code=code, message=message))

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "issues": [issue.message for issue in self.issues]}
