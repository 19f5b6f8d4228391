"""Dataclasses describing normalization results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class NormalizedAmount:
    """Numeric value recovered from a raw token."""

    value: float
    original: str
    normalized: str


@dataclass(slots=True)
class NormalizationDetail:
    """Per-token outcome record, kept for failures as well as successes."""

    original: str
    normalized: str
    value: float | None
    success: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "original": self.original,
            "normalized": self.normalized,
            "value": self.value,
            "success": self.success,
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


@dataclass(slots=True)
class NormalizationOutput:
    normalized_amounts: list[float] = field(default_factory=list)
    normalization_confidence: float = 0.0
    details: list[NormalizationDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalized_amounts": list(self.normalized_amounts),
            "normalization_confidence": self.normalization_confidence,
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass(slots=True)
class AmountSanityReport:
    """Advisory findings about a batch of normalized values."""

    issues: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "issues": list(self.issues)}
