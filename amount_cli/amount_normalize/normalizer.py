"""Turn raw, possibly OCR-corrupted tokens into rounded numeric amounts.

Correction is local: a look-alike letter (``l``, ``O``, ``S``...)
only becomes a digit when it sits next to a real digit, so words that leak
into a token are dropped instead of being coerced into numbers.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence

from amount_cli.shared.config import ConfidenceSettings
from amount_cli.shared.logging import Logger, get_logger

from .digits import DIGIT_CORRECTIONS, round_currency
from .types import AmountSanityReport, NormalizationDetail, NormalizationOutput, NormalizedAmount

_CURRENCY_MARKER_RE = re.compile(r"rs\.?|inr|usd|eur|gbp|[$€£₹]", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS = frozenset("0123456789")
_KEEP_CHARS = _DIGITS | {".", ","}

MIN_AMOUNT = 0.01
MAX_REALISTIC_AMOUNT = 10_000_000


class AmountNormalizer:
    """Normalize raw tokens and score how trustworthy the batch is."""

    def __init__(
        self,
        settings: ConfidenceSettings,
        logger: Logger | None = None,
        *,
        corrections: Mapping[str, str] = DIGIT_CORRECTIONS,
    ) -> None:
        self._settings = settings
        self._logger = logger or get_logger()
        self._corrections = corrections

    def fix_ocr_digits(self, token: str) -> str:
        if not token:
            return ""

        stripped = _CURRENCY_MARKER_RE.sub("", token.strip())
        stripped = _WHITESPACE_RE.sub("", stripped)

        chars: list[str] = []
        for index, char in enumerate(stripped):
            prev_char = stripped[index - 1] if index > 0 else ""
            next_char = stripped[index + 1] if index + 1 < len(stripped) else ""
            adjacent_digit = prev_char in _DIGITS or next_char in _DIGITS
            if char in self._corrections and adjacent_digit:
                chars.append(self._corrections[char])
            elif char in _KEEP_CHARS:
                chars.append(char)

        fixed = "".join(chars).replace(",", "")

        parts = fixed.split(".")
        if len(parts) > 2:
            fixed = parts[0] + "." + "".join(parts[1:])
        return fixed

    def parse_numeric(self, token: str) -> NormalizedAmount | None:
        if "%" in token:
            self._logger.debug(f"Skipping percentage token: {token!r}")
            return None

        fixed = self.fix_ocr_digits(token)
        if not fixed or fixed == ".":
            return None

        try:
            value = float(fixed)
        except ValueError:
            self._logger.debug(f"Token {token!r} did not parse after correction ({fixed!r})")
            return None

        if not math.isfinite(value) or value < 0:
            self._logger.debug(f"Invalid numeric value from token {token!r}: {value}")
            return None
        if value < MIN_AMOUNT:
            self._logger.debug(f"Skipping too small value {value} from token {token!r}")
            return None

        return NormalizedAmount(value=round_currency(value), original=token, normalized=fixed)

    def normalize_tokens(self, tokens: Sequence[str]) -> NormalizationOutput:
        if not tokens:
            return NormalizationOutput()

        amounts: list[float] = []
        details: list[NormalizationDetail] = []
        seen: set[float] = set()
        successes = 0

        self._logger.info(f"Starting normalization of {len(tokens)} tokens")

        for token in tokens:
            parsed = self.parse_numeric(token)
            if parsed is None:
                details.append(
                    NormalizationDetail(
                        original=token,
                        normalized=self.fix_ocr_digits(token),
                        value=None,
                        success=False,
                        reason="percentage" if "%" in token else "invalid_format",
                    )
                )
                self._logger.debug(f"Failed to normalize {token!r}")
                continue

            if parsed.value in seen:
                self._logger.debug(f"Skipping duplicate value {parsed.value} from {token!r}")
                details.append(
                    NormalizationDetail(
                        original=parsed.original,
                        normalized=parsed.normalized,
                        value=parsed.value,
                        success=False,
                        reason="duplicate",
                    )
                )
                continue

            seen.add(parsed.value)
            amounts.append(parsed.value)
            details.append(
                NormalizationDetail(
                    original=parsed.original,
                    normalized=parsed.normalized,
                    value=parsed.value,
                    success=True,
                )
            )
            successes += 1
            self._logger.debug(f"Normalized {token!r} -> {parsed.value}")

        confidence = self.calculate_confidence(successes / len(tokens), len(amounts))
        self._logger.info(
            f"Normalized {successes}/{len(tokens)} tokens ({len(amounts)} unique) "
            f"with {confidence * 100:.1f}% confidence"
        )
        return NormalizationOutput(
            normalized_amounts=amounts,
            normalization_confidence=confidence,
            details=details,
        )

    def calculate_confidence(self, success_rate: float, amount_count: int) -> float:
        if amount_count == 0:
            return 0.0

        confidence = 0.5 + success_rate * 0.4
        if 2 <= amount_count <= 10:
            confidence += 0.1
        if amount_count == 1:
            confidence *= 0.9

        confidence = max(self._settings.min_normalization, min(0.99, confidence))
        return round(confidence, 2)

    def validate_amounts(self, values: Iterable[float]) -> AmountSanityReport:
        """Flag values that are unlikely to be real bill amounts."""

        values = list(values)
        report = AmountSanityReport()
        if not values:
            report.issues.append("No amounts to validate")
            return report

        for value in values:
            if value < 0:
                report.issues.append(f"Negative amount detected: {value}")
            if value > MAX_REALISTIC_AMOUNT:
                report.issues.append(f"Unrealistically large amount: {value}")
            if 0 <= value < MIN_AMOUNT:
                report.issues.append(f"Amount too small: {value}")

        if len(set(values)) < len(values) * 0.5:
            report.issues.append("Too many duplicate amounts detected")
        return report
