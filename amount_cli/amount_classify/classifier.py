"""Context-based classification of normalized amounts into bill roles.

Each snippet (one line or pipe-separated segment of the source text) is
re-scanned for candidate amounts with the same patterns and corrections the
extractor uses. Candidates that match an already-normalized value take the
role of the best-scoring rule for that snippet, and the snippet itself is
recorded as provenance.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from amount_cli.amount_extract.extractor import split_segments
from amount_cli.amount_normalize.digits import NUMERAL_RUN, parse_candidate, round_currency
from amount_cli.shared.config import ConfidenceSettings
from amount_cli.shared.logging import Logger, get_logger

from .rules import DEFAULT_RULES, ClassificationRule
from .types import (
    ClassificationDetail,
    ClassificationOutput,
    ClassifiedAmount,
    SnippetMatch,
)

SNIPPET_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:Rs\.?|INR|USD|EUR|GBP|\$|€|£|₹)\s*({NUMERAL_RUN})", re.IGNORECASE),
    re.compile(rf":\s*(?:Rs\.?|INR|\$|€|£|₹)?\s*({NUMERAL_RUN})", re.IGNORECASE),
)

MATCH_TOLERANCE = 0.01
MIN_ACCEPTED_CONFIDENCE = 0.5
MAX_CLASSIFICATION_CONFIDENCE = 0.95
PROVENANCE_MAX_CHARS = 80
SOURCE_PREFIX = "text:"
KEY_TYPES: tuple[str, ...] = ("total_bill", "paid", "due")


def format_source(snippet: str) -> str:
    truncated = snippet if len(snippet) <= PROVENANCE_MAX_CHARS else snippet[:PROVENANCE_MAX_CHARS] + "..."
    return f"{SOURCE_PREFIX} '{truncated}'"


class AmountClassifier:
    """Assign semantic roles (total_bill, paid, due...) to normalized amounts."""

    def __init__(
        self,
        settings: ConfidenceSettings,
        logger: Logger | None = None,
        *,
        rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    ) -> None:
        self._settings = settings
        self._logger = logger or get_logger()
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def find_context_snippets(self, text: str) -> list[str]:
        snippets = split_segments(text)
        self._logger.debug(f"Found {len(snippets)} context snippets")
        return snippets

    def extract_amounts_from_snippet(self, snippet: str) -> list[float]:
        """Return distinct candidate values in the snippet, in first-seen order."""

        found: list[float] = []
        for pattern in SNIPPET_PATTERNS:
            for match in pattern.finditer(snippet):
                raw_value = match.group(1)
                value = parse_candidate(raw_value) if raw_value else None
                if value is None or value <= 0:
                    self._logger.debug(f"Ignoring unparseable candidate {match.group(0)!r}")
                    continue
                rounded = round_currency(value)
                if rounded not in found:
                    found.append(rounded)
        return found

    def match_snippet_to_type(self, snippet: str) -> SnippetMatch | None:
        best: SnippetMatch | None = None
        highest = 0

        for rule in self._rules:
            score = 0
            pattern_matched = rule.first_pattern_match(snippet) is not None
            if pattern_matched:
                score += rule.priority * 2
            keywords = rule.matched_keywords(snippet)
            score += rule.priority * len(keywords)

            # Strictly greater: equal scores keep the earlier-declared rule.
            if score > highest:
                highest = score
                best = SnippetMatch(
                    type=rule.type,
                    confidence=min(MAX_CLASSIFICATION_CONFIDENCE, 0.5 + score / 30),
                    score=score,
                    keywords=keywords,
                    pattern_matched=pattern_matched,
                )

        if best is not None:
            self._logger.debug(
                f"Snippet {snippet!r} -> {best.type} (score {best.score}, confidence {best.confidence:.2f})"
            )
        return best

    def classify_amounts(self, text: str, normalized_amounts: Sequence[float]) -> ClassificationOutput:
        if not text or not normalized_amounts:
            self._logger.warning("No text or normalized amounts provided")
            return ClassificationOutput()

        amounts: list[ClassifiedAmount] = []
        details: list[ClassificationDetail] = []
        assigned: set[tuple[str, float]] = set()

        for snippet in self.find_context_snippets(text):
            candidates = self.extract_amounts_from_snippet(snippet)
            if not candidates:
                continue

            for candidate in candidates:
                matched = next(
                    (value for value in normalized_amounts if abs(value - candidate) < MATCH_TOLERANCE),
                    None,
                )
                if matched is None:
                    self._logger.debug(f"No normalized amount matches {candidate} in {snippet!r}")
                    continue

                classification = self.match_snippet_to_type(snippet)
                if classification is None:
                    continue
                if classification.confidence <= MIN_ACCEPTED_CONFIDENCE:
                    continue

                pair = (classification.type, matched)
                if pair in assigned:
                    self._logger.debug(f"Already classified {matched} as {classification.type}, skipping")
                    continue

                assigned.add(pair)
                amounts.append(
                    ClassifiedAmount(
                        type=classification.type,
                        value=matched,
                        source=format_source(snippet),
                        confidence=classification.confidence,
                    )
                )
                details.append(
                    ClassificationDetail(
                        amount=matched,
                        snippet=snippet,
                        type=classification.type,
                        matched_keywords=classification.keywords,
                        pattern_matched=classification.pattern_matched,
                    )
                )
                self._logger.debug(f"Classified {matched} as {classification.type!r}")

        confidence = self.calculate_confidence(amounts, len(normalized_amounts))
        self._logger.info(
            f"Classified {len(amounts)}/{len(normalized_amounts)} amounts "
            f"with {confidence * 100:.1f}% confidence"
        )
        return ClassificationOutput(amounts=amounts, confidence=confidence, classification_details=details)

    def calculate_confidence(self, amounts: Sequence[ClassifiedAmount], total_amounts: int) -> float:
        if total_amounts == 0:
            return 0.0

        confidence = 0.4 + (len(amounts) / total_amounts) * 0.3
        if amounts:
            explicit = sum(1 for amount in amounts if amount.source.startswith(SOURCE_PREFIX))
            confidence += (explicit / len(amounts)) * 0.3

        present = {amount.type for amount in amounts}
        confidence += 0.05 * sum(1 for type_ in KEY_TYPES if type_ in present)

        confidence = max(self._settings.min_classification, min(MAX_CLASSIFICATION_CONFIDENCE, confidence))
        return round(confidence, 2)
