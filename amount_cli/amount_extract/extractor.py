"""Candidate-token extraction from raw or OCR'd bill text."""

from __future__ import annotations

import re

from amount_cli.amount_normalize.digits import NUMERAL_RUN, correct_candidate, parse_candidate
from amount_cli.shared.config import ConfidenceSettings
from amount_cli.shared.logging import Logger, get_logger

from .currency import detect_currency
from .types import ExtractionOutput

MONETARY_KEYWORDS: tuple[str, ...] = (
    "subtotal",
    "total",
    "amount",
    "paid",
    "cash",
    "change",
    "due",
    "balance",
    "discount",
    "tax",
    "gst",
    "vat",
    "cgst",
    "sgst",
    "price",
    "cost",
    "bill",
    "payment",
    "charge",
    "fee",
    "charges",
    "pald",
)

# Lines carrying identifiers, dates or times rather than money.
EXCLUDE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:invoice|bill)\s*#?\s*:?\s*\d{5,}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b"),
    re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\s*(?:am|pm)?", re.IGNORECASE),
    re.compile(r"patient\s*(?:name|id)\s*:?\s*\d+", re.IGNORECASE),
    re.compile(r"doctor\s*(?:name|id)\s*:?\s*\d+", re.IGNORECASE),
    re.compile(r"room\s*(?:no|number)\s*:?\s*\d+", re.IGNORECASE),
    re.compile(r"\b(?:phone|tel|mobile|contact)\s*:?\s*\d{10,}", re.IGNORECASE),
)

_SEGMENT_SPLIT_RE = re.compile(r"[|\n\r]+")
_CURRENCY_SYMBOL_RE = re.compile(r"[$€£₹]")
_RS_MARKER_RE = re.compile(r"rs\.?\s", re.IGNORECASE)
_COLON_NUMERAL_RE = re.compile(r":\s*(?:Rs\.?|INR|\$|€|£|₹)?\s*[l1IO0-9,]+", re.IGNORECASE)
_TOKEN_RE = re.compile(
    rf"(?:Rs\.?|INR|USD|EUR|GBP|\$|€|£|₹|:)\s*({NUMERAL_RUN})",
    re.IGNORECASE,
)

DEFAULT_BASE_CONFIDENCE = 0.8
MAX_EXTRACTION_CONFIDENCE = 0.95


def split_segments(text: str) -> list[str]:
    """Split text on pipes and line breaks, dropping blank segments."""

    return [segment.strip() for segment in _SEGMENT_SPLIT_RE.split(text or "") if segment.strip()]


class TokenExtractor:
    """Find monetary-looking substrings and estimate how much to trust them."""

    def __init__(self, settings: ConfidenceSettings, logger: Logger | None = None) -> None:
        self._settings = settings
        self._logger = logger or get_logger()

    def extract(
        self,
        text: str | None = None,
        ocr_text: str | None = None,
        ocr_confidence: float | None = None,
    ) -> ExtractionOutput:
        extracted_text = text or ""
        if ocr_text:
            extracted_text = f"{extracted_text}\n{ocr_text}" if extracted_text else ocr_text

        if not extracted_text.strip():
            self._logger.warning("No text extracted from input")
            return ExtractionOutput()

        raw_tokens = self.extract_numeric_tokens(extracted_text)
        currency_hint = detect_currency(extracted_text)
        confidence = self.calculate_confidence(ocr_confidence or 0.0, len(raw_tokens), extracted_text)

        self._logger.info(
            f"Extracted {len(raw_tokens)} tokens with {confidence * 100:.1f}% confidence "
            f"(currency hint: {currency_hint})"
        )
        return ExtractionOutput(
            raw_tokens=raw_tokens,
            currency_hint=currency_hint,
            confidence=confidence,
            extracted_text=extracted_text,
        )

    def is_monetary_line(self, line: str) -> bool:
        if any(pattern.search(line) for pattern in EXCLUDE_PATTERNS):
            return False

        lowered = line.lower()
        if any(keyword in lowered for keyword in MONETARY_KEYWORDS):
            return True
        if _CURRENCY_SYMBOL_RE.search(line) or _RS_MARKER_RE.search(line):
            return True
        return bool(_COLON_NUMERAL_RE.search(line))

    def extract_numeric_tokens(self, text: str) -> list[str]:
        tokens: list[str] = []
        seen_keys: set[str] = set()

        segments = split_segments(text)
        self._logger.debug(f"Processing {len(segments)} text segments for token extraction")

        for segment in segments:
            if not self.is_monetary_line(segment):
                self._logger.debug(f"Skipping non-monetary segment: {segment!r}")
                continue

            for match in _TOKEN_RE.finditer(segment):
                token = match.group(1).strip()
                if not token or "%" in token:
                    continue

                key = correct_candidate(token)
                value = parse_candidate(token)
                if value is None or value <= 0:
                    self._logger.debug(f"Invalid numeric value: {token!r}")
                    continue
                if value < 1:
                    self._logger.debug(f"Value too small: {token!r} -> {value}")
                    continue
                if key in seen_keys:
                    self._logger.debug(f"Skipping duplicate token {token!r} (normalized: {key})")
                    continue

                seen_keys.add(key)
                tokens.append(token)
                self._logger.debug(f"Extracted token {token!r} (normalized: {key}) from {segment!r}")

        return tokens

    def calculate_confidence(self, ocr_confidence: float, token_count: int, text: str = "") -> float:
        if token_count == 0:
            return 0.0

        confidence = ocr_confidence if ocr_confidence > 0 else DEFAULT_BASE_CONFIDENCE
        if 2 <= token_count <= 10:
            confidence = min(MAX_EXTRACTION_CONFIDENCE, confidence + 0.1)
        elif token_count == 1:
            confidence *= 0.9
        elif token_count > 15:
            confidence *= 0.8

        lowered = text.lower()
        keyword_hits = sum(1 for keyword in MONETARY_KEYWORDS if keyword in lowered)
        if keyword_hits >= 2:
            confidence = min(MAX_EXTRACTION_CONFIDENCE, confidence + 0.05)

        confidence = max(self._settings.min_ocr, min(MAX_EXTRACTION_CONFIDENCE, confidence))
        return round(confidence, 2)
