"""OCR engine boundary: the protocol the pipeline consumes plus a Tesseract backend."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Protocol

from amount_cli.shared.config import OCRSettings
from amount_cli.shared.exceptions import InputValidationError, OCRError
from amount_cli.shared.logging import Logger, get_logger

try:  # Optional dependency
    import pytesseract  # type: ignore
    from PIL import Image  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - dependency optional at runtime
    pytesseract = None  # type: ignore
    Image = None  # type: ignore

_DATA_URI_PREFIX_RE = re.compile(r"^data:image/[a-z]+;base64,", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class OCRResult:
    """Recognized text and the engine's confidence in ``[0, 1]``."""

    text: str
    confidence: float


class OCREngine(Protocol):
    def recognize(self, image: bytes, language: str) -> OCRResult:
        ...


class TesseractEngine:
    """Run Tesseract through pytesseract on an in-memory image."""

    def __init__(self, settings: OCRSettings, logger: Logger | None = None) -> None:
        self._settings = settings
        self._logger = logger or get_logger()
        if pytesseract is not None and settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd

    @property
    def available(self) -> bool:
        return pytesseract is not None and Image is not None

    def recognize(self, image: bytes, language: str) -> OCRResult:
        if not self.available:
            raise OCRError(
                "pytesseract/Pillow are not installed. Install extras with "
                "'pip install amount-detect[ocr]' to enable image input."
            )

        self._logger.info("Starting OCR processing")
        try:
            with self._logger.timed("OCR"):
                with Image.open(BytesIO(image)) as picture:
                    data = pytesseract.image_to_data(
                        picture,
                        lang=language,
                        output_type=pytesseract.Output.DICT,
                    )
        except Exception as exc:
            raise OCRError(f"OCR failed: {exc}") from exc

        text = _join_words(data)
        confidence = _mean_confidence(data.get("conf", []))
        self._logger.info(f"OCR completed with confidence: {confidence * 100:.1f}%")
        return OCRResult(text=text, confidence=confidence)


def _join_words(data: dict) -> str:
    """Rebuild line-broken text from Tesseract's word-level output."""

    lines: dict[tuple[int, int, int], list[str]] = {}
    words = data.get("text", [])
    for index, word in enumerate(words):
        if not str(word).strip():
            continue
        key = (
            int(data["block_num"][index]),
            int(data["par_num"][index]),
            int(data["line_num"][index]),
        )
        lines.setdefault(key, []).append(str(word).strip())
    return "\n".join(" ".join(parts) for parts in lines.values()).strip()


def _mean_confidence(values: list) -> float:
    scores: list[float] = []
    for raw in values:
        try:
            score = float(raw)
        except (TypeError, ValueError):
            continue
        if score >= 0:
            scores.append(score)
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores) / 100, 4)


def decode_base64_image(data: str) -> bytes:
    """Decode a base64 image, with or without a ``data:image/...`` prefix."""

    payload = _DATA_URI_PREFIX_RE.sub("", (data or "").strip())
    if not payload:
        raise InputValidationError("Base64 image is empty")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError("Invalid base64 image format") from exc
