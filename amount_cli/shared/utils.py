"""Input sanitisation and boundary checks used by the CLI."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence

from .config import InputLimits
from .exceptions import InputValidationError

# NUL plus C0 controls other than tab, newline and carriage return, and DEL.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(text: str | None) -> str:
    """Strip control characters that OCR output and pasted text sometimes carry."""

    if not text:
        return ""
    return _CONTROL_CHARS_RE.sub("", text)


def validate_text(text: str, limits: InputLimits) -> None:
    if not text.strip():
        raise InputValidationError("Text cannot be empty or whitespace only")
    if len(text) > limits.max_text_length:
        raise InputValidationError(
            f"Text too long ({len(text)} characters, max {limits.max_text_length})"
        )


def validate_raw_tokens(tokens: Sequence[str], limits: InputLimits) -> None:
    if not tokens:
        raise InputValidationError("raw_tokens cannot be empty")
    if len(tokens) > limits.max_tokens:
        raise InputValidationError(f"Too many tokens (max {limits.max_tokens})")


def validate_amount_values(values: Sequence[float], limits: InputLimits) -> None:
    if not values:
        raise InputValidationError("normalized_amounts cannot be empty")
    if len(values) > limits.max_tokens:
        raise InputValidationError(f"Too many amounts (max {limits.max_tokens})")
    if any(not math.isfinite(value) or value < 0 for value in values):
        raise InputValidationError("All amounts must be positive finite numbers")


def validate_image_size(image: bytes, limits: InputLimits) -> None:
    if len(image) > limits.max_image_bytes:
        size_mb = len(image) / 1024 / 1024
        max_mb = limits.max_image_bytes / 1024 / 1024
        raise InputValidationError(f"Image too large: {size_mb:.2f}MB (max: {max_mb:.2f}MB)")


def format_amount(value: float) -> str:
    """Render an amount without a trailing ``.0`` for whole values."""

    text = f"{value:.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text
