from __future__ import annotations

import pytest

from amount_cli.shared.config import default_config
from amount_cli.shared.exceptions import InputValidationError
from amount_cli.shared.utils import (
    format_amount,
    sanitize_text,
    validate_amount_values,
    validate_image_size,
    validate_raw_tokens,
    validate_text,
)

LIMITS = default_config().limits


def test_sanitize_text_strips_control_characters() -> None:
    assert sanitize_text("Total:\x00 1200\x07\n\tPaid: 1000\x7f") == "Total: 1200\n\tPaid: 1000"
    assert sanitize_text(None) == ""


def test_validate_text_rejects_blank_and_oversized() -> None:
    with pytest.raises(InputValidationError, match="empty"):
        validate_text("   \n", LIMITS)
    with pytest.raises(InputValidationError, match="too long"):
        validate_text("x" * (LIMITS.max_text_length + 1), LIMITS)
    validate_text("Total: 10", LIMITS)


def test_validate_raw_tokens_limits() -> None:
    with pytest.raises(InputValidationError):
        validate_raw_tokens([], LIMITS)
    with pytest.raises(InputValidationError, match="Too many tokens"):
        validate_raw_tokens(["1"] * (LIMITS.max_tokens + 1), LIMITS)


def test_validate_amount_values_rejects_negative_and_nan() -> None:
    with pytest.raises(InputValidationError):
        validate_amount_values([10.0, -1.0], LIMITS)
    with pytest.raises(InputValidationError):
        validate_amount_values([float("nan")], LIMITS)
    validate_amount_values([10.0, 0.5], LIMITS)


def test_validate_image_size() -> None:
    with pytest.raises(InputValidationError, match="Image too large"):
        validate_image_size(b"\0" * (LIMITS.max_image_bytes + 1), LIMITS)


@pytest.mark.parametrize(
    "value, expected",
    [(2000.0, "2000"), (1250.5, "1250.5"), (99.99, "99.99"), (0.1, "0.1")],
)
def test_format_amount(value: float, expected: str) -> None:
    assert format_amount(value) == expected
