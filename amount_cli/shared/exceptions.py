"""Project-wide custom exceptions."""

from __future__ import annotations


class AmountDetectError(Exception):
    """Base exception for the amount detection suite."""


class ConfigurationError(AmountDetectError):
    """Raised when configuration loading or validation fails."""


class InputValidationError(AmountDetectError):
    """Raised when caller-supplied input is rejected at the boundary."""


class ExtractionError(AmountDetectError):
    """Raised when text or token extraction fails."""


class OCRError(ExtractionError):
    """Raised when the OCR engine is unavailable or fails to recognize an image."""


class LLMClientError(AmountDetectError):
    """Raised when the LLM validator cannot fulfill a request."""
