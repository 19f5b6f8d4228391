"""Configuration loading utilities for the amount detection pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class OCRSettings:
    """OCR engine configuration."""

    language: str
    tesseract_cmd: str | None


@dataclass(frozen=True, slots=True)
class ConfidenceSettings:
    """Lower clamps applied to each stage's confidence score."""

    min_ocr: float
    min_normalization: float
    min_classification: float


@dataclass(frozen=True, slots=True)
class LLMSettings:
    """Optional LLM validator configuration."""

    enabled: bool
    provider: str
    model: str
    api_key_env: str
    timeout_seconds: float


@dataclass(frozen=True, slots=True)
class InputLimits:
    """Size limits enforced on caller input at the CLI boundary."""

    max_text_length: int
    max_tokens: int
    max_image_bytes: int


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    ocr: OCRSettings
    confidence: ConfidenceSettings
    llm: LLMSettings
    limits: InputLimits

    def with_llm_disabled(self) -> AppConfig:
        """Return a copy with the LLM validator switched off."""
        return replace(self, llm=replace(self.llm, enabled=False))


def _default_config() -> dict[str, Any]:
    return {
        "ocr": {
            "language": "eng",
            "tesseract_cmd": None,
        },
        "confidence": {
            "min_ocr": 0.2,
            "min_normalization": 0.3,
            "min_classification": 0.4,
        },
        "llm": {
            "enabled": True,
            "provider": "openai",
            "model": "gpt-4o-mini",
            "api_key_env": "OPENAI_API_KEY",
            "timeout_seconds": 10.0,
        },
        "limits": {
            "max_text_length": 50_000,
            "max_tokens": 100,
            "max_image_bytes": 10 * 1024 * 1024,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "ocr.language": ("AMTDETECT_OCR_LANGUAGE", str),
    "ocr.tesseract_cmd": ("AMTDETECT_TESSERACT_CMD", str),
    "confidence.min_ocr": ("AMTDETECT_MIN_OCR_CONFIDENCE", float),
    "confidence.min_normalization": ("AMTDETECT_MIN_NORMALIZATION_CONFIDENCE", float),
    "confidence.min_classification": ("AMTDETECT_MIN_CLASSIFICATION_CONFIDENCE", float),
    "llm.enabled": ("AMTDETECT_LLM_ENABLED", bool),
    "llm.provider": ("AMTDETECT_LLM_PROVIDER", str),
    "llm.model": ("AMTDETECT_LLM_MODEL", str),
    "llm.api_key_env": ("AMTDETECT_LLM_API_KEY_ENV", str),
    "llm.timeout_seconds": ("AMTDETECT_LLM_TIMEOUT", float),
    "limits.max_text_length": ("AMTDETECT_MAX_TEXT_LENGTH", int),
    "limits.max_tokens": ("AMTDETECT_MAX_TOKENS", int),
    "limits.max_image_bytes": ("AMTDETECT_MAX_IMAGE_BYTES", int),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    merged: dict[str, Any] = _deep_merge(_default_config(), file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def default_config() -> AppConfig:
    """Return the built-in defaults without consulting files or the environment."""
    return _build_config(_default_config(), paths.resolve_path(paths.DEFAULT_CONFIG_DIR))


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        ocr_cfg = data["ocr"]
        tesseract_cmd = ocr_cfg.get("tesseract_cmd")
        ocr = OCRSettings(
            language=str(ocr_cfg["language"]),
            tesseract_cmd=str(tesseract_cmd) if tesseract_cmd else None,
        )
        conf_cfg = data["confidence"]
        confidence = ConfidenceSettings(
            min_ocr=float(conf_cfg["min_ocr"]),
            min_normalization=float(conf_cfg["min_normalization"]),
            min_classification=float(conf_cfg["min_classification"]),
        )
        llm_cfg = data["llm"]
        llm = LLMSettings(
            enabled=bool(llm_cfg["enabled"]),
            provider=str(llm_cfg["provider"]),
            model=str(llm_cfg["model"]),
            api_key_env=str(llm_cfg["api_key_env"]),
            timeout_seconds=float(llm_cfg["timeout_seconds"]),
        )
        limits_cfg = data["limits"]
        limits = InputLimits(
            max_text_length=int(limits_cfg["max_text_length"]),
            max_tokens=int(limits_cfg["max_tokens"]),
            max_image_bytes=int(limits_cfg["max_image_bytes"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    _validate(confidence, llm, limits)
    return AppConfig(
        source_path=source_path,
        ocr=ocr,
        confidence=confidence,
        llm=llm,
        limits=limits,
    )


def _validate(confidence: ConfidenceSettings, llm: LLMSettings, limits: InputLimits) -> None:
    for name in ("min_ocr", "min_normalization", "min_classification"):
        value = getattr(confidence, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(f"confidence.{name} must be between 0 and 1 (got {value}).")
    if llm.timeout_seconds <= 0:
        raise ConfigurationError("llm.timeout_seconds must be positive.")
    for name in ("max_text_length", "max_tokens", "max_image_bytes"):
        value = getattr(limits, name)
        if value <= 0:
            raise ConfigurationError(f"limits.{name} must be positive (got {value}).")
