from __future__ import annotations

from pathlib import Path

import pytest

from amount_cli.shared import paths
from amount_cli.shared.config import AppConfig, default_config, load_config
from amount_cli.shared.exceptions import ConfigurationError


def test_load_config_defaults(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    cfg = load_config(env=env)
    assert isinstance(cfg, AppConfig)
    assert cfg.source_path == tmp_path / "config" / "config.yaml"
    assert cfg.ocr.language == "eng"
    assert cfg.ocr.tesseract_cmd is None
    assert cfg.confidence.min_ocr == 0.2
    assert cfg.confidence.min_normalization == 0.3
    assert cfg.confidence.min_classification == 0.4
    assert cfg.llm.enabled is True
    assert cfg.llm.model == "gpt-4o-mini"
    assert cfg.llm.timeout_seconds == 10.0
    assert cfg.limits.max_text_length == 50_000
    assert cfg.limits.max_tokens == 100
    assert cfg.limits.max_image_bytes == 10 * 1024 * 1024


def test_default_config_matches_loaded_defaults(tmp_path: Path) -> None:
    loaded = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    built_in = default_config()
    assert built_in.confidence == loaded.confidence
    assert built_in.llm == loaded.llm
    assert built_in.limits == loaded.limits


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        """
        ocr:
          language: eng+hin
          tesseract_cmd: /opt/tesseract/bin/tesseract
        confidence:
          min_classification: 0.5
        llm:
          enabled: false
          model: gpt-4o
        """,
        encoding="utf-8",
    )
    cfg = load_config(config_path=cfg_file, env={})
    assert cfg.source_path == cfg_file
    assert cfg.ocr.language == "eng+hin"
    assert cfg.ocr.tesseract_cmd == "/opt/tesseract/bin/tesseract"
    assert cfg.confidence.min_classification == 0.5
    # Untouched keys keep their defaults.
    assert cfg.confidence.min_ocr == 0.2
    assert cfg.llm.enabled is False
    assert cfg.llm.model == "gpt-4o"
    assert cfg.llm.provider == "openai"


def test_load_config_env_overrides(tmp_path: Path) -> None:
    env = {
        paths.CONFIG_FILE_ENV: str(tmp_path / "absent.yaml"),
        "AMTDETECT_LLM_ENABLED": "off",
        "AMTDETECT_LLM_TIMEOUT": "2.5",
        "AMTDETECT_MIN_OCR_CONFIDENCE": "0.35",
        "AMTDETECT_MAX_TOKENS": "12",
        "AMTDETECT_OCR_LANGUAGE": "deu",
    }
    cfg = load_config(env=env)
    assert cfg.source_path == tmp_path / "absent.yaml"
    assert cfg.llm.enabled is False
    assert cfg.llm.timeout_seconds == 2.5
    assert cfg.confidence.min_ocr == 0.35
    assert cfg.limits.max_tokens == 12
    assert cfg.ocr.language == "deu"


def test_env_overrides_win_over_yaml(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("llm:\n  model: from-yaml\n", encoding="utf-8")
    cfg = load_config(config_path=cfg_file, env={"AMTDETECT_LLM_MODEL": "from-env"})
    assert cfg.llm.model == "from-env"


def test_with_llm_disabled_returns_copy(tmp_path: Path) -> None:
    cfg = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    disabled = cfg.with_llm_disabled()
    assert disabled.llm.enabled is False
    assert cfg.llm.enabled is True
    assert disabled.llm.model == cfg.llm.model


def test_invalid_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just a list", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env={})


def test_unparseable_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("llm: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not valid YAML"):
        load_config(config_path=cfg_file, env={})


def test_out_of_range_confidence_floor_is_rejected(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("confidence:\n  min_ocr: 1.5\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="min_ocr"):
        load_config(config_path=cfg_file, env={})


@pytest.mark.parametrize(
    "env_key, raw",
    [
        ("AMTDETECT_LLM_ENABLED", "maybe"),
        ("AMTDETECT_MAX_TEXT_LENGTH", "lots"),
        ("AMTDETECT_LLM_TIMEOUT", "0"),
    ],
)
def test_bad_env_override_raises(tmp_path: Path, env_key: str, raw: str) -> None:
    env = {paths.CONFIG_FILE_ENV: str(tmp_path / "absent.yaml"), env_key: raw}
    with pytest.raises(ConfigurationError):
        load_config(env=env)
