from __future__ import annotations

from pathlib import Path

import pytest

from amount_cli.shared import paths
from amount_cli.shared.config import AppConfig, load_config
from amount_cli.shared.logging import Logger, get_logger


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    """Load config from an empty sandbox so host files and env never leak in."""

    env = {paths.CONFIG_FILE_ENV: str(tmp_path / "missing-config.yaml")}
    return load_config(env=env).with_llm_disabled()


@pytest.fixture()
def logger() -> Logger:
    return get_logger(verbose=False)


@pytest.fixture()
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point CLI config discovery at a temp dir and keep the LLM off."""

    monkeypatch.setenv(paths.CONFIG_FILE_ENV, str(tmp_path / "config.yaml"))
    monkeypatch.setenv("AMTDETECT_LLM_ENABLED", "false")
    monkeypatch.delenv(paths.CONFIG_DIR_ENV, raising=False)
    return tmp_path
