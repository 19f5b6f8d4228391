from __future__ import annotations

from pathlib import Path

from amount_cli.shared import paths


def test_default_config_path_uses_config_dir(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "cfg")}
    assert paths.default_config_path(env=env) == tmp_path / "cfg" / paths.DEFAULT_CONFIG_FILE


def test_config_file_env_takes_precedence(tmp_path: Path) -> None:
    env = {
        paths.CONFIG_DIR_ENV: str(tmp_path / "cfg"),
        paths.CONFIG_FILE_ENV: str(tmp_path / "elsewhere" / "amounts.yaml"),
    }
    resolved = paths.default_config_path(create_parents=True, env=env)
    assert resolved == tmp_path / "elsewhere" / "amounts.yaml"
    assert resolved.parent.is_dir()


def test_get_config_dir_can_create(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "new-dir")}
    path = paths.get_config_dir(create=True, env=env)
    assert path.is_dir()


def test_resolve_path_expands_user_and_vars(monkeypatch) -> None:
    monkeypatch.setenv("AMT_TEST_ROOT", "/srv/amounts")
    assert paths.resolve_path("$AMT_TEST_ROOT/config.yaml") == Path("/srv/amounts/config.yaml")
    assert paths.resolve_path("~/x.yaml") == Path("~/x.yaml").expanduser()
