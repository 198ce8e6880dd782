from __future__ import annotations

from pathlib import Path

import pytest

from lambda_delay.cli.io import CONFIG_ENV_VAR, config_section, load_cli_config
from lambda_delay.configuration import find_pyproject, read_tool_section
from tests.conftest import write_pyproject
from tests.helpers import run_cli_in_tmp


def test_find_pyproject(tmp_path: Path) -> None:
    assert find_pyproject(tmp_path) == tmp_path / "pyproject.toml"
    assert find_pyproject(tmp_path / "pyproject.toml") == tmp_path / "pyproject.toml"
    assert find_pyproject(tmp_path / "settings.ini") is None


def test_read_tool_section(tmp_path: Path) -> None:
    write_pyproject(
        tmp_path,
        """
        [project]
        name = "bench"

        [tool.lambda_delay.paths]
        log_dir = "logs"

        [tool.lambda_delay.extras]
        colour = "blue"
        """,
    )

    settings, source = read_tool_section(tmp_path)

    assert source == (tmp_path / "pyproject.toml").resolve()
    assert settings["paths"] == {"log_dir": "logs"}
    assert settings["extras"] == {"colour": "blue"}


def test_read_tool_section_without_table(tmp_path: Path) -> None:
    assert read_tool_section(tmp_path) is None
    write_pyproject(tmp_path, '[tool.other]\nvalue = 1\n')
    assert read_tool_section(tmp_path) is None


@pytest.mark.parametrize(
    ("contents", "match"),
    [
        ("[tool.lambda_delay\n", "not valid TOML"),
        ('[tool.lambda_delay]\nmeta = "fast"\n', "must be a table"),
    ],
)
def test_read_tool_section_rejects_bad_files(tmp_path: Path, contents: str, match: str) -> None:
    write_pyproject(tmp_path, contents)

    with pytest.raises(ValueError, match=match):
        read_tool_section(tmp_path)


def test_load_cli_config_search_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    explicit = tmp_path / "explicit"
    from_env = tmp_path / "env"
    cwd = tmp_path / "cwd"
    for directory, workers in ((explicit, 1), (from_env, 2), (cwd, 3)):
        directory.mkdir()
        write_pyproject(directory, f"[tool.lambda_delay.meta]\nworkers = {workers}\n")
    monkeypatch.chdir(cwd)

    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert load_cli_config()["meta"]["workers"] == 3

    monkeypatch.setenv(CONFIG_ENV_VAR, str(from_env))
    assert load_cli_config()["meta"]["workers"] == 2

    config = load_cli_config(explicit / "pyproject.toml")
    assert config["meta"]["workers"] == 1
    assert config["_config_path"] == str((explicit / "pyproject.toml").resolve())


def test_load_cli_config_without_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

    config = load_cli_config()

    assert config == {"_config_path": None}
    assert config_section(config, "logging") == {}


def test_cli_rejects_broken_pyproject(session_log: Path, tmp_path: Path, monkeypatch, capsys) -> None:
    write_pyproject(tmp_path, "[tool.lambda_delay\n")

    with pytest.raises(SystemExit) as excinfo:
        run_cli_in_tmp(["analyze", str(session_log)], tmp_path=tmp_path, monkeypatch=monkeypatch)

    assert excinfo.value.code == 2
    assert "Invalid configuration" in capsys.readouterr().err
