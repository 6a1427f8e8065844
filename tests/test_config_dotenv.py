from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

import pytest
from click.testing import CliRunner

from logzd import cli as cli_module
from logzd import config as logz_config
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


@pytest.fixture(autouse=True)
def _reset_dotenv_state() -> Iterator[None]:
    """Reset shared dotenv state around each test."""

    logz_config._reset_dotenv_state_for_testing()
    yield
    logz_config._reset_dotenv_state_for_testing()


def test_enable_dotenv_populates_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Loading the nearest .env injects values that are not already set."""

    nested = tmp_path / "nested"
    nested.mkdir()
    env_file = tmp_path / ".env"
    env_file.write_text("LOGZ_LEVEL=ERROR\n")
    monkeypatch.chdir(nested)
    monkeypatch.delenv("LOGZ_LEVEL", raising=False)

    loaded = logz_config.enable_dotenv()

    assert loaded == env_file.resolve()
    assert logz_config.loaded_dotenv_path() == env_file.resolve()
    assert os.environ["LOGZ_LEVEL"] == "ERROR"

    os.environ.pop("LOGZ_LEVEL", None)


def test_enable_dotenv_respects_existing_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("LOGZ_LEVEL=ERROR\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOGZ_LEVEL", "DEBUG")

    assert logz_config.enable_dotenv() is not None
    assert os.environ["LOGZ_LEVEL"] == "DEBUG"


def test_enable_dotenv_searches_upwards_from_an_explicit_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("LOGZ_NO_ICON=1\n")
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    monkeypatch.delenv("LOGZ_NO_ICON", raising=False)

    assert logz_config.enable_dotenv(search_from=deep) == env_file.resolve()

    os.environ.pop("LOGZ_NO_ICON", None)


def test_enable_dotenv_without_file_returns_none(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logz_config, "find_dotenv", lambda usecwd=False: "")

    assert logz_config.enable_dotenv() is None
    assert logz_config.loaded_dotenv_path() is None


def test_cli_dotenv_toggle_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    """CLI flag wins over the environment toggle when deciding whether to load .env."""

    calls: list[int] = []
    monkeypatch.setattr(logz_config, "enable_dotenv", lambda *args, **kwargs: calls.append(1))
    runner = CliRunner()

    monkeypatch.setenv(logz_config.DOTENV_ENV_VAR, "1")
    assert runner.invoke(cli_module.cli, ["--no-use-dotenv", "about"]).exit_code == 0
    assert calls == []

    assert runner.invoke(cli_module.cli, ["about"]).exit_code == 0
    assert calls == [1]

    monkeypatch.delenv(logz_config.DOTENV_ENV_VAR)
    assert runner.invoke(cli_module.cli, ["--use-dotenv", "about"]).exit_code == 0
    assert calls == [1, 1]
