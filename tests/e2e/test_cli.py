"""End-to-end CLI coverage for the public commands exposed by lib-dataclass-config.

The commands import a dataclass from a module written into a temporary
directory, so these tests exercise the same path a developer takes when
inspecting their own settings class.
"""

from __future__ import annotations

import json
from pathlib import Path

import lib_cli_exit_tools
import pytest
from click.testing import CliRunner

from lib_dataclass_config import cli

MODULE_NAME = "cli_sample_settings"
TARGET = f"{MODULE_NAME}:Settings"

MODULE_SOURCE = '''\
from __future__ import annotations

from dataclasses import dataclass

from lib_dataclass_config import setting


@dataclass
class Server:
    port: int = setting(short="p", default="8080", desc="listen port")


@dataclass
class Settings:
    name: str = setting(default="demo")
    server: Server = setting()
    tags: list[str] = setting()
    token: bytes = setting(opts="hidden")


NOT_A_DATACLASS = 42
'''


@pytest.fixture()
def sample_module(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put an importable settings module on ``sys.path``."""

    (tmp_path / f"{MODULE_NAME}.py").write_text(MODULE_SOURCE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    return tmp_path


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def test_cli_env_prefix_command() -> None:
    """`cli env-prefix` should echo the canonical uppercase prefix for a slug."""

    result = _runner().invoke(cli.cli, ["env-prefix", "config-kit"])
    assert result.exit_code == 0
    assert result.output.strip() == "CONFIG_KIT_"


def test_cli_info_handles_missing_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    """`cli info` must degrade gracefully when package metadata is unavailable."""

    def _raise_pkg_not_found(*_args, **_kwargs):
        raise cli.metadata.PackageNotFoundError()

    monkeypatch.setattr(cli.metadata, "metadata", _raise_pkg_not_found)
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_cli_options_lists_flags_and_variables(sample_module: Path) -> None:
    """`cli options` prints one line per leaf option."""

    result = _runner().invoke(cli.cli, ["options", "--env-prefix", "APP_", TARGET])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "--name [str] env=APP_NAME (default 'demo')"
    assert lines[1].startswith("-p, --server.port [")
    assert "env=APP_SERVER_PORT (default '8080')" in lines[1]
    assert len(lines) == 4


def test_cli_options_json(sample_module: Path) -> None:
    """`cli options --json` exposes the same rows as structured data."""

    result = _runner().invoke(cli.cli, ["options", "--json", TARGET])
    assert result.exit_code == 0, result.output
    rows = {row["flag"]: row for row in json.loads(result.output)}
    assert rows["--server.port"]["short"] == "-p"
    assert rows["--tags"]["env"] == "TAGS"
    assert rows["--tags"]["default"] is None
    assert rows["--token"]["hidden"] is True


def test_cli_load_applies_file_env_and_flags(sample_module: Path) -> None:
    """`cli load` layers the file, the environment and the trailing flags."""

    config_file = sample_module / "settings.yaml"
    config_file.write_text("name: from-file\nserver:\n  port: 1\ntags: [a]\n", encoding="utf-8")
    result = _runner().invoke(
        cli.cli,
        ["load", "--file", str(config_file), "--env-prefix", "APP_", TARGET, "-p", "9000", "--token", "AQID"],
        env={"APP_TAGS": "b,c"},
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload == {"name": "from-file", "server": {"port": 9000}, "tags": ["b", "c"], "token": "AQID"}


def test_cli_load_without_file_uses_defaults(sample_module: Path) -> None:
    """Without ``--file`` only defaults, environment and flags apply."""

    result = _runner().invoke(cli.cli, ["load", "--indent", "2", "--env-prefix", "CLI_TEST_", TARGET])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["server"]["port"] == 8080
    assert payload["name"] == "demo"


def test_cli_load_reports_bad_values(sample_module: Path) -> None:
    """Input errors surface as a failed command carrying the configuration error."""

    result = _runner().invoke(cli.cli, ["load", "--env-prefix", "CLI_TEST_", TARGET, "--server.port", "http"])
    assert result.exit_code != 0
    assert "server.port" in str(result.exception)


@pytest.mark.parametrize("target", ["no_colon", f"{MODULE_NAME}:NOT_A_DATACLASS", "missing_module_xyz:Settings"])
def test_cli_rejects_bad_targets(sample_module: Path, target: str) -> None:
    """TARGET must name an importable dataclass."""

    result = _runner().invoke(cli.cli, ["options", target])
    assert result.exit_code == 2


def test_cli_main_restores_traceback_flag(sample_module: Path) -> None:
    """`cli main` should restore lib_cli_exit_tools tracebacks after execution."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    exit_code = cli.main(["--traceback", "options", TARGET], restore_traceback=True)
    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback
