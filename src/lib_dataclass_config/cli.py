"""CLI adapter for ``lib_dataclass_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let developers inspect how a dataclass maps onto flags, environment variables
and file keys, and try a load without writing a script.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_env_prefix` – exposes :func:`lib_dataclass_config.core.default_env_prefix`.
* :func:`cli_options` – lists the option tree of a dataclass.
* :func:`cli_load` – populates a dataclass from file, environment and flags
  and prints it as JSON.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It invokes the composition root and the
structure builder, and ``lib_cli_exit_tools`` turns exceptions into exit codes.
"""

from __future__ import annotations

import base64
import dataclasses
import datetime
import decimal
import enum
import importlib
import json
import sys
from importlib import metadata
from pathlib import Path, PurePath
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.env.default import make_env_key
from .application.structure import allocate_record, inspect_structure
from .core import Conf, load
from .core import default_env_prefix as _default_env_prefix

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_PASSTHROUGH_SETTINGS = {**CLICK_CONTEXT_SETTINGS, "ignore_unknown_options": True, "allow_interspersed_args": False}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DIST_NAME: Final[str] = "lib_dataclass_config"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version(_DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Populate dataclasses from defaults, files, environment and flags",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DIST_NAME,
    message="lib_dataclass_config version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DIST_NAME)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DIST_NAME} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DIST_NAME)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("env-prefix", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("slug")
def cli_env_prefix(slug: str) -> None:
    """Compute the canonical environment prefix for *slug*.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["env-prefix", "config-kit"])
    >>> result.output.strip()
    'CONFIG_KIT_'
    """

    click.echo(_default_env_prefix(slug))


@cli.command("options", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@click.option("--env-prefix", default="", help="Prefix prepended to environment variable names")
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit the option list as JSON")
def cli_options(target: str, env_prefix: str, as_json: bool) -> None:
    """List the options of the dataclass TARGET (``module:Class``).

    Each line shows the flag, shorthand, type, environment variable and default
    of one option. Structural problems in the dataclass fail the command.
    """

    record_type = _import_record_type(target)
    tree = inspect_structure(allocate_record(record_type))
    rows = [
        {
            "flag": f"--{option.full_id}",
            "short": f"-{option.shorthand}" if option.shorthand else "",
            "type": option.type_info.name,
            "env": make_env_key(env_prefix, option.full_path),
            "default": option.default_literal if option.default_is_set else None,
            "hidden": option.hidden,
        }
        for option in tree.leaves()
    ]
    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    for row in rows:
        default = f" (default {row['default']!r})" if row["default"] is not None else ""
        short = f"{row['short']}, " if row["short"] else ""
        click.echo(f"{short}{row['flag']} [{row['type']}] env={row['env']}{default}")


@cli.command("load", context_settings=_PASSTHROUGH_SETTINGS)
@click.argument("target")
@click.option(
    "--file",
    "config_file",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="Configuration file (JSON, YAML or TOML) applied before environment and flags",
)
@click.option("--env-prefix", default="", help="Prefix of the environment variables to apply")
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli_load(target: str, config_file: Optional[Path], env_prefix: str, indent: Optional[int], args: Sequence[str]) -> None:
    """Populate the dataclass TARGET (``module:Class``) and print it as JSON.

    Remaining ARGS are the flags handed to the loader, e.g.
    ``load app.settings:Settings --server.port 8080``.
    """

    record_type = _import_record_type(target)
    conf = Conf(
        file_disable=config_file is None,
        file_default_filename=str(config_file) if config_file is not None else "",
        env_prefix=env_prefix,
    )
    record = load(allocate_record(record_type), conf, args=list(args))
    click.echo(json.dumps(dataclasses.asdict(record), indent=indent, default=_json_default))


def _import_record_type(target: str) -> type:
    """Import ``module:Class`` and ensure it names a dataclass."""

    module_name, separator, attribute = target.partition(":")
    if not separator or not module_name or not attribute:
        raise click.BadParameter("expected MODULE:CLASS", param_hint="TARGET")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_name}: {exc}", param_hint="TARGET") from exc
    record_type = getattr(module, attribute, None)
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise click.BadParameter(f"{target} is not a dataclass", param_hint="TARGET")
    return record_type


def _json_default(value: Any) -> Any:
    """Render values ``json`` cannot serialise natively."""

    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (decimal.Decimal, PurePath)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DIST_NAME,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
