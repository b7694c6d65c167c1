"""Composition root for ``lib_dataclass_config``.

Purpose
-------
Provide the entry points that build the option tree for a record and apply
the sources in ascending priority: defaults, configuration file, environment,
flags.

Contents
--------
* :class:`Conf` – loader settings.
* :func:`load` – full pipeline, the configuration file is located on disk.
* :func:`load_with_raw_file` / :func:`load_raw_file` – the file stage is fed
  with raw bytes.
* :func:`load_with_map` / :func:`load_map` – the file stage is fed with an
  already decoded mapping.

System Role
-----------
This module wires the adapters (decoders, resolver, environment, flags, help)
around the application layer while emitting structured observability signals.
It is the canonical place to adjust precedence rules.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TextIO, TypeVar

from .adapters.env.default import DefaultEnvLoader, default_env_prefix
from .adapters.file_loaders.structured import TRY_ALL_DECODER, decoder_for_path, read_config_file
from .adapters.flags.default import DefaultFlagLoader
from .adapters.help.default import render_help
from .adapters.path_resolvers.default import ConfigFileResolver
from .application.mapping import apply_mapping
from .application.ports import FileDecoder
from .application.structure import apply_defaults, inspect_structure
from .domain.errors import ConfigError, InvalidFormat, NotFound, SourceLoadError, StructureError
from .domain.options import OptionTree
from .observability import bind_trace_id, log_debug, log_error, log_info, make_event

RecordT = TypeVar("RecordT")
_FileStage = Callable[[OptionTree, Mapping[str, str], Mapping[str, str]], None]


@dataclass
class Conf:
    """Settings of one load call.

    Attributes
    ----------
    config_file_variable:
        Identifier of a top-level option holding the configuration file path.
        Its value is read from the flags, then the environment.
    file_disable:
        Skip the configuration file stage.
    file_default_filename:
        File read when no explicit path was given; silently skipped when absent.
    file_decoder:
        Decoder for the file content; picked from the file suffix when unset.
    base_dir:
        Directory relative file paths resolve against (working directory when
        unset).
    flag_disable / flag_ignore_unknown:
        Skip the flag stage / tolerate flags that address no option.
    env_disable / env_prefix:
        Skip the environment stage / prefix of every variable name (``APP_``).
    help_disable / help_message / help_description / help_output:
        ``--help`` handling; the text goes to ``help_output`` (stdout when
        unset).
    version_string:
        When set, ``--version`` prints it and exits.
    """

    config_file_variable: str = ""
    file_disable: bool = False
    file_default_filename: str = ""
    file_decoder: FileDecoder | None = None
    base_dir: Path | None = None
    flag_disable: bool = False
    flag_ignore_unknown: bool = False
    env_disable: bool = False
    env_prefix: str = ""
    help_disable: bool = False
    help_message: str = ""
    help_description: str = ""
    help_output: TextIO | None = None
    version_string: str = ""


def load(
    record: RecordT,
    conf: Conf | None = None,
    *,
    args: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RecordT:
    """Populate the dataclass instance ``record`` from all configured sources.

    Why
    ----
    Applications describe their configuration once, as a dataclass, and get
    defaults, a configuration file, environment variables and flags with a
    single call.

    What
    ----
    Builds the option tree (structural errors surface here, before any input is
    read), applies defaults, answers ``--help``/``--version``, then applies the
    configuration file, the environment and the flags in that order.

    Parameters
    ----------
    record:
        Mutable dataclass instance, populated in place and returned.
    conf:
        Loader settings; :class:`Conf` defaults when omitted.
    args:
        Argument vector without the program name (``sys.argv[1:]`` by default).
    environ:
        Environment mapping (:data:`os.environ` by default).

    Raises
    ------
    StructureError
        When the record type itself is malformed.
    ConfigError
        For invalid user input (file content, values, flags, missing files).
    SystemExit
        After printing the help or version text.

    Side Effects
    ------------
    Resets the active trace identifier and emits structured log events that
    carry option counts and paths, never values.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from lib_dataclass_config.domain.options import setting
    >>> @dataclass
    ... class Demo:
    ...     count: int = setting(default="10")
    >>> load(Demo(), args=[], environ={}).count
    10
    >>> load(Demo(), args=["--count", "25"], environ={}).count
    25
    """

    conf = conf or Conf()
    return _run(record, conf, args=args, environ=environ, file_stage=lambda tree, flags, env: _apply_located_file(tree, conf, flags, env))


def load_with_raw_file(
    record: RecordT,
    content: bytes,
    conf: Conf | None = None,
    *,
    args: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RecordT:
    """Like :func:`load`, with ``content`` standing in for the configuration file.

    The decoder comes from ``conf.file_decoder`` or tries YAML, TOML and JSON.

    Raises
    ------
    ValueError
        When ``conf.file_disable`` is set.
    """

    conf = conf or Conf()
    if conf.file_disable:
        raise ValueError("file_disable contradicts loading configuration file content")
    decoder = conf.file_decoder or TRY_ALL_DECODER
    return _run(
        record,
        conf,
        args=args,
        environ=environ,
        file_stage=lambda tree, flags, env: _apply_content(tree, content, decoder, "<raw>"),
    )


def load_raw_file(record: RecordT, content: bytes, conf: Conf | None = None) -> RecordT:
    """Populate ``record`` from defaults and raw file ``content`` only."""

    conf = replace(conf or Conf(), flag_disable=True, env_disable=True)
    return load_with_raw_file(record, content, conf)


def load_with_map(
    record: RecordT,
    data: Mapping[str, Any],
    conf: Conf | None = None,
    *,
    args: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RecordT:
    """Like :func:`load`, with the decoded mapping ``data`` standing in for the file.

    Raises
    ------
    ValueError
        When ``conf.file_disable`` is set.
    """

    conf = conf or Conf()
    if conf.file_disable:
        raise ValueError("file_disable contradicts loading a configuration mapping")
    return _run(record, conf, args=args, environ=environ, file_stage=lambda tree, flags, env: _apply_data(tree, data, "<map>"))


def load_map(record: RecordT, data: Mapping[str, Any], conf: Conf | None = None) -> RecordT:
    """Populate ``record`` from defaults and the mapping ``data`` only.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Demo:
    ...     name: str = ""
    >>> load_map(Demo(), {"name": "api"}).name
    'api'
    """

    conf = replace(conf or Conf(), flag_disable=True, env_disable=True)
    return load_with_map(record, data, conf)


def _run(
    record: RecordT,
    conf: Conf,
    *,
    args: Sequence[str] | None,
    environ: Mapping[str, str] | None,
    file_stage: _FileStage,
) -> RecordT:
    bind_trace_id(None)
    environ = os.environ if environ is None else environ

    tree = inspect_structure(record)
    _check_reserved_flags(tree, conf)
    log_debug("structure_inspected", **make_event("structure", None, {"options": len(tree.all_options), "record": type(record).__name__}))
    defaults = apply_defaults(tree)
    log_debug("defaults_applied", **make_event("defaults", None, {"options": defaults}))

    flags: DefaultFlagLoader | None = None
    flag_values: Mapping[str, str] = {}
    if not conf.flag_disable:
        flags = DefaultFlagLoader(sys.argv[1:] if args is None else args)
        flag_values = flags.values()
        _answer_builtin_flags(tree, conf, flag_values)

    if not conf.file_disable:
        file_stage(tree, flag_values, environ)
    if not conf.env_disable:
        applied = DefaultEnvLoader(environ=environ).apply(tree.all_options, conf.env_prefix)
        log_debug("source_applied", **make_event("env", None, {"options": applied, "prefix": conf.env_prefix}))
    if flags is not None:
        applied = flags.apply(tree.all_options, ignore_unknown=conf.flag_ignore_unknown)
        log_debug("source_applied", **make_event("flags", None, {"options": applied}))

    log_info("configuration_loaded", **make_event("final", None, {"record": type(record).__name__, "options": len(tree.all_options)}))
    return record


def _apply_located_file(tree: OptionTree, conf: Conf, flag_values: Mapping[str, str], environ: Mapping[str, str]) -> None:
    location = ConfigFileResolver(conf).resolve(tree.options, flag_values, environ)
    if location is None:
        return
    if not location.path.is_file():
        if location.explicit:
            raise NotFound(f"configuration file not found: {location.path}")
        log_debug("config_file_missing", **make_event("file", str(location.path)))
        return
    content = read_config_file(location.path)
    decoder = conf.file_decoder or decoder_for_path(location.path)
    _apply_content(tree, content, decoder, str(location.path))


def _apply_content(tree: OptionTree, content: bytes, decoder: FileDecoder, path: str) -> None:
    try:
        data = decoder.decode(content)
    except InvalidFormat as exc:
        log_error("config_file_invalid", **make_event("file", path, {"format": decoder.name}))
        raise SourceLoadError(f"failed to load configuration file {path}: {exc}") from exc
    log_debug("config_file_loaded", **make_event("file", path, {"format": decoder.name, "keys": len(data)}))
    _apply_data(tree, data, path)


def _apply_data(tree: OptionTree, data: Mapping[str, Any], path: str) -> None:
    applied = apply_mapping(data, tree.options)
    log_debug("source_applied", **make_event("file", path, {"options": applied}))


def _check_reserved_flags(tree: OptionTree, conf: Conf) -> None:
    if conf.flag_disable:
        return
    for option in tree.all_options:
        if not conf.help_disable and (option.full_id == "help" or option.shorthand == "h"):
            raise StructureError(f"option '{option.full_id}' collides with the reserved help flag")
        if conf.version_string and option.full_id == "version":
            raise StructureError("option 'version' collides with the reserved version flag")


def _answer_builtin_flags(tree: OptionTree, conf: Conf, flag_values: Mapping[str, str]) -> None:
    output = conf.help_output or sys.stdout
    if not conf.help_disable and ("help" in flag_values or "h" in flag_values):
        output.write(render_help(tree.all_options, message=conf.help_message, help_description=conf.help_description))
        raise SystemExit(0)
    if conf.version_string and "version" in flag_values:
        output.write(conf.version_string + "\n")
        raise SystemExit(0)


__all__ = [
    "Conf",
    "ConfigError",
    "StructureError",
    "load",
    "load_map",
    "load_raw_file",
    "load_with_map",
    "load_with_raw_file",
    "default_env_prefix",
]
