"""Adapter contract tests for the default ports implementation.

Purpose
-------
Verify the default adapters continue to satisfy the application-layer ports
defined in ``src/lib_dataclass_config/application/ports.py`` so the
orchestrator can keep depending on the protocols only.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from lib_dataclass_config.adapters.env.default import DefaultEnvLoader
from lib_dataclass_config.adapters.file_loaders.structured import (
    TRY_ALL_DECODER,
    JSONFileDecoder,
    TOMLFileDecoder,
    YAMLFileDecoder,
)
from lib_dataclass_config.adapters.flags.default import DefaultFlagLoader
from lib_dataclass_config.adapters.help.default import render_help
from lib_dataclass_config.adapters.path_resolvers.default import ConfigFileResolver as DefaultConfigFileResolver
from lib_dataclass_config.application import ports
from lib_dataclass_config.application.structure import inspect_structure
from lib_dataclass_config.core import Conf


@dataclass
class Sample:
    enabled: bool = False


@pytest.mark.parametrize("decoder", [JSONFileDecoder(), YAMLFileDecoder(), TOMLFileDecoder(), TRY_ALL_DECODER])
def test_file_decoders_fulfil_port(decoder: ports.FileDecoder) -> None:
    """Every decoder must expose ``name`` and ``decode``."""

    assert isinstance(decoder, ports.FileDecoder)
    assert isinstance(decoder.name, str)


def test_env_loader_contract() -> None:
    """The environment loader must write through the options it is handed."""

    loader = DefaultEnvLoader(environ={"ENABLED": "true"})
    assert isinstance(loader, ports.EnvLoader)
    sample = Sample()
    assert loader.apply(inspect_structure(sample).all_options) == 1
    assert sample.enabled is True


def test_flag_loader_contract() -> None:
    """The flag loader must expose parsed pairs and apply them."""

    loader = DefaultFlagLoader(["--enabled"])
    assert isinstance(loader, ports.FlagLoader)
    assert loader.values() == {"enabled": "true"}
    sample = Sample()
    assert loader.apply(inspect_structure(sample).all_options) == 1
    assert sample.enabled is True


def test_config_file_resolver_contract() -> None:
    """The resolver must answer ``None`` when no file is configured."""

    resolver = DefaultConfigFileResolver(Conf())
    assert isinstance(resolver, ports.ConfigFileResolver)
    assert resolver.resolve([], {}, {}) is None


def test_help_renderer_contract() -> None:
    """The renderer must be callable with the option list."""

    assert isinstance(render_help, ports.HelpRenderer)
    assert "--enabled" in render_help(inspect_structure(Sample()).all_options, message="Usage:", width=80)
