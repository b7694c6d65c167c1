"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the composition
root can orchestrate the sources without depending on concrete
implementations.

Contents
--------
* :class:`FileDecoder` – turns file bytes into a string-keyed mapping.
* :class:`EnvLoader` – writes environment variables into options.
* :class:`FlagLoader` – writes command line flags into options.
* :class:`ConfigFileResolver` – decides which configuration file to read.
* :class:`HelpRenderer` – produces usage text for an option list.

System Role
-----------
These protocols keep the orchestrator in :mod:`lib_dataclass_config.core`
independent from parsing, process state and formatting details. They are
runtime checkable so contract tests can assert conformance.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from ..domain.options import Option


@runtime_checkable
class FileDecoder(Protocol):
    """Decode raw file content into a nested mapping.

    Why
    ----
    Segregate parsing concerns (JSON/YAML/TOML) from orchestration logic.
    """

    name: str

    def decode(self, content: bytes) -> Mapping[str, Any]:
        """Return the decoded mapping or raise ``InvalidFormat``."""


@runtime_checkable
class EnvLoader(Protocol):
    """Write environment variables addressed by option paths into the options."""

    def apply(self, options: Iterable[Option], prefix: str = "") -> int:
        """Apply matching variables and return the number of options written."""


@runtime_checkable
class FlagLoader(Protocol):
    """Write parsed command line flags into the options."""

    def values(self) -> Mapping[str, str]:
        """Return the parsed ``key -> value`` pairs (keys without dashes)."""

    def apply(self, options: Iterable[Option], *, ignore_unknown: bool = False) -> int:
        """Apply matching flags and return the number of options written."""


@runtime_checkable
class ConfigFileResolver(Protocol):
    """Locate the configuration file for one load call."""

    def resolve(self, options: Iterable[Option], flag_values: Mapping[str, str], environ: Mapping[str, str]) -> Any:
        """Return a location object (``path`` and ``explicit``) or ``None``."""


@runtime_checkable
class HelpRenderer(Protocol):
    """Render usage text for the visible options."""

    def __call__(self, options: Iterable[Option], *, message: str = "", help_description: str = "", width: int | None = None) -> str:
        """Return the complete help text."""
