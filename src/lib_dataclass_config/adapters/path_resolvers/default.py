"""Configuration file location resolution.

Purpose
-------
Decide which configuration file a load call reads. Implements the
:class:`lib_dataclass_config.application.ports.ConfigFileResolver` protocol.

Contents
--------
* :class:`ConfigFileLocation` – resolved path plus whether the user named it.
* :class:`ConfigFileResolver` – lookup through flags, environment and the
  configured default filename.

System Role
-----------
Runs before the file stage of :mod:`lib_dataclass_config.core`. The
distinction between an explicit and an implicit location drives the error
policy: only an explicitly named file must exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Mapping

from ...domain.errors import StructureError
from ...domain.options import Option
from ...observability import log_debug, make_event
from ..env.default import make_env_key

if TYPE_CHECKING:  # pragma: no cover
    from ...core import Conf


@dataclass(frozen=True)
class ConfigFileLocation:
    """A configuration file path and whether the user named it explicitly."""

    path: Path
    explicit: bool


class ConfigFileResolver:
    """Resolve the configuration file for one load call.

    Why
    ----
    The file name itself is configuration: users point at a file with a flag or
    an environment variable, programs ship a default name. Flags win over the
    environment, both win over the default.
    """

    def __init__(self, conf: Conf, *, base_dir: Path | None = None) -> None:
        """Store the loader settings.

        Parameters
        ----------
        conf:
            Loader settings (variable name, default filename, disabled sources).
        base_dir:
            Directory relative paths resolve against. Defaults to
            ``conf.base_dir`` and then the working directory.
        """

        self._conf = conf
        self._base_dir = base_dir if base_dir is not None else conf.base_dir

    def resolve(
        self,
        options: Iterable[Option],
        flag_values: Mapping[str, str],
        environ: Mapping[str, str],
    ) -> ConfigFileLocation | None:
        """Return the configuration file location or ``None`` when there is none.

        Parameters
        ----------
        options:
            Top-level options; the configuration file variable must be one of
            them.
        flag_values:
            Parsed flag pairs.
        environ:
            Environment mapping.

        Raises
        ------
        StructureError
            When ``config_file_variable`` names no top-level option.

        Examples
        --------
        >>> from lib_dataclass_config.core import Conf
        >>> resolver = ConfigFileResolver(Conf(file_default_filename="app.toml"), base_dir=Path("/srv"))
        >>> resolver.resolve([], {}, {})
        ConfigFileLocation(path=PosixPath('/srv/app.toml'), explicit=False)
        """

        explicit = self._explicit_name(list(options), flag_values, environ)
        if explicit:
            location = ConfigFileLocation(self._absolute(explicit), explicit=True)
        elif self._conf.file_default_filename:
            location = ConfigFileLocation(self._absolute(self._conf.file_default_filename), explicit=False)
        else:
            return None
        log_debug("config_file_resolved", **make_event("file", str(location.path), {"explicit": location.explicit}))
        return location

    def _explicit_name(self, options: list[Option], flag_values: Mapping[str, str], environ: Mapping[str, str]) -> str | None:
        variable = self._conf.config_file_variable
        if not variable:
            return None
        option = next((candidate for candidate in options if candidate.identifier == variable), None)
        if option is None:
            raise StructureError(f"config file variable '{variable}' is not a top-level option")
        if not self._conf.flag_disable:
            if option.full_id in flag_values:
                return flag_values[option.full_id]
            if option.shorthand and option.shorthand in flag_values:
                return flag_values[option.shorthand]
        if not self._conf.env_disable:
            key = make_env_key(self._conf.env_prefix, option.full_path)
            if environ.get(key):
                return environ[key]
        return None

    def _absolute(self, name: str | Path) -> Path:
        path = Path(name).expanduser()
        if path.is_absolute():
            return path
        return (self._base_dir or Path.cwd()) / path
