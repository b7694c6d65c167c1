"""Environment variable adapter.

Purpose
-------
Write process environment variables into the option tree. It implements the
:class:`lib_dataclass_config.application.ports.EnvLoader` port and forms the
third precedence layer, between the configuration file and the flags.

Key behaviours
--------------
* Every leaf option has exactly one variable name: the upper-cased prefix plus
  the option path joined with ``_`` (hyphens folded to underscores).
* ``dict[str, Any]`` options collect every variable that extends their name;
  the lower-cased remainder becomes the map key.
* The environment mapping is injected, so tests never touch ``os.environ``.
"""

from __future__ import annotations

import os
from typing import Iterable, Mapping, Sequence

from ...application.coerce import set_from_text, set_map_entry
from ...domain.options import Option
from ...observability import log_debug, make_event


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Why
    ----
    Namespacing prevents unrelated environment variables from leaking into the
    configuration.

    Examples
    --------
    >>> default_env_prefix('my-service')
    'MY_SERVICE_'
    >>> default_env_prefix('')
    ''
    """

    if not slug:
        return ""
    return slug.replace("-", "_").upper().rstrip("_") + "_"


def make_env_key(prefix: str, full_path: Sequence[str]) -> str:
    """Return the environment variable name of an option.

    Examples
    --------
    >>> make_env_key('APP_', ('server', 'max-conns'))
    'APP_SERVER_MAX_CONNS'
    >>> make_env_key('', ('tags',))
    'TAGS'
    """

    return (prefix + "_".join(full_path)).replace("-", "_").upper()


class DefaultEnvLoader:
    """Apply environment variables that address options of the tree."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Initialise the loader with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to :data:`os.environ`.
        """

        self._environ = os.environ if environ is None else environ

    def apply(self, options: Iterable[Option], prefix: str = "") -> int:
        """Write matching variables into ``options`` and return how many were set.

        Parameters
        ----------
        options:
            Flattened option list (composite parents are skipped).
        prefix:
            Prefix prepended verbatim to every variable name, e.g. ``APP_``.

        Side Effects
        ------------
        Emits ``env_variables_applied`` debug events listing variable names.

        Examples
        --------
        >>> from dataclasses import dataclass
        >>> from lib_dataclass_config.application.structure import inspect_structure
        >>> @dataclass
        ... class Demo:
        ...     retries: int = 0
        >>> demo = Demo()
        >>> DefaultEnvLoader(environ={'DEMO_RETRIES': '3'}).apply(inspect_structure(demo).all_options, 'DEMO_')
        1
        >>> demo.retries
        3
        """

        used: list[str] = []
        for option in options:
            if option.is_parent:
                continue
            key = make_env_key(prefix, option.full_path)
            if option.is_map:
                used.extend(self._apply_map(option, key))
            elif key in self._environ:
                set_from_text(option.target, option.type_info, self._environ[key], path=option.full_id)
                used.append(key)
        log_debug("env_variables_applied", **make_event("env", None, {"keys": used}))
        return len(used)

    def _apply_map(self, option: Option, key: str) -> list[str]:
        marker = f"{key}_"
        used = []
        for name in sorted(self._environ):
            if not name.startswith(marker) or name == marker:
                continue
            set_map_entry(option.target, option.type_info, name[len(marker):].lower(), self._environ[name], path=option.full_id)
            used.append(name)
        return used
