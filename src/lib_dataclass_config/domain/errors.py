"""Domain-level exception hierarchy.

Purpose
-------
Expose the two error tiers shared by the structure builder, the coercion
layer, the source adapters, and consuming applications. The hierarchy lives
in the domain layer so every outer layer can depend on it.

Contents
--------
* :class:`StructureError` – programmer mistakes in the record definition.
  Deliberately *not* a :class:`ConfigError`.
* :class:`UnsupportedTypeError` – a field annotation the classifier rejects.
* :class:`ConfigError` – umbrella base class for recoverable input errors.
* :class:`CoercionError` – a raw value could not be converted into a field.
* :class:`InvalidFormat` – a configuration file could not be decoded.
* :class:`SourceLoadError` – a configuration file failed to load or apply.
* :class:`NotFound` – an explicitly named configuration file is missing.
* :class:`FlagError` – malformed, ambiguous, or unknown command line flags.

System Role
-----------
Callers wrap :func:`lib_dataclass_config.core.load` in ``except ConfigError``
to report bad user input. Structural problems surface as
:class:`StructureError` and are meant to crash loudly during development.
"""

from __future__ import annotations


class StructureError(TypeError):
    """Raised when the record type itself is malformed.

    Why
    ----
    Duplicate identifiers, unsupported field types, or defaults on nested
    records cannot be caused by user input. They must never be confused with
    recoverable errors, so the class sits outside the :class:`ConfigError`
    family.

    Examples
    --------
    >>> issubclass(StructureError, ConfigError)
    False
    """


class UnsupportedTypeError(StructureError):
    """Raised by the type classifier with the reason a type was rejected."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigError(Exception):
    """Base type for all recoverable errors emitted by ``lib_dataclass_config``.

    Why
    ----
    Provide a single catch-all type for callers that only want to report the
    problem and exit.
    """


class CoercionError(ConfigError):
    """Raised when a raw value cannot be converted into a field's type.

    What
    ----
    Carries the offending value, the option's full path, and the target type
    name so a diagnosis never needs the surrounding context.

    Examples
    --------
    >>> err = CoercionError("abc", "int", "invalid syntax", path="server.port")
    >>> str(err)
    "failed to set option 'server.port' from 'abc' into type int: invalid syntax"
    """

    def __init__(self, raw: object, target_type: str, reason: str = "", *, path: str = "") -> None:
        self.raw = raw
        self.target_type = target_type
        self.reason = reason
        self.path = path
        super().__init__(self._render())

    def _render(self) -> str:
        subject = f"failed to set option '{self.path}' from" if self.path else "failed to parse"
        message = f"{subject} {self.raw!r} into type {self.target_type}"
        if self.reason:
            message += f": {self.reason}"
        return message


class InvalidFormat(ConfigError):
    """Raised when file content cannot be decoded into a mapping.

    Typical Sources
    ---------------
    The structured decoders (:mod:`json`, :mod:`yaml`, :mod:`tomllib`) and the
    try-all decoder, which aggregates every sub-decoder's failure.
    """


class SourceLoadError(InvalidFormat):
    """Raised when a configuration file fails to load; the message names the path."""


class NotFound(ConfigError):
    """Represents a configuration file the user asked for explicitly but that is absent.

    Why
    ----
    A missing *default* file is tolerated silently, a missing *named* file is
    an input mistake the caller should hear about.
    """


class FlagError(ConfigError):
    """Raised for malformed command lines, unknown flags, or short/full clashes."""
