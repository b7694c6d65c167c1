"""Structured configuration file decoders.

Purpose
-------
Convert configuration file content into Python mappings the file stage can
walk. Decoders are small wrappers around ``json``/PyYAML's safe loader/
``tomllib`` so error handling and logging live in one place.

Contents
--------
* :class:`BaseFileDecoder` – shared mapping validation.
* :class:`JSONFileDecoder` – JSON documents.
* :class:`YAMLFileDecoder` – YAML documents (PyYAML).
* :class:`TOMLFileDecoder` – TOML documents.
* :class:`MultiFileDecoder` – tries several decoders, aggregating failures.
* :data:`TRY_ALL_DECODER` – YAML, then TOML, then JSON.
* :func:`decoder_for_path` / :func:`read_config_file`.

System Role
-----------
Invoked by :mod:`lib_dataclass_config.core` once the configuration file has
been located. Decoders raise :class:`InvalidFormat`; the orchestrator wraps it
with the file path.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final, Mapping, Sequence

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...domain.errors import InvalidFormat
from ...observability import log_debug, log_error, make_event


def read_config_file(path: Path) -> bytes:
    """Return the raw content of ``path`` and log its size.

    Examples
    --------
    >>> from tempfile import NamedTemporaryFile
    >>> tmp = NamedTemporaryFile(delete=False)
    >>> _ = tmp.write(b"key = 'value'")
    >>> tmp.close()
    >>> read_config_file(Path(tmp.name))[:3]
    b'key'
    >>> Path(tmp.name).unlink()
    """

    payload = Path(path).read_bytes()
    log_debug("config_file_read", **make_event("file", str(path), {"size": len(payload)}))
    return payload


class BaseFileDecoder:
    """Common utilities shared by the structured decoders."""

    name = "base"

    def decode(self, content: bytes) -> Mapping[str, Any]:
        raise NotImplementedError

    def _ensure_mapping(self, data: object) -> Mapping[str, Any]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> JSONFileDecoder()._ensure_mapping({"key": 1})
        {'key': 1}
        >>> JSONFileDecoder()._ensure_mapping(42)
        Traceback (most recent call last):
        ...
        lib_dataclass_config.domain.errors.InvalidFormat: json document did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"{self.name} document did not produce a mapping")
        return data

    def _invalid(self, exc: Exception) -> InvalidFormat:
        log_error("config_file_invalid", **make_event("file", None, {"format": self.name, "error": str(exc)}))
        return InvalidFormat(f"invalid {self.name}: {exc}")


class JSONFileDecoder(BaseFileDecoder):
    """Decode JSON documents.

    Examples
    --------
    >>> JSONFileDecoder().decode(b'{"enabled": true}')["enabled"]
    True
    """

    name = "json"

    def decode(self, content: bytes) -> Mapping[str, Any]:
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(exc) from exc
        return self._ensure_mapping(data)


class _StringKeyLoader(yaml.SafeLoader):
    """Safe loader that stringifies mapping keys while each mapping is built.

    Converting afterwards would be lossy: ``1`` and ``true`` are equal dict
    keys in Python, so one entry would overwrite the other.
    """


def _construct_string_keyed_mapping(loader: _StringKeyLoader, node: yaml.MappingNode) -> dict[str, Any]:
    loader.flatten_mapping(node)
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=True)
        mapping[str(key)] = loader.construct_object(value_node, deep=True)
    return mapping


_StringKeyLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_string_keyed_mapping)


class YAMLFileDecoder(BaseFileDecoder):
    """Decode YAML documents with a string-keyed ``yaml.SafeLoader``.

    An empty document decodes to an empty mapping. Non-string keys (``1:``,
    ``true:``) are stringified so every level stays string-keyed.

    Examples
    --------
    >>> YAMLFileDecoder().decode(b"server:\\n  port: 8080\\n")
    {'server': {'port': 8080}}
    >>> YAMLFileDecoder().decode(b"")
    {}
    """

    name = "yaml"

    def decode(self, content: bytes) -> Mapping[str, Any]:
        try:
            data = yaml.load(content, Loader=_StringKeyLoader)  # noqa: S506 - SafeLoader subclass
        except yaml.YAMLError as exc:
            raise self._invalid(exc) from exc
        if data is None:
            data = {}
        return self._ensure_mapping(data)


class TOMLFileDecoder(BaseFileDecoder):
    """Decode TOML documents using ``tomllib`` (``tomli`` before Python 3.11).

    Examples
    --------
    >>> TOMLFileDecoder().decode(b'key = "value"')["key"]
    'value'
    """

    name = "toml"

    def decode(self, content: bytes) -> Mapping[str, Any]:
        try:
            data = tomllib.loads(content.decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(exc) from exc
        return self._ensure_mapping(data)


class MultiFileDecoder(BaseFileDecoder):
    """Try several decoders in order and return the first success.

    Why
    ----
    A configuration file without a known suffix could be any format. When all
    decoders fail, every individual reason is reported so the user can see why
    each guess was rejected.

    Examples
    --------
    >>> MultiFileDecoder([JSONFileDecoder(), TOMLFileDecoder()]).decode(b'a = 1')
    {'a': 1}
    """

    def __init__(self, decoders: Sequence[BaseFileDecoder]) -> None:
        self.decoders = tuple(decoders)
        self.name = "+".join(decoder.name for decoder in self.decoders)

    def decode(self, content: bytes) -> Mapping[str, Any]:
        failures: list[str] = []
        for decoder in self.decoders:
            try:
                return decoder.decode(content)
            except InvalidFormat as exc:
                failures.append(f"{decoder.name}: {exc}")
        raise InvalidFormat("no decoder accepted the content; " + "; ".join(failures))


TRY_ALL_DECODER: Final[MultiFileDecoder] = MultiFileDecoder([YAMLFileDecoder(), TOMLFileDecoder(), JSONFileDecoder()])

_DECODERS_BY_SUFFIX: Final[dict[str, BaseFileDecoder]] = {
    ".json": JSONFileDecoder(),
    ".toml": TOMLFileDecoder(),
    ".yaml": YAMLFileDecoder(),
    ".yml": YAMLFileDecoder(),
}


def decoder_for_path(path: Path | str) -> BaseFileDecoder:
    """Pick a decoder from the file suffix, falling back to :data:`TRY_ALL_DECODER`.

    Examples
    --------
    >>> decoder_for_path("conf/app.yml").name
    'yaml'
    >>> decoder_for_path("app.conf").name
    'yaml+toml+json'
    """

    return _DECODERS_BY_SUFFIX.get(Path(path).suffix.lower(), TRY_ALL_DECODER)

