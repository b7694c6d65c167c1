"""Value coercion layer.

Purpose
-------
Convert untyped external representations into the concrete type of a field.
Two entry families exist because the sources hand over two kinds of input:
flags and environment variables produce raw text, configuration files produce
already-typed values (numbers, booleans, lists, nested mappings).

Contents
--------
* :func:`coerce_text` / :func:`set_from_text` – raw text into a field.
* :func:`coerce_value` / :func:`set_from_value` – decoded values into a field.
* :func:`set_map_entry` – one ``key=value`` pair into a ``dict[str, Any]`` field.
* :func:`read_csv_record` – split one RFC-4180 CSV record.

System Role
-----------
Every write the sources perform goes through this module. Failures raise
:class:`CoercionError` carrying the raw value, the option path and the target
type name.
"""

from __future__ import annotations

import base64
import csv
import io
import math
import re
import struct
from typing import Any, Final, Mapping

from ..domain.errors import CoercionError
from ..domain.options import FieldHandle
from ..domain.types import OptionKind, TypeInfo

_TRUE_TOKENS: Final[frozenset[str]] = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TOKENS: Final[frozenset[str]] = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_SIGNED_INT: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
_FLOAT: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def read_csv_record(raw: str) -> list[str]:
    """Split ``raw`` as one CSV record, honouring double-quote escaping.

    Only the first record is read; empty text yields an empty list.

    Examples
    --------
    >>> read_csv_record('a,b,"c,d"')
    ['a', 'b', 'c,d']
    >>> read_csv_record("")
    []
    >>> read_csv_record('a, "b,c"')
    Traceback (most recent call last):
    ...
    ValueError: bare " in non-quoted field 2
    """

    if raw == "":
        return []
    _check_bare_quotes(raw)
    reader = csv.reader(io.StringIO(raw), strict=True)
    try:
        return next(reader, [])
    except csv.Error as exc:
        raise ValueError(f"malformed CSV value: {exc}") from exc


def _check_bare_quotes(raw: str) -> None:
    # the csv module keeps a quote found inside an unquoted field as data
    field_number = 1
    at_field_start = True
    in_quotes = False
    index = 0
    while index < len(raw):
        char = raw[index]
        if in_quotes:
            if char == '"':
                if raw[index + 1 : index + 2] == '"':
                    index += 1
                else:
                    in_quotes = False
        elif char == '"':
            if not at_field_start:
                raise ValueError(f'bare " in non-quoted field {field_number}')
            in_quotes = True
        elif char == ",":
            field_number += 1
            at_field_start = True
            index += 1
            continue
        elif char in "\r\n":
            return
        at_field_start = False
        index += 1


def coerce_text(info: TypeInfo, raw: str, *, path: str = "") -> Any:
    """Convert raw text into a value of the type described by ``info``.

    Why
    ----
    Flags and environment variables only ever carry text, and default literals
    are text too. One conversion routine keeps their behaviour identical.

    What
    ----
    Self-decoding types get the UTF-8 bytes, byte buffers are base64, sequences
    are one CSV record whose cells are converted recursively, scalars are parsed
    strictly against their declared width.

    Raises
    ------
    CoercionError
        When the text does not represent a value of the target type.

    Examples
    --------
    >>> from lib_dataclass_config.domain.types import UInt8, classify
    >>> coerce_text(classify(UInt8), "255")
    255
    >>> coerce_text(classify(UInt8), "256", path="level")
    Traceback (most recent call last):
    ...
    lib_dataclass_config.domain.errors.CoercionError: failed to set option 'level' from '256' into type uint8: value out of range
    >>> coerce_text(classify(list[int]), "1,2,3")
    [1, 2, 3]
    """

    try:
        return _from_text(info, raw, path)
    except ValueError as exc:
        raise CoercionError(raw, info.name, str(exc), path=path) from exc


def set_from_text(target: FieldHandle, info: TypeInfo, raw: str, *, path: str = "") -> None:
    """Coerce ``raw`` and write the result through ``target``."""

    target.set(coerce_text(info, raw, path=path))


def coerce_value(info: TypeInfo, value: Any, *, path: str = "") -> Any:
    """Convert a decoded value (from a file or a mapping) into the target type.

    Rules
    -----
    * values of the target type are taken as they are;
    * ``int`` widens to ``float``, integral ``float`` narrows to ``int``;
      ``bool`` never converts to or from numbers;
    * byte buffers accept ``bytes`` or base64 text only;
    * text falls back to :func:`coerce_text`;
    * sequences convert element-wise, mappings become fresh records when the
      element type is a record.

    Examples
    --------
    >>> from lib_dataclass_config.domain.types import classify
    >>> coerce_value(classify(float), 3)
    3.0
    >>> coerce_value(classify(int), 4.0)
    4
    >>> coerce_value(classify(int), True, path="count")
    Traceback (most recent call last):
    ...
    lib_dataclass_config.domain.errors.CoercionError: failed to set option 'count' from True into type int64: bool not convertible to int64
    """

    if info.is_dynamic:
        return value
    if value is None:
        if info.optional:
            return None
        raise CoercionError(value, info.name, "null is not allowed", path=path)
    if isinstance(value, str):
        return coerce_text(info, value, path=path)

    kind = info.kind
    if kind is OptionKind.SCALAR:
        return _scalar_from_value(info, value, path)
    if kind is OptionKind.TEXT_CODEC:
        if isinstance(value, info.base):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return coerce_text(info, str(value), path=path)
    elif kind is OptionKind.BYTE_BUFFER:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
    elif kind is OptionKind.SEQUENCE:
        if isinstance(value, (list, tuple)):
            return [_element_from_value(info.element, item, f"{path}[{index}]") for index, item in enumerate(value)]
    elif kind is OptionKind.MAP:
        if isinstance(value, Mapping):
            return {str(key): item for key, item in value.items()}
    elif kind is OptionKind.COMPOSITE:
        if isinstance(value, info.base):
            return value
        if isinstance(value, Mapping):
            return _decode_record(info.base, value, path)
    raise _not_convertible(info, value, path)


def set_from_value(target: FieldHandle, info: TypeInfo, value: Any, *, path: str = "") -> None:
    """Coerce ``value`` and write the result through ``target``."""

    target.set(coerce_value(info, value, path=path))


def set_map_entry(target: FieldHandle, info: TypeInfo, key: str, raw: str, *, path: str = "") -> None:
    """Store ``raw`` under ``key`` in the ``dict[str, Any]`` field behind ``target``.

    The text is converted into the map's element type first; an existing entry
    under the same key is replaced.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> from typing import Any
    >>> from lib_dataclass_config.domain.types import classify
    >>> @dataclass
    ... class Holder:
    ...     labels: dict = field(default_factory=dict)
    >>> holder = Holder()
    >>> set_map_entry(FieldHandle(holder, "labels"), classify(dict[str, Any]), "team", "core")
    >>> holder.labels
    {'team': 'core'}
    """

    mapping = target.get()
    if mapping is None:
        mapping = {}
        target.set(mapping)
    element = info.element if info.element is not None else info
    mapping[key] = coerce_text(element, raw, path=f"{path}.{key}" if path else key)


def _from_text(info: TypeInfo, raw: str, path: str) -> Any:
    kind = info.kind
    if kind is OptionKind.TEXT_CODEC:
        return info.decoder(raw.encode("utf-8"))
    if kind is OptionKind.BYTE_BUFFER:
        return base64.b64decode(raw, validate=True)
    if kind is OptionKind.SEQUENCE:
        return [
            coerce_text(info.element, item, path=f"{path}[{index}]")
            for index, item in enumerate(read_csv_record(raw))
        ]
    if kind is OptionKind.MAP:
        raise ValueError("maps are set one key at a time")
    if kind is OptionKind.COMPOSITE:
        raise ValueError("records cannot be set from text")
    if info.is_dynamic or info.base is str:
        return raw
    if info.base is bool:
        return _parse_bool(raw)
    if info.base is int:
        return _parse_int(info, raw)
    return _parse_float(info, raw)


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE_TOKENS:
        return True
    if raw in _FALSE_TOKENS:
        return False
    raise ValueError("invalid syntax")


def _parse_int(info: TypeInfo, raw: str) -> int:
    pattern = _SIGNED_INT if info.int_width.signed else _UNSIGNED_INT
    if not pattern.fullmatch(raw):
        raise ValueError("invalid syntax")
    return _check_int_range(info, int(raw))


def _check_int_range(info: TypeInfo, value: int) -> int:
    low, high = info.int_width.bounds
    if not low <= value <= high:
        raise ValueError("value out of range")
    return value


def _parse_float(info: TypeInfo, raw: str) -> float:
    if not _FLOAT.fullmatch(raw):
        raise ValueError("invalid syntax")
    value = float(raw)
    if math.isinf(value) and "inf" not in raw.lower():
        raise ValueError("value out of range")
    return _round_float(info, value)


def _round_float(info: TypeInfo, value: float) -> float:
    if info.float_width.bits == 32:
        try:
            rounded = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError as exc:
            raise ValueError("value out of range") from exc
        # newer interpreters pack out-of-range doubles as inf instead of raising
        if math.isinf(rounded) and not math.isinf(value):
            raise ValueError("value out of range")
        return rounded
    return value


def _scalar_from_value(info: TypeInfo, value: Any, path: str) -> Any:
    base = info.base
    if isinstance(value, bool) or base is bool:
        if isinstance(value, bool) and base is bool:
            return value
        raise _not_convertible(info, value, path)
    try:
        if base is int:
            if isinstance(value, int):
                return _check_int_range(info, value)
            if isinstance(value, float) and value.is_integer():
                return _check_int_range(info, int(value))
        elif base is float and isinstance(value, (int, float)):
            return _round_float(info, float(value))
    except (ValueError, OverflowError) as exc:
        raise CoercionError(value, info.name, str(exc), path=path) from exc
    raise _not_convertible(info, value, path)


def _element_from_value(element: TypeInfo, item: Any, path: str) -> Any:
    if isinstance(item, Mapping) and element.kind is OptionKind.COMPOSITE:
        return _decode_record(element.base, item, path)
    return coerce_value(element, item, path=path)


def _decode_record(record_type: type, data: Mapping[str, Any], path: str) -> Any:
    from .mapping import decode_record

    return decode_record(record_type, data, path=path)


def _not_convertible(info: TypeInfo, value: Any, path: str) -> CoercionError:
    return CoercionError(value, info.name, f"{type(value).__name__} not convertible to {info.name}", path=path)
