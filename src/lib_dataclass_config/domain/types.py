"""Type classification for record fields.

Purpose
-------
Decide, recursively and before any input is read, whether a field annotation
can be populated by the engine, and describe it with a :class:`TypeInfo` the
coercion layer dispatches on.

Contents
--------
* :class:`OptionKind` – the six shapes an option can take.
* :class:`IntWidth` / :class:`FloatWidth` – ``Annotated`` markers declaring
  bit widths, exposed through the ``Int8`` … ``Float64`` aliases.
* :class:`TextDecodable` – the self-decoding capability user types opt into.
* :class:`TypeInfo` – classifier output (kind, base type, width, element).
* :func:`classify` / :func:`unsupported_reason` – the classifier itself.
* :func:`public_fields` / :func:`record_type_hints` – dataclass helpers shared
  with the structure builder.

System Role
-----------
Pure domain logic: no I/O, no logging. The structure builder calls
:func:`classify` for every field and turns :class:`UnsupportedTypeError` into
a structural error carrying the field name.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import struct
import types
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Callable, Final, Protocol, Union, get_args, get_origin, get_type_hints, runtime_checkable

from .errors import UnsupportedTypeError

PLATFORM_WORD_BITS: Final[int] = struct.calcsize("P") * 8
"""Bit width of a plain ``int`` field (the signed platform word)."""

_INT_BITS: Final[tuple[int, ...]] = (8, 16, 32, 64)
_FLOAT_BITS: Final[tuple[int, ...]] = (32, 64)


class OptionKind(enum.Enum):
    """Shape of an option as seen by the sources."""

    SCALAR = "scalar"
    TEXT_CODEC = "text-codec"
    BYTE_BUFFER = "byte-buffer"
    SEQUENCE = "sequence"
    MAP = "map"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class IntWidth:
    """Declared width of an integer field.

    Examples
    --------
    >>> IntWidth(8).bounds
    (-128, 127)
    >>> IntWidth(16, signed=False).name
    'uint16'
    """

    bits: int = PLATFORM_WORD_BITS
    signed: bool = True

    @property
    def bounds(self) -> tuple[int, int]:
        if self.signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1

    @property
    def name(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"


@dataclass(frozen=True)
class FloatWidth:
    """Declared precision of a floating-point field (32 or 64 bits)."""

    bits: int = 64


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
UInt = Annotated[int, IntWidth(PLATFORM_WORD_BITS, signed=False)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


@runtime_checkable
class TextDecodable(Protocol):
    """Capability of types that build themselves from UTF-8 text.

    ``from_text`` returns a new instance or raises :class:`ValueError`. Types
    exposing it are accepted by the classifier regardless of their structure.
    """

    @classmethod
    def from_text(cls, data: bytes) -> Any:
        ...


def _decode_with(parse: Callable[[str], Any]) -> Callable[[bytes], Any]:
    def decode(data: bytes) -> Any:
        return parse(data.decode("utf-8"))

    return decode


def _decode_decimal(data: bytes) -> decimal.Decimal:
    text = data.decode("utf-8")
    try:
        return decimal.Decimal(text)
    except decimal.InvalidOperation as exc:
        raise ValueError(f"invalid decimal literal {text!r}") from exc


def _enum_decoder(enum_type: type[enum.Enum]) -> Callable[[bytes], Any]:
    def decode(data: bytes) -> enum.Enum:
        text = data.decode("utf-8")
        try:
            return enum_type[text]
        except KeyError:
            pass
        for member in enum_type:
            if str(member.value) == text:
                return member
        raise ValueError(f"{text!r} is not a valid {enum_type.__name__}")

    return decode


_BUILTIN_DECODERS: Final[dict[type, Callable[[bytes], Any]]] = {
    datetime.datetime: _decode_with(datetime.datetime.fromisoformat),
    datetime.date: _decode_with(datetime.date.fromisoformat),
    decimal.Decimal: _decode_decimal,
    Path: _decode_with(Path),
}


def text_decoder_for(tp: Any) -> Callable[[bytes], Any] | None:
    """Return the text decoder of ``tp`` or ``None`` when it cannot self-decode.

    Examples
    --------
    >>> text_decoder_for(Path)(b"/tmp").name
    'tmp'
    >>> text_decoder_for(int) is None
    True
    """

    if not isinstance(tp, type):
        return None
    decoder = getattr(tp, "from_text", None)
    if callable(decoder):
        return decoder
    if tp in _BUILTIN_DECODERS:
        return _BUILTIN_DECODERS[tp]
    if issubclass(tp, enum.Enum):
        return _enum_decoder(tp)
    return None


@dataclass(frozen=True)
class TypeInfo:
    """Classifier output describing one field annotation.

    Attributes
    ----------
    kind:
        The :class:`OptionKind` the sources dispatch on.
    base:
        The bare Python type (``int``, ``bytes``, a record class, a codec class,
        ``list``/``dict`` for containers, or :data:`typing.Any`).
    optional:
        ``True`` when the annotation was ``Optional[...]``; ``None`` is then the
        zero value.
    int_width / float_width:
        Declared widths for numeric scalars.
    element:
        Element descriptor for sequences and maps.
    decoder:
        Text decoder for self-decoding types.
    """

    kind: OptionKind
    base: Any
    optional: bool = False
    int_width: IntWidth | None = None
    float_width: FloatWidth | None = None
    element: TypeInfo | None = None
    decoder: Callable[[bytes], Any] | None = field(default=None, compare=False, repr=False)

    @property
    def is_dynamic(self) -> bool:
        return self.kind is OptionKind.SCALAR and self.base is Any

    @property
    def name(self) -> str:
        """Human readable type name used in error messages and help output."""

        if self.int_width is not None:
            return self.int_width.name
        if self.float_width is not None:
            return f"float{self.float_width.bits}"
        if self.kind is OptionKind.SEQUENCE and self.element is not None:
            return f"list[{self.element.name}]"
        if self.kind is OptionKind.MAP:
            return "dict[str, Any]"
        if self.base is Any:
            return "Any"
        return getattr(self.base, "__name__", repr(self.base))

    def zero(self) -> Any:
        """Return a fresh zero value for the described type."""

        if self.optional:
            return None
        if self.kind is OptionKind.SCALAR:
            return None if self.is_dynamic else self.base()
        if self.kind is OptionKind.BYTE_BUFFER:
            return b""
        if self.kind is OptionKind.SEQUENCE:
            return []
        if self.kind is OptionKind.MAP:
            return {}
        if self.kind is OptionKind.COMPOSITE:
            return self.base()
        return None

    def is_zero(self, value: Any) -> bool:
        """Return ``True`` when ``value`` is still the zero value of the type.

        Examples
        --------
        >>> info = classify(int)
        >>> info.is_zero(0), info.is_zero(7), info.is_zero(None)
        (True, False, True)
        >>> classify(float).is_zero(0)
        True
        """

        if value is None:
            return True
        if self.kind is OptionKind.SCALAR:
            if self.is_dynamic:
                return False
            if self.base in (int, float):
                return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0
            return type(value) is self.base and value == self.base()
        if self.kind in (OptionKind.BYTE_BUFFER, OptionKind.SEQUENCE, OptionKind.MAP):
            return len(value) == 0
        return False


def public_fields(record_type: Any) -> list[dataclasses.Field]:
    """Return the dataclass fields the engine manages (names without a leading underscore)."""

    return [item for item in dataclasses.fields(record_type) if not item.name.startswith("_")]


def record_type_hints(record_type: type) -> dict[str, Any]:
    """Resolve the annotations of ``record_type`` keeping ``Annotated`` extras."""

    try:
        return get_type_hints(record_type, include_extras=True)
    except (NameError, TypeError) as exc:
        raise UnsupportedTypeError(f"cannot resolve annotations of {record_type.__name__}: {exc}") from exc


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def classify(annotation: Any) -> TypeInfo:
    """Classify a field annotation or raise :class:`UnsupportedTypeError`.

    Why
    ----
    The set of target shapes is open: nested records, sequences of sequences,
    self-decoding types. Checking them once, up front, turns every shape
    mistake into a construction-time failure instead of a surprise while
    reading user input.

    What
    ----
    Unwraps ``Annotated`` and ``Optional``, then tries, in order: self-decoding
    types, ``bytes``, primitive scalars, records, ``list[T]`` and
    ``dict[str, Any]``. Records and sequences are checked recursively.

    Examples
    --------
    >>> classify(Int8).name
    'int8'
    >>> classify(list[list[int]]).kind
    <OptionKind.SEQUENCE: 'sequence'>
    >>> classify(dict[str, int])
    Traceback (most recent call last):
    ...
    lib_dataclass_config.domain.errors.UnsupportedTypeError: only maps of type dict[str, Any] are supported
    """

    return _classify(annotation, stack=(), allow_dynamic=False)


def unsupported_reason(annotation: Any) -> str | None:
    """Return why ``annotation`` is rejected, or ``None`` when it is supported.

    Examples
    --------
    >>> unsupported_reason(bytes) is None
    True
    >>> unsupported_reason(complex)
    "type <class 'complex'> is not supported"
    """

    try:
        classify(annotation)
    except UnsupportedTypeError as exc:
        return exc.reason
    return None


def _classify(annotation: Any, *, stack: tuple[type, ...], allow_dynamic: bool) -> TypeInfo:
    tp, widths = _strip_annotated(annotation)
    tp, optional = _strip_optional(tp)
    tp, inner_widths = _strip_annotated(tp)
    widths = widths + inner_widths

    if tp is Any or tp is object:
        if allow_dynamic:
            return TypeInfo(OptionKind.SCALAR, Any, optional)
        raise UnsupportedTypeError("open types are only supported as values of dict[str, Any]")

    if tp is bool or tp is int or tp is float:
        return _classify_number(tp, widths, optional)
    if widths:
        raise UnsupportedTypeError(f"width markers are not supported on {tp!r}")

    decoder = text_decoder_for(tp)
    if decoder is not None:
        return TypeInfo(OptionKind.TEXT_CODEC, tp, optional, decoder=decoder)
    if tp is bytes:
        return TypeInfo(OptionKind.BYTE_BUFFER, bytes, optional)
    if tp is str:
        return TypeInfo(OptionKind.SCALAR, str, optional)
    if is_record_type(tp):
        return _classify_record(tp, stack=stack, optional=optional)

    origin = get_origin(tp)
    if origin is list:
        args = get_args(tp)
        if len(args) != 1:
            raise UnsupportedTypeError("sequences must declare their element type")
        try:
            element = _classify(args[0], stack=stack, allow_dynamic=False)
        except UnsupportedTypeError as exc:
            raise UnsupportedTypeError(f"sequence of unsupported type: {exc.reason}") from None
        return TypeInfo(OptionKind.SEQUENCE, list, optional, element=element)
    if origin is dict:
        args = get_args(tp)
        if len(args) != 2 or args[0] is not str or args[1] not in (Any, object):
            raise UnsupportedTypeError("only maps of type dict[str, Any] are supported")
        element = _classify(args[1], stack=stack, allow_dynamic=True)
        return TypeInfo(OptionKind.MAP, dict, optional, element=element)

    raise UnsupportedTypeError(f"type {tp!r} is not supported")


def _classify_number(tp: type, widths: tuple[Any, ...], optional: bool) -> TypeInfo:
    if tp is bool:
        if widths:
            raise UnsupportedTypeError("width markers are not supported on bool")
        return TypeInfo(OptionKind.SCALAR, bool, optional)
    if tp is int:
        width = _single_width(widths, IntWidth) or IntWidth()
        if width.bits not in _INT_BITS:
            raise UnsupportedTypeError(f"unsupported integer width {width.bits}")
        return TypeInfo(OptionKind.SCALAR, int, optional, int_width=width)
    width = _single_width(widths, FloatWidth) or FloatWidth()
    if width.bits not in _FLOAT_BITS:
        raise UnsupportedTypeError(f"unsupported float width {width.bits}")
    return TypeInfo(OptionKind.SCALAR, float, optional, float_width=width)


def _classify_record(tp: type, *, stack: tuple[type, ...], optional: bool) -> TypeInfo:
    if tp in stack:
        raise UnsupportedTypeError(f"record type {tp.__name__} contains itself")
    hints = record_type_hints(tp)
    for item in public_fields(tp):
        try:
            _classify(hints[item.name], stack=stack + (tp,), allow_dynamic=False)
        except UnsupportedTypeError as exc:
            raise UnsupportedTypeError(f"field '{item.name}': {exc.reason}") from None
    return TypeInfo(OptionKind.COMPOSITE, tp, optional)


def _strip_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    if get_origin(tp) is Annotated:
        base, *extras = get_args(tp)
        widths = tuple(extra for extra in extras if isinstance(extra, (IntWidth, FloatWidth)))
        return base, widths
    return tp, ()


def _strip_optional(tp: Any) -> tuple[Any, bool]:
    if get_origin(tp) in (Union, types.UnionType):
        args = get_args(tp)
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1 and len(args) == 2:
            return members[0], True
        raise UnsupportedTypeError(f"unions other than Optional[...] are not supported: {tp!r}")
    return tp, False


def _single_width(widths: tuple[Any, ...], expected: type) -> Any:
    if not widths:
        return None
    if len(widths) > 1 or not isinstance(widths[0], expected):
        raise UnsupportedTypeError(f"conflicting width markers {widths!r}")
    return widths[0]
