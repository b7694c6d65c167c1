"""Type classifier tests covering accepted shapes, rejections and zero values."""

from __future__ import annotations

import datetime
import decimal
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from lib_dataclass_config.domain.errors import StructureError, UnsupportedTypeError
from lib_dataclass_config.domain.types import (
    PLATFORM_WORD_BITS,
    Float32,
    Int8,
    IntWidth,
    OptionKind,
    UInt16,
    classify,
    text_decoder_for,
    unsupported_reason,
)


class Colour(enum.Enum):
    RED = "red"
    GREEN = "green"


class Hostname:
    def __init__(self, value: str = "") -> None:
        self.value = value

    @classmethod
    def from_text(cls, data: bytes) -> "Hostname":
        text = data.decode("utf-8")
        if not text or " " in text:
            raise ValueError(f"invalid hostname {text!r}")
        return cls(text)


@dataclass
class Endpoint:
    host: str = ""
    port: int = 0


@dataclass
class Broken:
    callback: Callable[[], None] = print


@dataclass
class Outer:
    inner: Broken = field(default_factory=Broken)


@dataclass
class Loop:
    children: List[Loop] = field(default_factory=list)


@dataclass
class Private:
    name: str = ""
    _cache: Callable[[], None] = print


def test_plain_int_uses_platform_word() -> None:
    info = classify(int)
    assert info.kind is OptionKind.SCALAR
    assert info.int_width == IntWidth(PLATFORM_WORD_BITS, signed=True)


def test_width_aliases_are_carried() -> None:
    assert classify(Int8).int_width.bounds == (-128, 127)
    assert classify(UInt16).int_width.bounds == (0, 65535)
    assert classify(Float32).float_width.bits == 32


def test_optional_unwraps_and_flags() -> None:
    info = classify(Optional[Int8])
    assert info.optional is True
    assert info.int_width.bits == 8
    assert classify(int | None).optional is True


@pytest.mark.parametrize(
    "annotation, kind",
    [
        (bool, OptionKind.SCALAR),
        (str, OptionKind.SCALAR),
        (float, OptionKind.SCALAR),
        (bytes, OptionKind.BYTE_BUFFER),
        (list[str], OptionKind.SEQUENCE),
        (List[List[int]], OptionKind.SEQUENCE),
        (dict[str, Any], OptionKind.MAP),
        (Dict[str, object], OptionKind.MAP),
        (Endpoint, OptionKind.COMPOSITE),
        (Optional[Endpoint], OptionKind.COMPOSITE),
        (list[Endpoint], OptionKind.SEQUENCE),
        (Hostname, OptionKind.TEXT_CODEC),
        (Colour, OptionKind.TEXT_CODEC),
        (Path, OptionKind.TEXT_CODEC),
        (decimal.Decimal, OptionKind.TEXT_CODEC),
        (datetime.datetime, OptionKind.TEXT_CODEC),
        (datetime.date, OptionKind.TEXT_CODEC),
    ],
)
def test_supported_annotations(annotation: Any, kind: OptionKind) -> None:
    assert classify(annotation).kind is kind
    assert unsupported_reason(annotation) is None


@pytest.mark.parametrize(
    "annotation",
    [
        Any,
        object,
        complex,
        list,
        tuple[int, int],
        set[str],
        Union[int, str],
        int | str,
        dict[str, int],
        dict[int, Any],
        Callable[[], None],
        list[Callable[[], None]],
    ],
)
def test_unsupported_annotations(annotation: Any) -> None:
    with pytest.raises(UnsupportedTypeError):
        classify(annotation)
    assert unsupported_reason(annotation)


def test_unsupported_error_is_structural() -> None:
    with pytest.raises(StructureError):
        classify(complex)


def test_nested_failure_names_the_field_path() -> None:
    reason = unsupported_reason(Outer)
    assert reason is not None
    assert reason.startswith("field 'inner': field 'callback':")


def test_self_recursive_record_is_rejected() -> None:
    reason = unsupported_reason(Loop)
    assert reason is not None
    assert "contains itself" in reason


def test_unexported_fields_are_not_classified() -> None:
    assert classify(Private).kind is OptionKind.COMPOSITE


def test_width_marker_on_wrong_family_is_rejected() -> None:
    from typing import Annotated

    with pytest.raises(UnsupportedTypeError):
        classify(Annotated[str, IntWidth(8)])
    with pytest.raises(UnsupportedTypeError):
        classify(Annotated[int, IntWidth(12)])


def test_zero_values() -> None:
    assert classify(int).zero() == 0
    assert classify(str).zero() == ""
    assert classify(bytes).zero() == b""
    assert classify(list[int]).zero() == []
    assert classify(dict[str, Any]).zero() == {}
    assert classify(Optional[int]).zero() is None
    assert isinstance(classify(Endpoint).zero(), Endpoint)


def test_is_zero_distinguishes_bool_from_int() -> None:
    info = classify(int)
    assert info.is_zero(0)
    assert not info.is_zero(False)
    assert not info.is_zero(3)
    assert classify(list[str]).is_zero([])
    assert not classify(Hostname).is_zero(Hostname("x"))


def test_numeric_zero_is_compared_by_value() -> None:
    assert classify(float).is_zero(0)
    assert classify(float).is_zero(-0.0)
    assert classify(int).is_zero(0.0)
    assert not classify(float).is_zero(False)
    assert not classify(float).is_zero(0.25)
    assert classify(bool).is_zero(False)
    assert not classify(bool).is_zero(0)


def test_builtin_text_decoders() -> None:
    assert text_decoder_for(Colour)(b"RED") is Colour.RED
    assert text_decoder_for(Colour)(b"green") is Colour.GREEN
    assert text_decoder_for(decimal.Decimal)(b"1.50") == decimal.Decimal("1.50")
    assert text_decoder_for(datetime.date)(b"2024-02-29") == datetime.date(2024, 2, 29)
    with pytest.raises(ValueError):
        text_decoder_for(decimal.Decimal)(b"abc")
    with pytest.raises(ValueError):
        text_decoder_for(Colour)(b"blue")


def test_type_names() -> None:
    assert classify(UInt16).name == "uint16"
    assert classify(Float32).name == "float32"
    assert classify(list[bool]).name == "list[bool]"
    assert classify(Endpoint).name == "Endpoint"
