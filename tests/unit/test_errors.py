"""Error taxonomy tests: the structural tier must stay apart from input errors."""

from __future__ import annotations

import pytest

from lib_dataclass_config.domain.errors import (
    CoercionError,
    ConfigError,
    FlagError,
    InvalidFormat,
    NotFound,
    SourceLoadError,
    StructureError,
    UnsupportedTypeError,
)


@pytest.mark.parametrize("error_type", [CoercionError, InvalidFormat, SourceLoadError, NotFound, FlagError])
def test_input_errors_share_config_error(error_type: type[Exception]) -> None:
    assert issubclass(error_type, ConfigError)


def test_structure_errors_are_not_config_errors() -> None:
    assert not issubclass(StructureError, ConfigError)
    assert not issubclass(UnsupportedTypeError, ConfigError)
    assert issubclass(UnsupportedTypeError, StructureError)


def test_coercion_error_carries_context() -> None:
    err = CoercionError("abc", "int64", "invalid syntax", path="server.port")
    assert err.raw == "abc"
    assert err.path == "server.port"
    assert err.target_type == "int64"
    assert str(err) == "failed to set option 'server.port' from 'abc' into type int64: invalid syntax"


def test_coercion_error_without_path() -> None:
    assert str(CoercionError(b"x", "str")) == "failed to parse b'x' into type str"


def test_unsupported_type_error_exposes_reason() -> None:
    err = UnsupportedTypeError("type complex is not supported")
    assert err.reason == "type complex is not supported"
    assert str(err) == err.reason
