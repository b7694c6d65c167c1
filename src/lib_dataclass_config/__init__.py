"""Public package surface of ``lib_dataclass_config``.

Declare configuration as a dataclass, then populate an instance from
defaults, a configuration file, environment variables and command line flags:

>>> from dataclasses import dataclass
>>> from lib_dataclass_config import load, setting
>>> @dataclass
... class Settings:
...     port: int = setting(short="p", default="8080", desc="listen `port`")
>>> load(Settings(), args=["-p", "9000"], environ={}).port
9000
"""

from __future__ import annotations

from .adapters.env.default import default_env_prefix, make_env_key
from .adapters.file_loaders.structured import (
    TRY_ALL_DECODER,
    JSONFileDecoder,
    MultiFileDecoder,
    TOMLFileDecoder,
    YAMLFileDecoder,
    decoder_for_path,
)
from .adapters.help.default import render_help
from .application.structure import inspect_structure
from .core import Conf, load, load_map, load_raw_file, load_with_map, load_with_raw_file
from .domain.errors import (
    CoercionError,
    ConfigError,
    FlagError,
    InvalidFormat,
    NotFound,
    SourceLoadError,
    StructureError,
    UnsupportedTypeError,
)
from .domain.options import HIDDEN, setting, to_kebab
from .domain.types import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    TextDecodable,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .observability import bind_trace_id, get_logger

__all__ = [
    "CoercionError",
    "Conf",
    "ConfigError",
    "FlagError",
    "Float32",
    "Float64",
    "HIDDEN",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "InvalidFormat",
    "JSONFileDecoder",
    "MultiFileDecoder",
    "NotFound",
    "SourceLoadError",
    "StructureError",
    "TOMLFileDecoder",
    "TRY_ALL_DECODER",
    "TextDecodable",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "UnsupportedTypeError",
    "YAMLFileDecoder",
    "bind_trace_id",
    "decoder_for_path",
    "default_env_prefix",
    "get_logger",
    "inspect_structure",
    "load",
    "load_map",
    "load_raw_file",
    "load_with_map",
    "load_with_raw_file",
    "make_env_key",
    "render_help",
    "setting",
    "to_kebab",
]
