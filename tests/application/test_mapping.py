"""File-map walker tests: key normalisation, nesting, maps and strict records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from lib_dataclass_config.application.mapping import apply_mapping, decode_record
from lib_dataclass_config.application.structure import apply_defaults, inspect_structure
from lib_dataclass_config.domain.errors import CoercionError
from lib_dataclass_config.domain.options import setting


@dataclass
class Limits:
    max_connections: int = setting(default="10")
    burst: float = 0.0


@dataclass
class Peer:
    name: str = ""
    weight: int = setting(default="1")


@dataclass
class Settings:
    service_name: str = setting(id="serviceName")
    limits: Limits = setting()
    peers: list[Peer] = setting()
    extra: dict[str, Any] = setting()
    blob: bytes = setting()


def _tree(settings: Settings):
    tree = inspect_structure(settings)
    apply_defaults(tree)
    return tree


def test_keys_are_matched_in_kebab_form() -> None:
    settings = Settings()
    tree = _tree(settings)
    applied = apply_mapping(
        {"service_name": "api", "limits": {"maxConnections": 50, "Burst": 1}},
        tree.options,
    )
    assert settings.service_name == "api"
    assert settings.limits.max_connections == 50
    assert settings.limits.burst == 1.0
    assert applied == 3


def test_unknown_keys_are_ignored_by_default() -> None:
    settings = Settings()
    tree = _tree(settings)
    assert apply_mapping({"future-option": True, "limits": {"new": 1}}, tree.options) == 0
    assert settings.limits.max_connections == 10


def test_strict_mode_rejects_unknown_keys() -> None:
    settings = Settings()
    tree = _tree(settings)
    with pytest.raises(CoercionError):
        apply_mapping({"future-option": True}, tree.options, strict=True)


def test_composite_requires_a_mapping() -> None:
    settings = Settings()
    tree = _tree(settings)
    with pytest.raises(CoercionError) as excinfo:
        apply_mapping({"limits": 5}, tree.options)
    assert excinfo.value.path == "limits"


def test_map_option_is_updated_entry_by_entry() -> None:
    settings = Settings(extra={"keep": 1, "replace": 2})
    tree = _tree(settings)
    apply_mapping({"extra": {"replace": [1, 2], 3: "three"}}, tree.options)
    assert settings.extra == {"keep": 1, "replace": [1, 2], "3": "three"}


def test_map_option_requires_a_mapping() -> None:
    tree = _tree(Settings())
    with pytest.raises(CoercionError):
        apply_mapping({"extra": ["a"]}, tree.options)


def test_sequence_of_records_gets_defaults_per_element() -> None:
    settings = Settings()
    tree = _tree(settings)
    apply_mapping({"peers": [{"name": "a"}, {"name": "b", "weight": 5}]}, tree.options)
    assert settings.peers == [Peer(name="a", weight=1), Peer(name="b", weight=5)]


def test_bytes_from_file_text_are_base64() -> None:
    settings = Settings()
    apply_mapping({"blob": "AQID"}, _tree(settings).options)
    assert settings.blob == b"\x01\x02\x03"


def test_decode_record_builds_fresh_instances() -> None:
    first = decode_record(Peer, {"name": "x"})
    second = decode_record(Peer, {"name": "x"})
    assert first == second
    assert first is not second


def test_decode_record_prefixes_error_paths() -> None:
    with pytest.raises(CoercionError) as excinfo:
        decode_record(Peer, {"weight": "heavy"}, path="peers[3]")
    assert excinfo.value.path == "peers[3].weight"
