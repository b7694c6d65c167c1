"""Flag adapter tests: tokenizer grammar and application to the option tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from lib_dataclass_config.adapters.flags.default import DefaultFlagLoader, flag_name, parse_flag_words
from lib_dataclass_config.application.structure import inspect_structure
from lib_dataclass_config.domain.errors import CoercionError, FlagError
from lib_dataclass_config.domain.options import setting


@dataclass
class Server:
    port: int = setting(short="p")


@dataclass
class Settings:
    server: Server = setting()
    verbose: bool = setting(short="v")
    offset: int = 0
    tags: list[str] = setting(short="t")
    labels: dict[str, Any] = setting()


def _apply(args: list[str], *, ignore_unknown: bool = False) -> Settings:
    settings = Settings()
    DefaultFlagLoader(args).apply(inspect_structure(settings).all_options, ignore_unknown=ignore_unknown)
    return settings


@pytest.mark.parametrize(
    "word, expected",
    [("--count", "count"), ("-c", "c"), ("-5", None), ("-", None), ("--", None), ("value", None), ("-cd", None)],
)
def test_flag_name(word: str, expected: str | None) -> None:
    assert flag_name(word) == expected


def test_parse_forms() -> None:
    assert parse_flag_words(["--a=1", "--b", "2", "-c", "3", "-d=4"]) == {"a": "1", "b": "2", "c": "3", "d": "4"}


def test_bare_flags_mean_true() -> None:
    assert parse_flag_words(["--verbose", "--port", "1", "-q"]) == {"verbose": "true", "port": "1", "q": "true"}


def test_repeated_flags_are_comma_joined() -> None:
    assert parse_flag_words(["--tag", "a", "--tag=b", "--tag", "c"]) == {"tag": "a,b,c"}


def test_double_dash_terminates() -> None:
    assert parse_flag_words(["--a", "1", "--", "--b", "2"]) == {"a": "1"}
    assert parse_flag_words(["--a", "--"]) == {"a": "true"}


def test_negative_numbers_are_values() -> None:
    assert parse_flag_words(["--offset", "-5"]) == {"offset": "-5"}


def test_stray_word_is_an_error() -> None:
    with pytest.raises(FlagError, match="unexpected word"):
        parse_flag_words(["--a", "1", "stray"])


def test_values_may_contain_equals_signs() -> None:
    assert parse_flag_words(["--filter=a=b"]) == {"filter": "a=b"}


def test_nested_option_by_full_id_and_shorthand() -> None:
    assert _apply(["--server.port", "8080"]).server.port == 8080
    assert _apply(["-p", "8080"]).server.port == 8080


def test_short_and_full_form_together_fail() -> None:
    with pytest.raises(FlagError, match="both short and full form"):
        _apply(["--server.port", "1", "-p", "2"])


def test_bool_and_negative_values() -> None:
    settings = _apply(["-v", "--offset", "-5"])
    assert settings.verbose is True
    assert settings.offset == -5
    assert _apply(["--verbose=false"]).verbose is False


def test_repeated_sequence_flags() -> None:
    assert _apply(["-t", "a", "-t", "b,c"]).tags == ["a", "b", "c"]


def test_map_flags_use_dotted_subkeys() -> None:
    settings = _apply(["--labels.team", "core", "--labels.tier=gold"])
    assert settings.labels == {"team": "core", "tier": "gold"}


def test_unknown_flags_fail_unless_ignored() -> None:
    with pytest.raises(FlagError, match="unknown flag: nope"):
        _apply(["--nope", "1"])
    assert _apply(["--nope", "1", "--offset", "2"], ignore_unknown=True).offset == 2


def test_invalid_value_is_a_coercion_error() -> None:
    with pytest.raises(CoercionError) as excinfo:
        _apply(["--server.port", "http"])
    assert excinfo.value.path == "server.port"


def test_loader_exposes_parsed_values() -> None:
    loader = DefaultFlagLoader(["--config", "app.toml"])
    assert loader.values() == {"config": "app.toml"}
