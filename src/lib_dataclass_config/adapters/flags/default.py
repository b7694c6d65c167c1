"""Command line flag adapter.

Purpose
-------
Tokenise an argument vector into ``key -> value`` pairs and write them into
the option tree. Implements the
:class:`lib_dataclass_config.application.ports.FlagLoader` port and forms the
highest precedence layer.

Key behaviours
--------------
* ``--key=value``, ``--key value``, ``-k value`` and ``-k=value`` forms.
* A flag followed by another flag (or nothing) means ``true``.
* Repeated flags are joined with ``,`` so sequence options re-split them as CSV.
* ``--`` ends flag parsing; ``-5`` is a value, never a shorthand.
* Options are addressed by full id or shorthand, never both at once.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from ...application.coerce import set_from_text, set_map_entry
from ...domain.errors import FlagError
from ...domain.options import Option
from ...observability import log_debug, make_event

FLAG_TERMINATOR = "--"


def flag_name(word: str) -> str | None:
    """Return the flag name carried by ``word`` or ``None`` when it is a value.

    Examples
    --------
    >>> flag_name("--server.port"), flag_name("-p"), flag_name("-5"), flag_name("value")
    ('server.port', 'p', None, None)
    """

    if len(word) > 2 and word.startswith("--"):
        return word[2:]
    if len(word) == 2 and word[0] == "-" and word[1] != "-" and not word[1].isdigit():
        return word[1]
    return None


def parse_flag_words(args: Sequence[str]) -> dict[str, str]:
    """Parse ``args`` into a mapping of flag names (without dashes) to values.

    Why
    ----
    The loader needs the raw pairs twice: once to look up the configuration
    file name before the file stage, once to apply the flags at the end.
    Keeping the tokenizer pure makes both lookups agree.

    Raises
    ------
    FlagError
        For a word that is neither a flag nor the value of one.

    Examples
    --------
    >>> parse_flag_words(["--count", "25", "-v", "--tag=a", "--tag", "b"])
    {'count': '25', 'v': 'true', 'tag': 'a,b'}
    >>> parse_flag_words(["--offset", "-5", "--", "ignored"])
    {'offset': '-5'}
    """

    result: dict[str, str] = {}
    index = 0
    while index < len(args):
        word = args[index]
        if word == FLAG_TERMINATOR:
            break
        head, separator, inline_value = word.partition("=")
        key = flag_name(head)
        if key is None:
            raise FlagError(f"unexpected word while parsing flags: '{word}'")
        if separator:
            value = inline_value
            index += 1
        elif index + 1 >= len(args) or args[index + 1] == FLAG_TERMINATOR or flag_name(args[index + 1].partition("=")[0]) is not None:
            value = "true"
            index += 1
        else:
            value = args[index + 1]
            index += 2
        result[key] = f"{result[key]},{value}" if key in result else value
    return result


class DefaultFlagLoader:
    """Apply command line flags to the options they address."""

    def __init__(self, args: Sequence[str]) -> None:
        """Parse ``args`` eagerly so malformed command lines fail early.

        Parameters
        ----------
        args:
            Argument vector without the program name.
        """

        self._values = parse_flag_words(args)

    def values(self) -> Mapping[str, str]:
        """Return the parsed flag pairs."""

        return dict(self._values)

    def apply(self, options: Iterable[Option], *, ignore_unknown: bool = False) -> int:
        """Write the parsed flags into ``options`` and return how many were set.

        Parameters
        ----------
        options:
            Flattened option list (composite parents are skipped).
        ignore_unknown:
            Drop flags that address no option instead of failing.

        Raises
        ------
        FlagError
            When an option is given in short and full form, or when unknown
            flags remain and ``ignore_unknown`` is false.
        CoercionError
            When a flag value does not convert into its option's type.
        """

        pending = dict(self._values)
        applied = 0
        for option in options:
            if option.is_parent:
                continue
            if option.is_map:
                applied += _apply_map_flags(option, pending)
                continue
            full_set = option.full_id in pending
            short_set = option.shorthand is not None and option.shorthand in pending
            if full_set and short_set:
                raise FlagError(f"flag is set with both short and full form: {option.full_id}")
            if not (full_set or short_set):
                continue
            raw = pending.pop(option.full_id) if full_set else pending.pop(option.shorthand)
            set_from_text(option.target, option.type_info, raw, path=option.full_id)
            applied += 1

        if pending and not ignore_unknown:
            raise FlagError(f"unknown flag: {', '.join(sorted(pending))}")
        if pending:
            log_debug("unknown_flags_ignored", **make_event("flags", None, {"keys": sorted(pending)}))
        return applied


def _apply_map_flags(option: Option, pending: dict[str, str]) -> int:
    marker = f"{option.full_id}."
    keys = sorted(key for key in pending if key.startswith(marker) and len(key) > len(marker))
    for key in keys:
        set_map_entry(option.target, option.type_info, key[len(marker):], pending.pop(key), path=option.full_id)
    return len(keys)
