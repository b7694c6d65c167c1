"""Apply decoded configuration mappings onto an option tree.

Purpose
-------
Walk a nested, string-keyed mapping (the output of a file decoder, or a
mapping handed over by the caller) in parallel with the option tree.

Contents
--------
* :func:`apply_mapping` – write matching keys through the coercion layer.
* :func:`decode_record` – build a fresh record from a mapping, rejecting
  unknown keys; used for records inside sequences.

System Role
-----------
The file stage of :mod:`lib_dataclass_config.core` calls :func:`apply_mapping`
with the top-level options; :mod:`lib_dataclass_config.application.coerce`
calls :func:`decode_record` for mapping elements of record sequences.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..domain.errors import CoercionError
from ..domain.options import Option, to_kebab
from .coerce import coerce_value, set_from_value
from .structure import allocate_record, apply_defaults, inspect_structure


def apply_mapping(data: Mapping[Any, Any], options: Iterable[Option], *, strict: bool = False, path: str = "") -> int:
    """Write the values of ``data`` into the options they address.

    Why
    ----
    Configuration files are edited by people: keys written as ``maxRetries``,
    ``max_retries`` or ``max-retries`` should all reach the same option, and keys
    the program does not know yet must not break older binaries.

    What
    ----
    Keys are stringified and normalised with :func:`to_kebab`, then matched
    against the normalised option identifiers of the same level. Records
    recurse, everything else goes through
    :func:`~lib_dataclass_config.application.coerce.set_from_value`.

    ``dict[str, Any]`` options are merged, not replaced: every key of the
    file's mapping overwrites the entry of the same name, entries the file
    does not mention stay in place. Environment variables and flags address
    map entries one key at a time, so all sources share the same rule.

    Parameters
    ----------
    data:
        Decoded mapping for this level.
    options:
        Options of the same level.
    strict:
        Reject keys that address no option.
    path:
        Dotted location of this level, used in error messages.

    Returns
    -------
    int
        Number of leaf options written.
    """

    by_key = {to_kebab(option.identifier): option for option in options}
    applied = 0
    for key, value in data.items():
        option = by_key.get(to_kebab(str(key)))
        if option is None:
            if strict:
                raise CoercionError(str(key), "field name", "no option with this name", path=path)
            continue
        if option.is_parent:
            if not isinstance(value, Mapping):
                raise CoercionError(value, option.type_info.name, "expected a nested mapping", path=option.full_id)
            applied += apply_mapping(value, option.children, strict=strict, path=option.full_id)
        elif option.is_map:
            if not isinstance(value, Mapping):
                raise CoercionError(value, option.type_info.name, "expected a mapping", path=option.full_id)
            _update_map(option, value)
            applied += 1
        else:
            set_from_value(option.target, option.type_info, value, path=option.full_id)
            applied += 1
    return applied


def decode_record(record_type: type, data: Mapping[Any, Any], *, path: str = "") -> Any:
    """Return a new ``record_type`` instance populated from ``data``.

    The instance gets its declared defaults first; unknown keys are an error.
    Error paths are prefixed with ``path`` (for example ``servers[1].port``).
    """

    record = allocate_record(record_type)
    tree = inspect_structure(record)
    apply_defaults(tree)
    try:
        apply_mapping(data, tree.options, strict=True)
    except CoercionError as exc:
        if not path:
            raise
        inner = f"{path}.{exc.path}" if exc.path else path
        raise CoercionError(exc.raw, exc.target_type, exc.reason, path=inner) from exc
    return record


def _update_map(option: Option, value: Mapping[Any, Any]) -> None:
    current = option.target.get()
    if current is None:
        current = {}
        option.target.set(current)
    element = option.type_info.element
    for key, item in value.items():
        current[str(key)] = coerce_value(element, item, path=f"{option.full_id}.{key}")
