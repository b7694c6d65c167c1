"""Option tree builder and default application.

Purpose
-------
Walk a dataclass instance recursively and produce the :class:`OptionTree`
every source adapter works on, enforcing the structural invariants before any
input is read.

Contents
--------
* :func:`inspect_structure` – entry point returning both tree views.
* :func:`options_from_record` – one level of options, recursing into records.
* :func:`option_from_field` – one :class:`Option` from one dataclass field.
* :func:`apply_defaults` – write declared default literals into zero fields.
* :func:`allocate_record` – construct a nested record without arguments.

System Role
-----------
Called once per load by :mod:`lib_dataclass_config.core` and once per
decoded sequence element by :func:`lib_dataclass_config.application.mapping.decode_record`.
All failures are :class:`StructureError`, never :class:`ConfigError`.
"""

from __future__ import annotations

import dataclasses
from collections import Counter
from typing import Any, Iterable

from ..domain.errors import CoercionError, StructureError, UnsupportedTypeError
from ..domain.options import FieldHandle, FieldSettings, Option, OptionTree, to_kebab
from ..domain.types import OptionKind, TypeInfo, classify, public_fields, record_type_hints
from .coerce import set_from_text


def inspect_structure(record: Any) -> OptionTree:
    """Build the option tree for the dataclass instance ``record``.

    Why
    ----
    Duplicate identifiers, duplicate shorthands and unsupported field types are
    mistakes in the program, not in its input. Discovering them here means they
    fail every run, even one that passes no configuration at all.

    What
    ----
    Derives one :class:`Option` per public field (recursing into nested
    records), zero-fills unset fields, allocates nested records, checks sibling
    identifiers per level and shorthands across the whole tree.

    Returns
    -------
    OptionTree
        ``options`` holds the top level, ``all_options`` every option with
        parents listed before their children.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from lib_dataclass_config.domain.options import setting
    >>> @dataclass
    ... class App:
    ...     port: int = setting(default="8080")
    ...     debug: bool = setting(short="d")
    >>> app = App()
    >>> tree = inspect_structure(app)
    >>> [option.full_id for option in tree.all_options]
    ['port', 'debug']
    >>> app.port, app.debug
    (0, False)
    >>> inspect_structure(App)
    Traceback (most recent call last):
    ...
    lib_dataclass_config.domain.errors.StructureError: expected a dataclass instance, got the class App
    """

    if isinstance(record, type):
        raise StructureError(f"expected a dataclass instance, got the class {record.__name__}")
    if not dataclasses.is_dataclass(record):
        raise StructureError(f"expected a dataclass instance, got {type(record).__name__}")

    options = options_from_record(record)
    all_options = tuple(option for top in options for option in top.walk())
    _check_shorthands(all_options)
    return OptionTree(tuple(options), all_options)


def options_from_record(record: Any, parent_path: tuple[str, ...] = ()) -> list[Option]:
    """Return the options of one record level; unexported fields are skipped."""

    record_type = type(record)
    if record_type.__dataclass_params__.frozen:
        raise StructureError(f"record type {record_type.__name__} is frozen and cannot be populated")
    hints = record_type_hints(record_type)
    options = [option_from_field(record, item, hints[item.name], parent_path) for item in public_fields(record_type)]
    _check_siblings(options)
    return options


def option_from_field(
    owner: Any,
    item: dataclasses.Field,
    annotation: Any,
    parent_path: tuple[str, ...] = (),
) -> Option:
    """Create the :class:`Option` describing ``owner.<item.name>``.

    The field is prepared as a write target on the way: ``None`` values become
    the zero value of the type, nested records are allocated and their children
    built.
    """

    settings = FieldSettings.from_metadata(item.metadata)
    identifier = settings.id if settings.id is not None else to_kebab(item.name)
    if not identifier or "." in identifier:
        raise StructureError(f"invalid identifier {identifier!r} for field {item.name}")
    if settings.short is not None and len(settings.short) != 1:
        raise StructureError(f"shorthand {settings.short!r} of field {item.name} must be a single character")

    try:
        info = classify(annotation)
    except UnsupportedTypeError as exc:
        raise StructureError(f"type of field {item.name} ({_describe(annotation)}) is not supported: {exc.reason}") from exc

    path = parent_path + (identifier,)
    if info.kind is OptionKind.COMPOSITE and settings.default_is_set:
        raise StructureError(f"default value is not supported on composite field '{'.'.join(path)}'")

    handle = FieldHandle(owner, item.name)
    _prepare_target(handle, info, path)
    option = Option(
        identifier=identifier,
        full_path=path,
        type_info=info,
        target=handle,
        shorthand=settings.short,
        default_literal=settings.default,
        default_is_set=settings.default_is_set,
        description=settings.desc,
        flags=settings.opts,
    )
    if info.kind is OptionKind.COMPOSITE:
        option.children = options_from_record(handle.get(), path)
    elif info.kind is OptionKind.SEQUENCE:
        _probe_sequence_element(info, path)
    return option


def apply_defaults(options: OptionTree | Iterable[Option]) -> int:
    """Write each declared default into its field while the field is still zero.

    Non-zero values set by the caller before loading win over defaults. A
    literal that does not coerce into its field is a structural error.

    Returns
    -------
    int
        Number of defaults written.
    """

    flattened = options.all_options if isinstance(options, OptionTree) else [o for top in options for o in top.walk()]
    applied = 0
    for option in flattened:
        if not option.default_is_set or not option.type_info.is_zero(option.target.get()):
            continue
        try:
            set_from_text(option.target, option.type_info, option.default_literal, path=option.full_id)
        except CoercionError as exc:
            raise StructureError(f"invalid default value for option '{option.full_id}': {exc}") from exc
        applied += 1
    return applied


def allocate_record(record_type: type, path: tuple[str, ...] = ()) -> Any:
    """Construct ``record_type`` without arguments or raise :class:`StructureError`."""

    try:
        return record_type()
    except TypeError as exc:
        where = f" for option '{'.'.join(path)}'" if path else ""
        raise StructureError(f"record type {record_type.__name__}{where} cannot be constructed without arguments: {exc}") from exc


def _prepare_target(handle: FieldHandle, info: TypeInfo, path: tuple[str, ...]) -> None:
    current = handle.get()
    if info.kind is OptionKind.COMPOSITE:
        if current is None:
            handle.set(allocate_record(info.base, path))
        elif not isinstance(current, info.base):
            raise StructureError(f"field '{'.'.join(path)}' holds {type(current).__name__}, expected {info.base.__name__}")
    elif current is None and (info.kind is OptionKind.MAP or not info.optional):
        handle.set({} if info.kind is OptionKind.MAP else info.zero())


def _probe_sequence_element(info: TypeInfo, path: tuple[str, ...]) -> None:
    element = info.element
    while element.kind is OptionKind.SEQUENCE:
        element = element.element
    if element.kind is OptionKind.COMPOSITE:
        inspect_structure(allocate_record(element.base, path))


def _check_siblings(options: list[Option]) -> None:
    counts = Counter(option.identifier for option in options)
    for option in options:
        if counts[option.identifier] > 1:
            raise StructureError(f"duplicate option identifier '{option.full_id}'")


def _check_shorthands(options: Iterable[Option]) -> None:
    seen: dict[str, str] = {}
    for option in options:
        if option.shorthand is None:
            continue
        if option.shorthand in seen:
            raise StructureError(
                f"duplicate shorthand '{option.shorthand}' on options '{seen[option.shorthand]}' and '{option.full_id}'"
            )
        seen[option.shorthand] = option.full_id


def _describe(annotation: Any) -> str:
    return annotation.__name__ if isinstance(annotation, type) else repr(annotation)
