"""Option descriptors produced by the structure builder.

Purpose
-------
Model one configuration field (:class:`Option`), the live handle it writes
through (:class:`FieldHandle`) and the two views of a built tree
(:class:`OptionTree`). Also hosts the declaration helper :func:`setting` and
the identifier derivation :func:`to_kebab`.

Contents
--------
* :func:`setting` – declare a dataclass field together with its metadata.
* :class:`FieldSettings` – parsed view of a field's metadata.
* :func:`to_kebab` – idempotent identifier derivation.
* :class:`FieldHandle` / :class:`Option` / :class:`OptionTree`.

System Role
-----------
The builder creates these objects, every source adapter consumes them. They
hold non-owning references into the caller's record and are discarded once a
load call returns.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Final, Iterable, Iterator, Mapping

from .types import OptionKind, TypeInfo

HIDDEN: Final[str] = "hidden"
"""Option flag that removes an option from the help output."""

METADATA_KEYS: Final[tuple[str, ...]] = ("id", "short", "default", "desc", "opts")

_CAMEL_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[-_\s]+")


def to_kebab(name: str) -> str:
    """Derive a lower-case, hyphen-joined identifier from ``name``.

    Splits on camel-case boundaries, underscores, hyphens and whitespace.
    Applying the function to its own output changes nothing.

    Examples
    --------
    >>> to_kebab("maxRetryCount")
    'max-retry-count'
    >>> to_kebab("HTTPServer_port")
    'http-server-port'
    >>> to_kebab(to_kebab("API key")) == to_kebab("API key")
    True
    """

    spaced = _CAMEL_BOUNDARY.sub("-", name)
    return "-".join(word.lower() for word in _SEPARATORS.split(spaced) if word)


def setting(
    *,
    id: str | None = None,  # noqa: A002 - mirrors the metadata key
    short: str | None = None,
    default: str | None = None,
    desc: str = "",
    opts: str | Iterable[str] = (),
    value: Any = dataclasses.MISSING,
    factory: Callable[[], Any] | Any = dataclasses.MISSING,
) -> Any:
    """Declare a dataclass field carrying configuration metadata.

    Parameters
    ----------
    id:
        Identifier override; defaults to ``to_kebab(field_name)``.
    short:
        Single character shorthand used by the flag source.
    default:
        Default literal, coerced like any other text value.
    desc:
        Help text. A back-quoted word names the value in the help output.
    opts:
        Option flags such as ``"hidden"`` (comma separated or iterable).
    value / factory:
        Initial value or factory. Without either the field starts as ``None``
        and is zero-filled when the option tree is built.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Demo:
    ...     count: int = setting(short="c", default="10", desc="retry `N` times")
    >>> Demo().count is None
    True
    """

    if value is not dataclasses.MISSING and factory is not dataclasses.MISSING:
        raise ValueError("setting() accepts either value or factory, not both")
    metadata = {"id": id, "short": short, "default": default, "desc": desc, "opts": opts}
    if factory is not dataclasses.MISSING:
        return field(default_factory=factory, metadata=metadata)
    return field(default=None if value is dataclasses.MISSING else value, metadata=metadata)


@dataclass(frozen=True)
class FieldSettings:
    """Normalised metadata of one dataclass field."""

    id: str | None = None
    short: str | None = None
    default: str = ""
    default_is_set: bool = False
    desc: str = ""
    opts: frozenset[str] = frozenset()

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any]) -> FieldSettings:
        """Read the known keys from a field's ``metadata`` mapping.

        Examples
        --------
        >>> FieldSettings.from_metadata({"default": 5, "opts": "hidden"})
        FieldSettings(id=None, short=None, default='5', default_is_set=True, desc='', opts=frozenset({'hidden'}))
        """

        raw_default = metadata.get("default")
        return cls(
            id=metadata.get("id"),
            short=metadata.get("short") or None,
            default="" if raw_default is None else str(raw_default),
            default_is_set=raw_default is not None,
            desc=metadata.get("desc") or "",
            opts=_normalise_opts(metadata.get("opts")),
        )


def _normalise_opts(raw: Any) -> frozenset[str]:
    if not raw:
        return frozenset()
    items = raw.split(",") if isinstance(raw, str) else raw
    return frozenset(item.strip() for item in items if item.strip())


@dataclass(frozen=True, eq=False)
class FieldHandle:
    """Live handle on one attribute of a caller-owned record."""

    owner: Any
    name: str

    def get(self) -> Any:
        return getattr(self.owner, self.name)

    def set(self, value: Any) -> None:
        setattr(self.owner, self.name, value)


@dataclass(eq=False)
class Option:
    """One addressable configuration field.

    Attributes
    ----------
    identifier:
        Dot-free slug, unique among siblings.
    full_path:
        Ancestor identifiers followed by :attr:`identifier`.
    type_info:
        Classifier descriptor; :attr:`kind` is read from it.
    target:
        Handle into the caller's record.
    children:
        Nested options of a composite field.
    """

    identifier: str
    full_path: tuple[str, ...]
    type_info: TypeInfo
    target: FieldHandle
    shorthand: str | None = None
    default_literal: str = ""
    default_is_set: bool = False
    description: str = ""
    flags: frozenset[str] = frozenset()
    children: list[Option] = field(default_factory=list)

    @property
    def kind(self) -> OptionKind:
        return self.type_info.kind

    @property
    def full_id(self) -> str:
        return ".".join(self.full_path)

    @property
    def is_parent(self) -> bool:
        return self.kind is OptionKind.COMPOSITE

    @property
    def is_map(self) -> bool:
        return self.kind is OptionKind.MAP

    @property
    def hidden(self) -> bool:
        return HIDDEN in self.flags

    def walk(self) -> Iterator[Option]:
        """Yield this option followed by all descendants, parents first."""

        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"Option({self.full_id!r}, kind={self.kind.name})"


@dataclass(frozen=True)
class OptionTree:
    """Top-level options plus the flattened, parents-first view of all options."""

    options: tuple[Option, ...]
    all_options: tuple[Option, ...]

    def leaves(self) -> list[Option]:
        """Return every option that is not a composite parent."""

        return [option for option in self.all_options if not option.is_parent]

    def find(self, full_id: str) -> Option | None:
        """Return the option addressed by ``full_id`` or ``None``."""

        for option in self.all_options:
            if option.full_id == full_id:
                return option
        return None
