"""Usage text rendering.

Purpose
-------
Produce the ``--help`` output for an option tree: one aligned line per
visible leaf option, descriptions wrapped to the terminal width.

Contents
--------
* :func:`render_help` – the renderer (satisfies the ``HelpRenderer`` port).
* :func:`type_string` – short type label used as the default value name.
* :func:`unquote_description` – extract a back-quoted value name.
"""

from __future__ import annotations

import json
import shutil
import sys
import textwrap
from pathlib import Path
from typing import Final, Iterable

from ...domain.options import Option
from ...domain.types import OptionKind, TypeInfo

DEFAULT_HELP_DESCRIPTION: Final[str] = "print this help menu"
DEFAULT_HELP_MESSAGE: Final[str] = "Usage of {prog}:"
_MIN_WRAP: Final[int] = 24


def type_string(info: TypeInfo) -> str:
    """Return the value label shown for an option of type ``info``.

    Examples
    --------
    >>> from lib_dataclass_config.domain.types import UInt16, classify
    >>> type_string(classify(UInt16)), type_string(classify(list[str])), type_string(classify(bytes))
    ('uint', 'string...', 'string')
    """

    if info.kind in (OptionKind.TEXT_CODEC, OptionKind.BYTE_BUFFER):
        return "string"
    if info.kind is OptionKind.SEQUENCE:
        return type_string(info.element) + "..."
    if info.kind is not OptionKind.SCALAR or info.is_dynamic:
        return ""
    if info.base is str:
        return "string"
    if info.base is bool:
        return "bool"
    if info.base is float:
        return "float"
    return "int" if info.int_width.signed else "uint"


def unquote_description(desc: str) -> tuple[str, str]:
    """Split the first back-quoted word out of ``desc``.

    Examples
    --------
    >>> unquote_description("listen on `port` for requests")
    ('port', 'listen on port for requests')
    >>> unquote_description("no name here")
    ('', 'no name here')
    """

    start = desc.find("`")
    if start < 0:
        return "", desc
    end = desc.find("`", start + 1)
    if end < 0:
        return "", desc
    name = desc[start + 1 : end]
    return name, desc[:start] + name + desc[end + 1 :]


def render_help(
    options: Iterable[Option],
    *,
    message: str = "",
    help_description: str = "",
    width: int | None = None,
) -> str:
    """Render the usage text for ``options``.

    Parameters
    ----------
    options:
        Flattened option list; composite parents and hidden options are skipped.
    message:
        First line; defaults to ``Usage of <program>:``.
    help_description:
        Description of the ``-h, --help`` line.
    width:
        Wrap width; defaults to the terminal width.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from lib_dataclass_config.application.structure import inspect_structure
    >>> from lib_dataclass_config.domain.options import setting
    >>> @dataclass
    ... class Demo:
    ...     name: str = setting(short="n", default="demo", desc="service name")
    ...     verbose: bool = setting(desc="chatty output")
    >>> print(render_help(inspect_structure(Demo()).all_options, message="Usage:", width=80))
    Usage:
      -n, --name string  service name (default "demo")
          --verbose      chatty output
      -h, --help         print this help menu
    """

    rows = [_row(option) for option in options if not option.is_parent and not option.hidden]
    rows.append(("  -h, --help", help_description or DEFAULT_HELP_DESCRIPTION))
    head_width = max(len(head) for head, _ in rows)
    indent = head_width + 2
    wrap_width = width if width is not None else shutil.get_terminal_size().columns

    lines = [message or DEFAULT_HELP_MESSAGE.format(prog=Path(sys.argv[0]).name)]
    for head, body in rows:
        lines.append(f"{head.ljust(head_width)}  {_wrap(body, indent, wrap_width)}".rstrip())
    return "\n".join(lines) + "\n"


def _row(option: Option) -> tuple[str, str]:
    if option.shorthand:
        head = f"  -{option.shorthand}, --{option.full_id}"
    else:
        head = f"      --{option.full_id}"

    label = type_string(option.type_info)
    varname, desc = unquote_description(option.description)
    if option.is_map:
        head += ".<key> <value>"
    else:
        if not varname and label != "bool":
            varname = label
        if varname:
            head += f" {varname}"

    if option.default_literal:
        shown = json.dumps(option.default_literal) if label.startswith("string") else option.default_literal
        desc = f"{desc} (default {shown})".lstrip()
    return head, desc


def _wrap(text: str, indent: int, width: int) -> str:
    if not text or width - indent < _MIN_WRAP:
        return text
    return ("\n" + " " * indent).join(textwrap.wrap(text, width=width - indent))
