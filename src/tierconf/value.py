"""Value tree shared by all configuration sources.

Every source produces a tree of plain Python objects before anything is decoded
into a :class:`~tierconf.section.Section`:

* ``None``, ``bool``, ``int``, ``float`` and ``str`` leaves,
* ``list`` for sequences,
* ``dict`` with string keys for maps.

Trees from different sources are combined with :func:`merge`.
"""

from __future__ import annotations

import datetime
import json
import math
import re
import typing as t
from collections import abc
from copy import deepcopy

from traitlets.utils.sentinel import Sentinel

Value: t.TypeAlias = (
    None | bool | int | float | str | list["Value"] | dict[str, "Value"]
)

_INT_RGX = re.compile(r"[+-]?[0-9]+")
_FLOAT_RGX = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

MISSING = Sentinel("MISSING", "tierconf", "No value found at this path.")
""":class:`traitlets.Sentinel<traitlets.utils.sentinel.Sentinel>` returned for
absent paths.

Allows to separate them from a present ``None``.
"""


def merge(base: Value, overlay: Value) -> Value:
    """Deep-merge `overlay` on top of `base`.

    If both are maps, keys of both are kept. For a key present in both, the values
    are merged recursively if they are both maps, otherwise the overlay value
    replaces the base one. Sequences are replaced, never concatenated.

    If either side is not a map, the overlay wins.

    Neither argument is modified.
    """
    if not (isinstance(base, dict) and isinstance(overlay, dict)):
        return deepcopy(overlay)

    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = merge(existing, value)
        else:
            out[key] = deepcopy(value)
    return out


def get_nested_value(tree: Value, path: str) -> t.Any:
    """Return value at dot-separated `path`.

    Returns :data:`MISSING` if a component is absent or an intermediate node is not a
    map.
    """
    current = tree
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return MISSING
        current = current[key]
    return current


def set_nested_value(tree: dict[str, Value], path: str, value: Value) -> None:
    """Insert `value` at dot-separated `path`, in place.

    Intermediate maps are created as needed. An intermediate node that is not a map
    is replaced by one.
    """
    *parents, last = path.split(".")
    current = tree
    for key in parents:
        node = current.get(key)
        if not isinstance(node, dict):
            node = {}
            current[key] = node
        current = node
    current[last] = value


def parse_scalar(raw: str) -> Value:
    """Parse a raw string from the environment or command line.

    Try in order: boolean (``true``/``false``), integer, float, and if the string is
    delimited by brackets or braces a JSON array or object. If everything fails, the
    string is returned as is.

    Numeric-looking strings are always converted to numbers. Only plain ASCII
    notation counts: surrounding whitespace, underscores (``1_000``), ``nan`` or
    ``inf`` leave the string untouched.
    """
    if raw == "true":
        return True
    if raw == "false":
        return False

    if _INT_RGX.fullmatch(raw):
        return int(raw)

    if _FLOAT_RGX.fullmatch(raw):
        number = float(raw)
        # overflows to infinity
        if math.isfinite(number):
            return number

    stripped = raw.strip()
    if (stripped.startswith("[") and stripped.endswith("]")) or (
        stripped.startswith("{") and stripped.endswith("}")
    ):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass

    return raw


def to_value(obj: t.Any) -> Value:
    """Convert the output of a file parser to a plain value tree.

    Mappings (including ruamel and tomlkit containers) become dicts with string keys,
    tuples and sets become lists, dates and times become ISO-8601 strings.
    """
    if obj is None or isinstance(obj, bool | str):
        return obj
    if isinstance(obj, int):
        return int(obj)
    if isinstance(obj, float):
        return float(obj)
    if isinstance(obj, datetime.date | datetime.time):
        return obj.isoformat()
    if isinstance(obj, abc.Mapping):
        return {str(k): to_value(v) for k, v in obj.items()}
    if isinstance(obj, abc.Set):
        return [to_value(v) for v in obj]
    if isinstance(obj, abc.Sequence):
        return [to_value(v) for v in obj]
    raise TypeError(f"Cannot represent {type(obj).__name__} in configuration.")


def format_value(value: t.Any) -> str:
    """Return a short description of a value, for help messages."""
    if value is MISSING:
        return "unset"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return "{object}"
    return str(value)
