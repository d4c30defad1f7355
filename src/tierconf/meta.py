"""Field metadata describing a configuration schema.

A schema is a :class:`ConfigMeta`: an ordered list of :class:`FieldMeta`. Nested
sections are fields with ``nested=True`` that own their own :class:`ConfigMeta`,
whose fields paths are already prefixed by the parent path (see
:func:`correct_paths`). Every consumer walks this tree recursively.

The metadata is produced by :meth:`.Section.config_meta`, the rest of the package
only reads it.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

from .value import MISSING, Value, get_nested_value


class FieldKind(enum.Enum):
    """Shape of the values a field accepts.

    Informs how raw strings from the environment or command line are handled.
    """

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    NESTED = "nested"
    OTHER = "other"


@dataclass(frozen=True)
class FieldMeta:
    """Description of a single configuration field."""

    name: str
    """Name of the field in its section."""
    path: str
    """Dot-separated path, unique within the whole schema."""
    kind: FieldKind = FieldKind.OTHER
    """Shape of the values."""
    required: bool = True
    """True if the field does not accept None."""
    has_default: bool = False
    """True if the schema declares a default value."""
    skip: bool = False
    """Never source this field from environment or command line."""
    flag: str | None = None
    """Explicit command line flag name."""
    help: str = ""
    """Short description."""
    item_kind: FieldKind | None = None
    """Kind of items for sequence fields."""
    meta: ConfigMeta | None = None
    """Sub-schema for nested fields."""

    @property
    def nested(self) -> bool:
        """Whether this field holds a nested section."""
        return self.meta is not None

    @property
    def is_string(self) -> bool:
        """Whether raw strings must be kept as is."""
        return self.kind is FieldKind.STRING


@dataclass(frozen=True)
class ConfigMeta:
    """Schema of a configuration section."""

    name: str
    fields: list[FieldMeta] = field(default_factory=list)

    def walk(self) -> Iterator[FieldMeta]:
        """Iterate over all fields, depth first, parents before their children."""
        for f in self.fields:
            yield f
            if f.meta is not None:
                yield from f.meta.walk()

    def sourceable(self) -> Iterator[FieldMeta]:
        """Iterate over fields that can be read from environment or command line.

        Skipped fields are left out, and so are all the fields of a skipped nested
        section.
        """
        for f in self.fields:
            if f.skip:
                continue
            yield f
            if f.meta is not None:
                yield from f.meta.sourceable()

    def paths(self) -> list[str]:
        """Return the paths of all fields."""
        return [f.path for f in self.walk()]

    def get(self, path: str) -> FieldMeta:
        """Return field at `path`.

        Raises
        ------
        KeyError
            No field with this path.
        """
        for f in self.walk():
            if f.path == path:
                return f
        raise KeyError(f"No field '{path}' in {self.name}.")


def correct_paths(fields: Iterable[FieldMeta], parent: str) -> list[FieldMeta]:
    """Return copies of `fields` with paths prefixed by `parent`.

    Sub-schemas of nested fields are corrected as well.
    """
    out = []
    for f in fields:
        meta = f.meta
        if meta is not None:
            meta = replace(meta, fields=correct_paths(meta.fields, parent))
        out.append(replace(f, path=f"{parent}.{f.path}", meta=meta))
    return out


def find_missing_required(
    meta: ConfigMeta, tree: Value, include_skipped: bool = False
) -> set[str]:
    """Return paths of required fields that are still missing from `tree`.

    A field is missing if it is not skipped (unless `include_skipped`), required, has
    no default, and is absent or null in the tree. Nested sections that are present
    are checked recursively. An absent required nested section (without default) has
    its own fields checked against an empty tree; the section itself is never
    reported.

    Parameters
    ----------
    meta
        Schema to check.
    tree
        Value tree merged from the sources read so far. Paths in the schema are
        absolute, so this is always the root of the tree.
    include_skipped
        Also check skipped fields. They cannot be read from environment or command
        line, but the final configuration still needs them.
    """
    missing: set[str] = set()
    _collect_missing(meta, tree, missing, include_skipped)
    return missing


def _collect_missing(
    meta: ConfigMeta, tree: Value, missing: set[str], include_skipped: bool
) -> None:
    for f in meta.fields:
        if f.skip and not include_skipped:
            continue

        value = get_nested_value(tree, f.path)
        present = value is not MISSING and value is not None

        if f.meta is not None:
            # when absent, children paths will not be found either
            if present or (f.required and not f.has_default):
                _collect_missing(f.meta, tree, missing, include_skipped)
            continue

        if not present and f.required and not f.has_default:
            missing.add(f.path)
