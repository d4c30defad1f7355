"""Section: schema of a configuration, and target of the decoding.

Defines a :class:`Section` class holding configurable values as
:class:`traits<traitlets.TraitType>`. Other Section classes can be set as attributes
to describe nested configurations.

A section class describes itself with :meth:`Section.config_meta`, which is all the
loaders ever look at. Once sources are merged, :func:`decode` instantiates the class
from the value tree and lets traitlets validate every value.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import replace
from typing import Any, Generic, Self, TypeVar, overload

from traitlets import (
    Bool,
    Dict,
    Enum,
    Float,
    HasTraits,
    Int,
    List,
    Set,
    TraitError,
    TraitType,
    Tuple,
    Unicode,
)

from .meta import ConfigMeta, FieldKind, FieldMeta, correct_paths, find_missing_required
from .types import DecodeError, UnknownConfigKeyError
from .utils import did_you_mean
from .value import MISSING, Value, get_nested_value

log = logging.getLogger(__name__)

S = TypeVar("S", bound="Section")

_line = "╴"
_branch = "├" + _line
_elbow = "└" + _line
_branch_subsection = "┝" + "━" * len(_line) + "┑"
_elbow_subsection = "┕" + "━" * len(_line) + "┑"
_pipe = "│" + " " * len(_line)
_blank = " " * len(_pipe)


class Subsection(Generic[S]):
    """Descriptor for subsection.

    I do not use traitlets.Instance because it initializes eagerly, I would prefer to
    wait before initializing recursively all subsections.

    Parameters
    ----------
    section
        Section class of the subsection.
    optional
        If True, the subsection can be absent from the configuration and will then be
        None.
    has_default
        If True, the subsection fields are never demanded from the command line even
        if they are missing: missing values are left to their defaults.
    skip
        Never source the subsection from environment or command line.
    help
        Short description.
    """

    klass: type[S]
    private_name: str

    def __init__(
        self,
        section: type[S],
        optional: bool = False,
        has_default: bool = False,
        skip: bool = False,
        help: str = "",
    ) -> None:
        self.klass = section
        self.optional = optional
        self.has_default = has_default
        self.skip = skip
        self.help = help

    def __set_name__(self, owner: type[S], name: str) -> None:
        self.private_name = "__" + name

    @overload
    def __get__(self, obj: None, owner: type[Any]) -> Self: ...

    @overload
    def __get__(self, obj: Section, owner: type[Any]) -> S | None: ...

    def __get__(self, obj: Section | None, owner: type[Any]) -> Self | S | None:
        if obj is None:
            return self
        if not hasattr(obj, self.private_name):
            raise AttributeError(
                f"Subsection {self.private_name} has not been initialized."
            )
        return getattr(obj, self.private_name)

    def __set__(self, obj: Section, value: S | None) -> None:
        if value is None and not self.optional:
            raise TraitError(
                f"Subsection '{self.private_name[2:]}' of "
                f"{type(obj).__name__} cannot be None."
            )
        setattr(obj, self.private_name, value)


class Section(HasTraits):
    """Object holding configurable values.

    The main features of this class are:

    * all traits are automatically tagged as configurable (``.tag(config=True)``),
      unless already tagged.
    * Any nested class definition (subclass of Section) will be considered as a
      subsection whose name is that of the class. The class definition will be kept
      under another attribute name (``_{subsection}SectionDef``).
    * Subsections can also be declared explicitly with a :class:`Subsection`
      descriptor, which allows to make them optional.

    Traits can be tagged to change how they are sourced:

    * ``skip=True``: never read from environment variables or command line,
    * ``flag="name"``: use this long flag on the command line,
    * ``has_default=True/False``: override the detection of a declared default.
    """

    _subsections: dict[str, Subsection] = {}
    """Mapping of subsections descriptors."""

    _dynamic_subsections = True
    """Allow dynamic definition of subsections.

    Nested class definitions will be converted to subsections.
    """

    def __init_subclass__(cls, /, **kwargs: Any) -> None:
        """Call :meth:`_setup_section`."""
        super().__init_subclass__(**kwargs)
        cls._setup_section()

    @classmethod
    def _setup_section(cls) -> None:
        """Set up the class after definition.

        This hook is run in :meth:`__init_subclass__`, after any subclass of
        :class:`Section` is defined.
        """
        cls._subsections = {}
        classdict = cls.__dict__
        to_add: dict[str, Any] = {}

        for k, v in classdict.items():
            # tag traits as configurable
            if isinstance(v, TraitType):
                if v.metadata.get("config", True):
                    v.tag(config=True)

            if (
                cls._dynamic_subsections
                and isinstance(v, type)
                and issubclass(v, Section)
                and v.__qualname__ == f"{cls.__qualname__}.{v.__name__}"
            ):
                # change location of class definition
                new_name = f"_{k}SectionDef"
                v.__name__ = new_name
                v.__qualname__ = f"{cls.__qualname__}.{new_name}"
                to_add[new_name] = v
                subsec = Subsection(v)
                subsec.__set_name__(cls, k)
                to_add[k] = subsec

        for k, v in to_add.items():
            setattr(cls, k, v)

        # register subsections
        for k, v in classdict.items():
            if isinstance(v, Subsection):
                cls._subsections[k] = v

        # add ancestors subsections
        for base in cls.__bases__:
            if issubclass(base, Section):
                cls._subsections = base._subsections | cls._subsections

        cls.setup_class(classdict)  # type: ignore

    def __init__(self, config: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Initialize section.

        Parameters
        ----------
        config
            Flat dictionary containing values for the traits of this section, and
            its subsections (with dot-separated keys). If a value is missing, the trait
            default value is used. A subsection name mapped to None leaves that
            (optional) subsection unset.
        """
        self._name: str = ""

        if config is None:
            config = {}

        config = dict(config)  # copy
        config |= kwargs

        with self.hold_trait_notifications():
            self._init_direct_traits(config)
        self._init_subsections(config)

        if config:
            raise KeyError(
                f"Extra parameters for {self.__class__.__name__} {list(config.keys())}"
            )

        self.postinit()

    def _init_direct_traits(self, config: dict[str, Any]) -> None:
        for name in self.trait_names(config=True):
            if name in config:
                setattr(self, name, config.pop(name))

    def _init_subsections(self, config: dict[str, Any]) -> None:
        for name, subsection in self._subsections.items():
            if name in config and config.pop(name) is None:
                setattr(self, name, None)
                continue

            prefix = f"{name}."
            subconfig = {k: v for k, v in config.items() if k.startswith(prefix)}
            for k in subconfig:
                config.pop(k)
            subconfig = {k.removeprefix(prefix): v for k, v in subconfig.items()}
            instance = subsection.klass(subconfig)
            instance._name = name
            setattr(self, name, instance)

    def postinit(self) -> None:
        """Run any instructions after instantiation.

        This allows to set/modify traits depending on other traits values.
        """
        pass

    # - Schema

    @classmethod
    def config_meta(cls) -> ConfigMeta:
        """Return the schema of this section, subsections included."""
        fields = [
            _trait_meta(cls, name, trait)
            for name, trait in cls.class_traits(config=True).items()
        ]

        for name, subsection in cls._subsections.items():
            submeta = subsection.klass.config_meta()
            submeta = replace(submeta, fields=correct_paths(submeta.fields, name))
            fields.append(
                FieldMeta(
                    name=name,
                    path=name,
                    kind=FieldKind.NESTED,
                    required=not subsection.optional,
                    has_default=subsection.has_default,
                    skip=subsection.skip,
                    help=subsection.help,
                    meta=submeta,
                )
            )

        return ConfigMeta(cls.__name__, fields)

    # - Access

    def __str__(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return "\n".join(self._get_lines())

    def _get_lines(self, header: str = "") -> list[str]:
        lines = [self.__class__.__name__]
        traits = self.traits(config=True)
        for i, (key, trait) in enumerate(traits.items()):
            is_last = i == len(traits) - 1 and not self._subsections
            symb = _elbow if is_last else _branch
            value = trait.get(self)
            line = f"{header}{symb}{key}: {value!r}"
            if value != trait.default():
                line += f"  (default: {trait.default()!r})"
            lines.append(line)

        for i, name in enumerate(self._subsections):
            lines.append(header + _pipe)
            is_last = i == len(self._subsections) - 1
            symb = _elbow_subsection if is_last else _branch_subsection

            subsection: Section | None = getattr(self, name, None)
            if subsection is None:
                lines.append(f"{header}{symb}{name}: None")
                continue

            sublines = subsection._get_lines(header + (_blank if is_last else _pipe))
            sublines[0] = f"{header}{symb}{name}:"
            lines += sublines

        return lines

    def keys(self) -> list[str]:
        """Return dot-separated keys of all traits, subsections included."""
        keys = list(self.trait_names(config=True))
        for name in self._subsections:
            subsection = getattr(self, name)
            if subsection is not None:
                keys += [f"{name}.{k}" for k in subsection.keys()]
        return keys

    def __getitem__(self, key: str) -> Any:
        """Obtain value at dot-separated `key`."""
        fullpath = key.split(".")
        subsection: Any = self
        for i, name in enumerate(fullpath):
            if isinstance(subsection, Section):
                if name in subsection._subsections:
                    subsection = getattr(subsection, name)
                    continue
                if i == len(fullpath) - 1 and name in subsection.trait_names(
                    config=True
                ):
                    return getattr(subsection, name)

            msg = f"Could not resolve key '{key}'"
            if isinstance(subsection, Section):
                suggestions = list(subsection.trait_names(config=True))
                suggestions += list(subsection._subsections)
                if (suggestion := did_you_mean(suggestions, name)) is not None:
                    suggestion_fullkey = ".".join([*fullpath[:i], suggestion])
                    msg += f" (did you mean '{suggestion_fullkey}'?)"
            raise KeyError(msg)

        return subsection

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __eq__(self, other: Any) -> bool:
        """Check equality with other section.

        If *other* is not a Section, will return False. Both section must have the same
        type and same values.
        """
        if not isinstance(other, Section) or type(self) is not type(other):
            return False
        return self.as_dict() == other.as_dict()

    def __ne__(self, other: Any) -> bool:
        return not self == other

    __hash__ = None  # type: ignore[assignment]

    def as_dict(self) -> dict[str, Any]:
        """Return nested dictionary of values."""
        out: dict[str, Any] = {
            name: getattr(self, name) for name in self.trait_names(config=True)
        }
        for name in self._subsections:
            subsection = getattr(self, name)
            out[name] = None if subsection is None else subsection.as_dict()
        return out


def _trait_kind(trait: TraitType | None) -> FieldKind:
    if isinstance(trait, Bool):
        return FieldKind.BOOL
    if isinstance(trait, Int):
        return FieldKind.INT
    if isinstance(trait, Float):
        return FieldKind.FLOAT
    if isinstance(trait, Unicode):
        return FieldKind.STRING
    if isinstance(trait, Enum):
        values = trait.values or []
        if values and all(isinstance(v, str) for v in values):
            return FieldKind.STRING
        return FieldKind.OTHER
    if isinstance(trait, List | Set | Tuple):
        return FieldKind.SEQUENCE
    if isinstance(trait, Dict):
        return FieldKind.MAPPING
    return FieldKind.OTHER


def _declares_default(cls: type[HasTraits], name: str, trait: TraitType) -> bool:
    """Return if a default value was explicitly declared for a trait.

    Either passed to the trait (``Int(2)``, ``List([0])``), or generated dynamically
    with :func:`traitlets.default`.
    """
    if "has_default" in trait.metadata:
        return bool(trait.metadata["has_default"])
    if "default_value" in vars(trait):
        return True
    if getattr(trait, "default_args", None) or getattr(trait, "default_kwargs", None):
        return True
    for klass in cls.mro():
        classdict = vars(klass)
        if f"_{name}_default" in classdict:
            return True
        if name in classdict.get("_trait_default_generators", {}):
            return True
    return False


def _trait_meta(cls: type[Section], name: str, trait: TraitType) -> FieldMeta:
    kind = _trait_kind(trait)
    item_kind = None
    if kind is FieldKind.SEQUENCE:
        item_kind = _trait_kind(getattr(trait, "_trait", None))

    return FieldMeta(
        name=name,
        path=name,
        kind=kind,
        required=not trait.allow_none,
        has_default=_declares_default(cls, name, trait),
        skip=bool(trait.metadata.get("skip", False)),
        flag=trait.metadata.get("flag", None),
        help=(trait.help or "").strip().split("\n")[0],
        item_kind=item_kind,
    )


def unknown_keys(meta: ConfigMeta, tree: Value) -> list[str]:
    """Return dot-separated keys of `tree` that lead to no field of `meta`."""
    known = {f.path: f for f in meta.walk()}
    out: list[str] = []

    def recurse(node: dict[str, Value], prefix: str) -> None:
        for key, value in node.items():
            path = f"{prefix}{key}"
            field = known.get(path)
            if field is None:
                out.append(path)
            elif field.nested and isinstance(value, dict):
                recurse(value, f"{path}.")

    if isinstance(tree, dict):
        recurse(tree, "")
    return out


def decode(section_cls: type[S], tree: Value, strict: bool = False) -> S:
    """Instantiate `section_cls` from a merged value tree.

    Parameters
    ----------
    section_cls
        Target section class.
    tree
        Merged value tree. It must be a mapping.
    strict
        If True, keys that do not lead to a known field are an error. Otherwise they
        are only logged and ignored.

    Raises
    ------
    DecodeError
        If the tree does not fit the section: a nested section is not a mapping,
        required fields without default are missing (skipped fields included), a
        value is rejected by its trait, or (with `strict`) unknown keys are present.
    """
    type_name = section_cls.__name__
    if not isinstance(tree, dict):
        raise DecodeError(type_name, f"expected a mapping, got {type(tree).__name__}")

    meta = section_cls.config_meta()

    _check_nested_shapes(type_name, meta, tree)

    # skipped fields can still come from files
    missing = find_missing_required(meta, tree, include_skipped=True)
    if missing:
        raise DecodeError(
            type_name, f"missing required field(s) {', '.join(sorted(missing))}"
        )

    for key in unknown_keys(meta, tree):
        msg = f"Unknown configuration key '{key}'"
        if (suggestion := did_you_mean(meta.paths(), key)) is not None:
            msg += f" (did you mean '{suggestion}'?)"
        if strict:
            raise DecodeError(type_name, UnknownConfigKeyError(msg))
        log.warning("%s, ignoring it.", msg)

    flat: dict[str, Any] = {}
    _flatten(meta, tree, flat)

    try:
        return section_cls(flat)
    except (TraitError, KeyError, TypeError, ValueError) as err:
        raise DecodeError(type_name, err) from err


def _check_nested_shapes(type_name: str, meta: ConfigMeta, tree: Value) -> None:
    for field in meta.fields:
        if field.meta is None:
            continue
        value = get_nested_value(tree, field.path)
        if value is MISSING or value is None:
            continue
        if not isinstance(value, dict):
            raise DecodeError(
                type_name,
                f"{field.path}: expected a mapping, got {type(value).__name__}",
            )
        _check_nested_shapes(type_name, field.meta, tree)


def _flatten(meta: ConfigMeta, tree: Value, flat: dict[str, Any]) -> None:
    for field in meta.fields:
        value = get_nested_value(tree, field.path)
        if field.meta is None:
            if value is not MISSING:
                flat[field.path] = value
        elif value is None or (value is MISSING and not field.required):
            # refused by the subsection descriptor if it is not optional
            flat[field.path] = None
        else:
            _flatten(field.meta, tree, flat)
