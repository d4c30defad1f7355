"""Configuration loaders bases."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from os import path

from tierconf.meta import ConfigMeta, FieldKind, FieldMeta
from tierconf.types import ConfigIOError, ConfigParsingError
from tierconf.value import Value, parse_scalar


def parse_field_string(field: FieldMeta, raw: str) -> Value:
    """Convert a raw string for a field.

    Strings fields keep the raw string. Everything else goes through
    :func:`~tierconf.value.parse_scalar`.
    """
    if field.is_string:
        return raw
    return parse_scalar(raw)


def parse_item_string(field: FieldMeta, raw: str) -> Value:
    """Convert a raw string for one item of a sequence field."""
    if field.item_kind is FieldKind.STRING:
        return raw
    return parse_scalar(raw)


def flat_keys(tree: Value, prefix: str = "") -> Iterator[str]:
    """Iterate over dot-separated keys of the leaves of a tree."""
    if not isinstance(tree, dict):
        return
    for k, v in tree.items():
        key = f"{prefix}{k}"
        if isinstance(v, dict) and v:
            yield from flat_keys(v, f"{key}.")
        else:
            yield key


class ConfigLoader:
    """Abstract ConfigLoader.

    Define the public API used by the :class:`~tierconf.application.Loader`. Each
    loader produces a fresh value tree from its source.

    Parameters
    ----------
    meta
        Schema of the configuration. Loaders that do not depend on the schema (files)
        can do without.
    log
        Logger instance.
    """

    origin: str = ""
    """Description of the configuration source, for information purpose."""

    def __init__(
        self, meta: ConfigMeta | None = None, log: logging.Logger | None = None
    ):
        self.meta = meta
        if log is None:
            log = logging.getLogger(__name__)
        self.log = log

    def get_config(self, *args, **kwargs) -> dict[str, Value]:
        """Load and return the configuration tree.

        Parameters
        ----------
        args, kwargs
            Passed to :meth:`load_config`.
        """
        config = self.load_config(*args, **kwargs)
        keys = list(flat_keys(config))
        if keys:
            self.log.debug(
                "Found config keys from %s: %s", self.origin, ", ".join(keys)
            )
        return config

    def load_config(self, *args, **kwargs) -> dict[str, Value]:
        """Return the configuration tree from a source.

        :Not implemented:
        """
        raise NotImplementedError


def read_file(filename: str) -> bytes:
    """Return the raw content of a file.

    Raises
    ------
    ConfigIOError
        If the file cannot be read.
    """
    try:
        with open(filename, "rb") as fp:
            return fp.read()
    except OSError as err:
        raise ConfigIOError(f"Could not read config file {filename}: {err}") from err


class FileLoader(ConfigLoader):
    """Load config from a file.

    Common logic goes here. Subclasses implement :meth:`parse`.

    Parameters
    ----------
    filename
        Path of configuration file to load.
    """

    extensions: list[str] = []
    """File extensions that are supported by this loader."""

    format_name: str = ""
    """Name of the format, for messages."""

    def __init__(self, filename: str, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.filename = filename
        self.full_filename = path.abspath(filename)
        self.origin = filename

    @classmethod
    def can_load(cls, filename: str) -> bool:
        """Return if this loader class is appropriate for this config file.

        Only check supported file extensions.
        """
        _, ext = path.splitext(filename)
        return ext.lstrip(".").lower() in cls.extensions

    @classmethod
    def parse(cls, content: bytes) -> Value:
        """Parse raw content of a file into a value tree.

        :Not implemented:

        Raises
        ------
        ConfigParsingError
            If the content is not valid for this format.
        """
        raise NotImplementedError

    def load_config(self, content: bytes | None = None) -> dict[str, Value]:
        """Return the configuration tree from the file.

        Parameters
        ----------
        content
            Content of the file if already read.

        Raises
        ------
        ConfigParsingError
            If the content cannot be parsed or is not a mapping.
        """
        if content is None:
            content = read_file(self.full_filename)

        try:
            data = self.parse(content)
        except ConfigParsingError as err:
            raise ConfigParsingError(
                f"Could not parse {self.filename} as {self.format_name}: {err}"
            ) from err

        if not isinstance(data, dict):
            raise ConfigParsingError(
                f"Configuration in {self.filename} must be a mapping, "
                f"found {type(data).__name__}."
            )
        return data
