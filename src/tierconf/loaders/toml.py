"""Toml configuration file loader.

We use :mod:`tomlkit` to parse file.
"""

from __future__ import annotations

import tomlkit
from tomlkit.exceptions import TOMLKitError

from tierconf.types import ConfigParsingError
from tierconf.value import Value, to_value

from .core import FileLoader


class TomlkitLoader(FileLoader):
    """Load config from TOML files using tomlkit library."""

    extensions = ["toml"]
    format_name = "TOML"

    @classmethod
    def parse(cls, content: bytes) -> Value:
        """Parse TOML content.

        Tables are unwrapped into plain python objects. Dates and times are converted
        to ISO-8601 strings.
        """
        try:
            document = tomlkit.parse(content.decode("utf-8"))
        except (TOMLKitError, ValueError) as err:
            raise ConfigParsingError(str(err)) from err

        return to_value(document.unwrap())
