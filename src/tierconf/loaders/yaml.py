"""Yaml configuration file loader.

This uses :mod:`ruamel.yaml`.
"""

from __future__ import annotations

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from tierconf.types import ConfigParsingError
from tierconf.value import Value, to_value

from .core import FileLoader


class YamlLoader(FileLoader):
    """Loader for Yaml files."""

    extensions = ["yaml", "yml"]
    format_name = "YAML"

    @classmethod
    def setup_yaml(cls) -> YAML:
        """Return the YAML instance used for parsing.

        You can customize the yaml parsing here. The safe loader only produces plain
        python objects, and duplicate keys are not allowed.
        """
        yaml = YAML(typ="safe", pure=True)
        yaml.allow_duplicate_keys = False
        return yaml

    @classmethod
    def parse(cls, content: bytes) -> Value:
        """Parse YAML content.

        An empty document is an empty mapping.
        """
        yaml = cls.setup_yaml()
        try:
            data = yaml.load(content.decode("utf-8"))
        except (YAMLError, UnicodeDecodeError) as err:
            raise ConfigParsingError(str(err)) from err

        # empty file
        if data is None:
            data = {}

        return to_value(data)
