"""Configuration loaders.

The :class:`Loader<.application.Loader>` object delegates the work of reading
configuration values from the various sources (config files, environment variables,
command line) to these classes. Each one returns a fresh value tree, that the loader
merges by order of priority.

Loaders do not try to make sense of the configuration beyond what the schema tells
them: validation happens when the merged tree is decoded into a
:class:`Section<.section.Section>`.
"""

from .cli import CLILoader
from .core import ConfigLoader, FileLoader, read_file
from .env import EnvLoader
from .json import JsonLoader
from .toml import TomlkitLoader
from .yaml import YamlLoader

__all__ = [
    "CLILoader",
    "ConfigLoader",
    "EnvLoader",
    "FileLoader",
    "JsonLoader",
    "TomlkitLoader",
    "YamlLoader",
    "read_file",
]
