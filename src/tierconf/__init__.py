"""Tierconf.

Layered configuration loading: values are read from configuration files,
environment variables and command line arguments, deep-merged by priority,
validated and decoded into typed :class:`Section` objects.
"""

from importlib.metadata import version

from .application import Loader
from .meta import ConfigMeta, FieldKind, FieldMeta
from .section import Section, Subsection, decode
from .types import (
    CLIUsageError,
    ConfigError,
    ConfigIOError,
    ConfigParsingError,
    DecodeError,
    EnvironmentConfigError,
    RequestedExit,
    UnknownConfigKeyError,
    ValidationError,
)
from .value import MISSING, Value, merge

try:
    __version__ = version("tierconf")
except Exception:
    # Local copy or not installed with setuptools.
    __version__ = "9999"

__all__ = [
    "CLIUsageError",
    "ConfigError",
    "ConfigIOError",
    "ConfigMeta",
    "ConfigParsingError",
    "DecodeError",
    "EnvironmentConfigError",
    "FieldKind",
    "FieldMeta",
    "Loader",
    "MISSING",
    "RequestedExit",
    "Section",
    "Subsection",
    "UnknownConfigKeyError",
    "ValidationError",
    "Value",
    "decode",
    "merge",
]
