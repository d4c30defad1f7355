"""Exceptions raised while loading configuration."""

import typing as t
from collections import abc


class ConfigError(Exception):
    """General exception for config loading."""


class ConfigIOError(ConfigError):
    """A configuration file exists but could not be read."""


class ConfigParsingError(ConfigError):
    """Unable to parse a configuration source."""


class MultipleConfigKeyError(ConfigParsingError):
    """A parameter was specified more than once."""

    def __init__(
        self, key: str, values: abc.Sequence[t.Any], msg: str | None = None
    ) -> None:
        if msg is None:
            msg = (
                f"Configuration key '{key}' was specified more than once "
                f"with values {values}"
            )
        super().__init__(msg)

        self.message = msg
        self.key = key
        self.values = values


class EnvironmentConfigError(ConfigError):
    """Environment variables could not be used as configuration."""


class UnknownConfigKeyError(ConfigError):
    """Key path does not lead to any known field."""


class ValidationError(ConfigError):
    """The validation callback rejected the merged configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(ConfigError):
    """The merged configuration does not fit the target section.

    Parameters
    ----------
    type_name
        Name of the target class.
    cause
        Description of the structural mismatch.
    """

    def __init__(self, type_name: str, cause: t.Any) -> None:
        super().__init__(f"Failed to decode {type_name}: {cause}")
        self.type_name = type_name
        self.cause = cause


class RequestedExit(Exception):  # noqa: N818
    """The command line asked to stop before any configuration is returned.

    Raised for help and version requests, and (as :class:`CLIUsageError`) for
    usage errors. The caller decides whether to print :attr:`text` and exit.
    """

    def __init__(self, text: str, status: int = 0) -> None:
        super().__init__(text)
        self.text = text
        """Text to show the user."""
        self.status = status
        """Exit status the process should use."""


class CLIUsageError(RequestedExit):
    """Command line arguments are invalid or incomplete."""

    def __init__(self, text: str, status: int = 2) -> None:
        super().__init__(text, status=status)
