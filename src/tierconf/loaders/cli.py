"""Loading configuration from command line arguments."""

from __future__ import annotations

import argparse
import sys
import typing as t
from collections.abc import Sequence

try:
    import argcomplete

    _HAS_ARGCOMPLETE = True
except ImportError:
    _HAS_ARGCOMPLETE = False

from tierconf.meta import ConfigMeta, FieldKind, FieldMeta, find_missing_required
from tierconf.types import CLIUsageError, ConfigError, RequestedExit
from tierconf.utils import did_you_mean, flag_name
from tierconf.value import (
    MISSING,
    Value,
    format_value,
    get_nested_value,
    parse_scalar,
    set_nested_value,
)

from .core import ConfigLoader, parse_field_string, parse_item_string

_DOT = "__DOT__"
"""String replacement for dots in command line keys."""

HELP_FLAGS = ("-h", "--help")
VERSION_FLAG = "--version"


class ArgumentParser(argparse.ArgumentParser):
    """Parser that never exits the process.

    Errors are raised as :class:`~tierconf.types.CLIUsageError`, exit requests as
    :class:`~tierconf.types.RequestedExit`.
    """

    def error(self, message: str) -> t.NoReturn:
        raise CLIUsageError(f"{self.format_usage()}{self.prog}: error: {message}\n")

    def exit(self, status: int = 0, message: str | None = None) -> t.NoReturn:
        raise RequestedExit(message or "", status=status)


class CLILoader(ConfigLoader):
    """Load config from command line.

    This uses the standard module :mod:`argparse`. The parser is built in two steps:
    first the fields still missing from the configuration read so far are computed,
    then every field gets a long flag, mandatory only if it is missing.

    Flags are the field path in kebab-case (``--max-connections``,
    ``--logging.level``), unless the field has an explicit flag name. Boolean fields
    are switches (``--debug``/``--no-debug``). Sequence fields can be repeated, each
    occurrence adds an item. A single occurrence holding a bracketed list
    (``--hosts '["a", "b"]'``) gives the whole list, as the environment does.

    Two fields ending up with the same flag are a :class:`~tierconf.types.ConfigError`.

    Parameters
    ----------
    meta
        Schema of the configuration.
    current
        Configuration tree merged from files and environment.
    prog
        Program name, used in help messages.
    version
        Version string. If given, a ``--version`` flag is available.
    """

    origin = "CLI"

    def __init__(
        self,
        meta: ConfigMeta,
        current: Value | None = None,
        prog: str | None = None,
        version: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(meta, **kwargs)
        if current is None:
            current = {}
        self.current = current
        self.version = version

        self.missing = find_missing_required(meta, current)
        if self.missing:
            self.log.debug(
                "Required fields missing before CLI: %s",
                ", ".join(sorted(self.missing)),
            )

        self.fields: dict[str, FieldMeta] = {}
        # option strings and the path of the field using them
        self.flags: dict[str, str] = {}
        self.parser = self.create_parser(prog=prog)
        for field in meta.sourceable():
            if field.nested:
                continue
            self.add_argument(field, required=field.path in self.missing)

        if _HAS_ARGCOMPLETE:
            argcomplete.autocomplete(self.parser)

    def create_parser(self, **kwargs) -> ArgumentParser:
        """Create a parser instance."""
        assert self.meta is not None
        parser = ArgumentParser(
            add_help=False,
            argument_default=argparse.SUPPRESS,
            allow_abbrev=False,
            description=f"Configuration for {self.meta.name}",
            **kwargs,
        )
        parser.add_argument(
            *HELP_FLAGS, action="store_true", dest="_help", help="Show this help."
        )
        self.flags.update(dict.fromkeys(HELP_FLAGS, "help"))
        if self.version is not None:
            parser.add_argument(
                VERSION_FLAG,
                action="store_true",
                dest="_version",
                help="Show version and exit.",
            )
            self.flags[VERSION_FLAG] = "version"
        return parser

    def get_help(self, field: FieldMeta, required: bool) -> str:
        """Return help string for a field."""
        parts = []
        if required:
            parts.append(
                f"REQUIRED: set {field.path} "
                "(missing from config files and environment)"
            )
        if field.help:
            parts.append(field.help)
        if not required:
            current = get_nested_value(self.current, field.path)
            if current is not MISSING:
                parts.append(f"(current: {format_value(current)})")
            else:
                parts.append("(optional)")
        if field.kind is FieldKind.SEQUENCE:
            parts.append("(can be used multiple times)")
        # argparse formats help strings
        return " ".join(parts).replace("%", "%%")

    def add_argument(self, field: FieldMeta, required: bool = False) -> None:
        """Add argument to the parser."""
        dest = field.path.replace(".", _DOT)
        self.fields[dest] = field

        kwargs: dict[str, t.Any] = dict(
            dest=dest, required=required, help=self.get_help(field, required)
        )
        if field.kind is FieldKind.BOOL:
            kwargs["action"] = argparse.BooleanOptionalAction
        else:
            kwargs["action"] = "append" if field.kind is FieldKind.SEQUENCE else "store"
            kwargs["metavar"] = field.name.upper()

        name = flag_name(field.path, field.flag)
        options = [f"--{name}"]
        if field.kind is FieldKind.BOOL:
            options.append(f"--no-{name}")
        for option in options:
            if (other := self.flags.get(option)) is not None:
                raise ConfigError(
                    f"Fields '{other}' and '{field.path}' both use the command line "
                    f"flag {option}."
                )
            self.flags[option] = field.path

        self.parser.add_argument(options[0], **kwargs)

    def _check_exit_flags(self, argv: Sequence[str]) -> None:
        """Raise on help or version flags.

        This is done before parsing so that missing mandatory flags do not prevent
        from showing help.
        """
        if "--" in argv:
            argv = argv[: list(argv).index("--")]
        if any(arg in HELP_FLAGS for arg in argv):
            raise RequestedExit(self.parser.format_help(), status=0)
        if self.version is not None and VERSION_FLAG in argv:
            raise RequestedExit(f"{self.version}\n", status=0)

    def load_config(self, argv: Sequence[str] | None = None) -> dict[str, Value]:
        """Return the configuration tree from CLI.

        Use argparser to obtain key/values. Deal with 'help' and 'version' flags.

        Parameters
        ----------
        argv
            Arguments to parse. If None use the system ones.

        Raises
        ------
        RequestedExit
            Help or version were requested.
        CLIUsageError
            Mandatory flags are missing, some arguments are unknown or malformed.
        """
        if argv is None:
            argv = sys.argv[1:]
        self._check_exit_flags(argv)

        try:
            args, extra = self.parser.parse_known_args(argv)
        except argparse.ArgumentError as err:
            self.parser.error(str(err))

        if extra:
            msg = f"unrecognized arguments: {' '.join(extra)}"
            flags = [
                opt
                for action in self.parser._actions
                for opt in action.option_strings
            ]
            if (suggestion := did_you_mean(flags, extra[0])) is not None:
                msg += f" (did you mean '{suggestion}'?)"
            self.parser.error(msg)

        dargs = vars(args)
        if dargs.pop("_help", False):
            raise RequestedExit(self.parser.format_help(), status=0)
        if dargs.pop("_version", False):
            raise RequestedExit(f"{self.version}\n", status=0)

        config: dict[str, Value] = {}
        for dest, raw in dargs.items():
            field = self.fields[dest]
            set_nested_value(config, field.path, self.convert(field, raw))
        return config

    def convert(self, field: FieldMeta, raw: t.Any) -> Value:
        """Convert what argparse returned for a field."""
        if field.kind is FieldKind.BOOL:
            return bool(raw)
        if field.kind is FieldKind.SEQUENCE:
            # a single occurrence holding a whole list
            if len(raw) == 1 and isinstance(whole := parse_scalar(raw[0]), list):
                return whole
            return [parse_item_string(field, s) for s in raw]
        return parse_field_string(field, raw)
