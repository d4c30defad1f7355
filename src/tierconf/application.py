"""Main entry point for configuration."""

from __future__ import annotations

import logging
import logging.config
import sys
import typing as t
from collections.abc import Mapping, Sequence
from copy import deepcopy
from os import path

from traitlets import (
    Bool,
    Bunch,
    Callable,
    Enum,
    HasTraits,
    Int,
    List,
    Unicode,
    Union,
    observe,
)

from .loaders import (
    CLILoader,
    EnvLoader,
    FileLoader,
    JsonLoader,
    TomlkitLoader,
    YamlLoader,
    read_file,
)
from .meta import ConfigMeta
from .section import Section, decode
from .types import ConfigParsingError, RequestedExit, ValidationError
from .value import Value, merge

S = t.TypeVar("S", bound=Section)


class Loader(HasTraits):
    """Load configuration from files, environment variables and command line.

    Sources are read in order of increasing priority and deep-merged: configuration
    files (in the order of :attr:`config_files`), environment variables, then command
    line arguments if :attr:`cli_enabled`. The merged tree is passed to the
    :attr:`validation` callback, then decoded into the target
    :class:`~.section.Section` class.

    Options can be passed at initialization, or changed one at a time with the
    ``with_*`` methods, which return a modified copy::

        config = (
            Loader()
            .with_env_prefix("MYAPP")
            .with_config_file("app.toml")
            .with_cli()
            .load(AppConfig)
        )

    A loader is never modified by :meth:`load` and can be reused.
    """

    file_loaders: list[type[FileLoader]] = [JsonLoader, YamlLoader, TomlkitLoader]
    """List of possible configuration loaders from file, for different formats.

    The loader is selected from the file extension. If no loader supports the
    extension, each will be tried in this order until one succeeds.
    """

    # -- Config --

    env_prefix = Unicode(
        None,
        allow_none=True,
        help=(
            "Prefix of environment variables names. If None, variables are named "
            "after the field path only."
        ),
    )

    config_files = List(
        Unicode(),
        default_value=["config.json", "config.yaml", "config.toml"],
        help=(
            "Path to configuration files, by increasing priority. Either relative "
            "from interpreter working directory or absolute. Absent files are "
            "ignored."
        ),
    )

    cli_enabled = Bool(False, help="If True, parse command line arguments.")

    validation = Callable(
        None,
        allow_none=True,
        help=(
            "Function called with the merged configuration tree before decoding. "
            "It can return None or True to accept it, False or an error message to "
            "reject it, or raise a ValidationError."
        ),
    )

    strict = Bool(
        False,
        help=(
            "If true, raise errors when encountering unknown configuration keys. "
            "Otherwise only log a warning and ignore the key."
        ),
    )

    prog = Unicode(
        None, allow_none=True, help="Program name shown in command line help."
    )

    version = Unicode(
        None,
        allow_none=True,
        help="Version string. If set, a --version flag is added to the command line.",
    )

    # -- Log config --

    log_level = Union(
        [Enum(("DEBUG", "INFO", "WARN", "ERROR", "CRITICAL")), Int()],
        default_value="INFO",
        help="Set the log level by value or name.",
    )

    log_datefmt = Unicode(
        "%Y-%m-%d %H:%M:%S",
        help="The date format used by logging formatters for %(asctime)s",
    )

    log_format = Unicode(
        "[%(levelname)s]%(name)s:: %(message)s",
        help="The Logging format template",
    )

    def __init__(self, log: logging.Logger | None = None, **kwargs: t.Any) -> None:
        super().__init__(**kwargs)
        if log is None:
            log = logging.getLogger(__name__)
        self.log = log

    def _get_logging_config(self) -> dict:
        """Return dictionary config for logging.

        See :func:`logging.config.dictConfig`.

        Whenever the relevant traits are modified, callbacks events will use this
        method to create a configuration dict. It can be overriden in a subclass to
        modify the logging configuration further.
        """
        config = {
            "version": 1,
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "console",
                    "stream": "ext://sys.stderr",
                },
            },
            "formatters": {
                "console": {
                    "format": self.log_format,
                    "datefmt": self.log_datefmt,
                },
            },
            "loggers": {
                "tierconf": {
                    "level": logging.getLevelName(self.log_level),
                    "handlers": ["console"],
                }
            },
            "disable_existing_loggers": False,
        }

        return config

    @observe("log_format", "log_datefmt", "log_level")
    def _observe_log_format_change(self, change: Bunch) -> None:
        self._configure_logging()

    def _configure_logging(self) -> None:
        config = self._get_logging_config()
        logging.config.dictConfig(config)

    # -- Builder --

    def _replace(self, **changes: t.Any) -> t.Self:
        """Return a copy with some options changed."""
        values = {
            name: getattr(self, name)
            for name, trait in self.traits().items()
            if getattr(self, name) != trait.default()
        }
        values |= changes
        return self.__class__(log=self.log, **values)

    def with_env_prefix(self, prefix: str | None) -> t.Self:
        """Return a copy using `prefix` for environment variables."""
        return self._replace(env_prefix=prefix)

    def with_config_file(self, filename: str) -> t.Self:
        """Return a copy with `filename` appended to the configuration files."""
        return self._replace(config_files=[*self.config_files, filename])

    def with_config_files(self, filenames: Sequence[str]) -> t.Self:
        """Return a copy using only `filenames` as configuration files."""
        return self._replace(config_files=list(filenames))

    def with_cli(self, enabled: bool = True) -> t.Self:
        """Return a copy parsing (or not) command line arguments."""
        return self._replace(cli_enabled=enabled)

    def with_validation(self, func: t.Callable[[Value], t.Any] | None) -> t.Self:
        """Return a copy using `func` to validate the merged configuration."""
        return self._replace(validation=func)

    def with_strict(self, strict: bool = True) -> t.Self:
        """Return a copy rejecting (or not) unknown configuration keys."""
        return self._replace(strict=strict)

    def with_version(self, version: str | None) -> t.Self:
        """Return a copy with a --version flag showing `version`."""
        return self._replace(version=version)

    # -- Loading --

    def load(
        self,
        section_cls: type[S],
        argv: Sequence[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> S:
        """Load configuration and decode it into `section_cls`.

        Parameters
        ----------
        section_cls
            Target section class.
        argv
            Override command line arguments to parse. If left to None, arguments are
            obtained from :meth:`get_argv`.
        environ
            Override environment variables. Default to :data:`os.environ`.

        Raises
        ------
        ConfigError
            Any file, parsing, validation or decoding error.
        RequestedExit
            The command line requested help or version, or is invalid.
        """
        tree = self.load_tree(section_cls, argv=argv, environ=environ)
        return decode(section_cls, tree, strict=self.strict)

    def load_or_exit(
        self,
        section_cls: type[S],
        argv: Sequence[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> S:
        """Same as :meth:`load`, but exit the process if the command line asks to.

        Help and version text are printed on stdout, usage errors on stderr.
        """
        try:
            return self.load(section_cls, argv=argv, environ=environ)
        except RequestedExit as exc:
            stream = sys.stdout if exc.status == 0 else sys.stderr
            print(exc.text, file=stream, end="" if exc.text.endswith("\n") else "\n")
            sys.exit(exc.status)

    def load_tree(
        self,
        section_cls: type[Section],
        argv: Sequence[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> dict[str, Value]:
        """Return the merged and validated configuration tree, before decoding.

        Parameters are the same as for :meth:`load`.
        """
        meta = section_cls.config_meta()

        config: dict[str, Value] = {}
        config = merge(config, self.load_config_files())
        config = merge(config, self.load_env(meta, environ=environ))
        if self.cli_enabled:
            config = merge(config, self.load_cli(meta, config, argv=argv))

        self.validate(config)
        return config

    def load_config_files(self) -> dict[str, Value]:
        """Return configuration loaded from files, merged in order."""
        config: dict[str, Value] = {}
        found = False
        for filepath in self.config_files:
            if not path.exists(filepath):
                self.log.debug("Config file %s not found, skipping.", filepath)
                continue
            found = True
            config = merge(config, self.load_config_file(filepath))

        if not found and self.config_files:
            self.log.info("No config files found (%s)", ", ".join(self.config_files))
        return config

    def load_config_file(self, filepath: str) -> dict[str, Value]:
        """Return configuration loaded from a single existing file.

        The format is selected by extension. If no loader supports the extension,
        each loader is tried in order and the first that succeeds is used.

        Raises
        ------
        ConfigIOError
            If the file cannot be read.
        ConfigParsingError
            If the content cannot be parsed.
        """
        loader_cls = self._select_file_loader(filepath)
        if loader_cls is not None:
            return loader_cls(filepath, log=self.log).get_config()

        content = read_file(filepath)
        errors = []
        for loader_cls in self.file_loaders:
            try:
                return loader_cls(filepath, log=self.log).get_config(content=content)
            except ConfigParsingError as err:
                errors.append(f"{loader_cls.format_name}: {err.__cause__ or err}")

        raise ConfigParsingError(
            f"Could not parse config file {filepath} with any format "
            f"({'; '.join(errors)})"
        )

    def _select_file_loader(self, filename: str) -> type[FileLoader] | None:
        """Return the first appropriate FileLoader for this file, if any."""
        for loader_cls in self.file_loaders:
            if loader_cls.can_load(filename):
                return loader_cls
        return None

    def load_env(
        self, meta: ConfigMeta, environ: Mapping[str, str] | None = None
    ) -> dict[str, Value]:
        """Return configuration loaded from environment variables."""
        loader = EnvLoader(meta, prefix=self.env_prefix, environ=environ, log=self.log)
        return loader.get_config()

    def load_cli(
        self,
        meta: ConfigMeta,
        current: Value,
        argv: Sequence[str] | None = None,
    ) -> dict[str, Value]:
        """Return configuration parsed from command line arguments.

        Parameters
        ----------
        meta
            Schema of the configuration.
        current
            Configuration merged from files and environment. Required fields missing
            from it are mandatory on the command line.
        argv
            Command line arguments. If None, they are obtained through
            :meth:`get_argv`.
        """
        if argv is None:
            argv = self.get_argv()
        loader = CLILoader(
            meta, current=current, prog=self.prog, version=self.version, log=self.log
        )
        return loader.get_config(argv)

    def get_argv(self) -> list[str]:
        """Return command line arguments.

        When running in IPython, only arguments after ``--`` are kept.
        """
        exe, *argv = sys.argv
        if path.splitext(path.basename(exe))[0] in ["ipython", "ipykernel_launcher"]:
            if "--" in argv:
                idx = argv.index("--")
                argv = argv[idx + 1 :]
            else:
                return []
        return argv

    def validate(self, config: dict[str, Value]) -> None:
        """Run the validation callback on the merged configuration.

        The callback receives a copy of the tree.

        Raises
        ------
        ValidationError
            If the callback rejects the configuration.
        """
        if self.validation is None:
            return
        result = self.validation(deepcopy(config))
        if result is None or result is True:
            return
        if result is False:
            raise ValidationError("Configuration rejected by validation.")
        raise ValidationError(str(result))
