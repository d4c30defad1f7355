"""Loading configuration from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from tierconf.meta import ConfigMeta
from tierconf.types import EnvironmentConfigError
from tierconf.utils import env_var_name
from tierconf.value import Value, set_nested_value

from .core import ConfigLoader, parse_field_string

_PREFIX_RGX = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class EnvLoader(ConfigLoader):
    """Load config from environment variables.

    Every field that is not skipped is looked up under the name ``PREFIX_PATH``: the
    field path with dots replaced by underscores, in upper case. Nested sections can
    be given as a whole (as a JSON object), their fields are looked up afterwards and
    take precedence.

    Parameters
    ----------
    meta
        Schema of the configuration.
    prefix
        Prefix of variable names. If None or empty, variables names are only made of
        the field path.
    environ
        Mapping to read variables from. Default to :data:`os.environ`.
    """

    origin = "environment"

    def __init__(
        self,
        meta: ConfigMeta,
        prefix: str | None = None,
        environ: Mapping[str, str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(meta, **kwargs)
        if prefix and _PREFIX_RGX.fullmatch(prefix) is None:
            raise EnvironmentConfigError(
                f"Invalid environment variable prefix '{prefix}'."
            )
        self.prefix = prefix
        if environ is None:
            environ = os.environ
        self.environ = environ

    def load_config(self) -> dict[str, Value]:
        """Return the configuration tree from environment variables."""
        assert self.meta is not None
        config: dict[str, Value] = {}
        for field in self.meta.sourceable():
            name = env_var_name(field.path, self.prefix)
            raw = self.environ.get(name)
            if raw is None:
                continue
            try:
                raw.encode("utf-8")
            except UnicodeEncodeError as err:
                raise EnvironmentConfigError(
                    f"Environment variable {name} is not valid unicode."
                ) from err
            self.log.debug("Using environment variable %s for '%s'", name, field.path)
            set_nested_value(config, field.path, parse_field_string(field, raw))
        return config
