"""JSON configuration file loader."""

import json
from collections.abc import Sequence
from typing import Any

from tierconf.types import ConfigParsingError, MultipleConfigKeyError
from tierconf.value import Value, to_value

from .core import FileLoader


def dict_raise_on_duplicate(ordered_pairs: Sequence[tuple[Any, Any]]) -> dict:
    """Raise if there are duplicate keys."""
    d: dict = {}
    for k, v in ordered_pairs:
        if k in d:
            raise MultipleConfigKeyError(k, [d[k], v])
        d[k] = v
    return d


class JsonLoader(FileLoader):
    """Loader for JSON files."""

    extensions = ["json"]
    format_name = "JSON"

    JSON_DECODER: type[json.JSONDecoder] | None = None
    """Custom json decoder to use."""

    @classmethod
    def parse(cls, content: bytes) -> Value:
        """Parse JSON content.

        We use builtin :mod:`json`, with eventually a custom decoder specified by
        :attr:`JSON_DECODER`. Duplicate keys are not allowed.
        """
        try:
            data = json.loads(
                content,
                cls=cls.JSON_DECODER,
                object_pairs_hook=dict_raise_on_duplicate,
            )
        except (ValueError, UnicodeDecodeError) as err:
            raise ConfigParsingError(str(err)) from err
        return to_value(data)
