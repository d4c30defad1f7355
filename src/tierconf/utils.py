"""Various utilities."""

import re
from collections.abc import Iterable

import Levenshtein

_UPPER_RGX = re.compile(r"(?<!^)(?=[A-Z])")


def did_you_mean(suggestions: Iterable[str], wrong_key: str) -> str | None:
    """Return element of `suggestions` closest to `wrong_key`."""
    min_distance = 9999
    closest_key = None
    for suggestion in suggestions:
        distance = Levenshtein.distance(suggestion, wrong_key)
        if distance < min_distance:
            min_distance = distance
            closest_key = suggestion

    return closest_key


def to_kebab(name: str) -> str:
    """Convert a field name to kebab case.

    Underscores become hyphens, and every upper-case letter after the first character
    becomes a hyphen followed by its lower-case form::

        "maxConnections" -> "max-connections"
        "database_url" -> "database-url"
    """
    name = _UPPER_RGX.sub("-", name).lower()
    return name.replace("_", "-")


def env_var_name(path: str, prefix: str | None = None) -> str:
    """Return the environment variable name for a dotted field path.

    ``PREFIX_`` followed by the path with dots replaced by underscores, all in upper
    case. Without prefix (or an empty one), there is no leading segment.
    """
    name = path.replace(".", "_")
    if prefix:
        name = f"{prefix}_{name}"
    return name.upper()


def flag_name(path: str, override: str | None = None) -> str:
    """Return the long command line flag (without hyphens) for a field path."""
    if override:
        return override.lstrip("-")
    return ".".join(to_kebab(part) for part in path.split("."))
