"""Level names and parsing.

duolog uses the standard library's integer levels. The four core levels are
named the way the remote JSON format expects (``WARN`` rather than
``WARNING``); any other integer is allowed and only its ordering matters.
"""

from __future__ import annotations

import logging

from duolog.exceptions import ConfigurationError

DEBUG = logging.DEBUG
INFO = logging.INFO
WARN = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

_CORE_NAMES = {
    DEBUG: "DEBUG",
    INFO: "INFO",
    WARN: "WARN",
    ERROR: "ERROR",
}


def level_name(level: int) -> str:
    """Return the display name for a level.

    Examples:
        >>> level_name(logging.WARNING)
        'WARN'
        >>> level_name(logging.CRITICAL)
        'CRITICAL'
    """
    name = _CORE_NAMES.get(level)
    if name is not None:
        return name
    return logging.getLevelName(level)


def parse_level(value: int | str) -> int:
    """Convert a level name or number into a stdlib level integer.

    Args:
        value: An int (returned unchanged) or a level name such as "info",
            "WARN" or "Warning". Names are case-insensitive.

    Returns:
        The integer level.

    Raises:
        ConfigurationError: If the name is not a registered level, or the
            value is neither an int nor a str.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid level: {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"invalid level: {value!r}")

    name = value.strip().upper()
    if name == "WARN":
        return WARN
    mapping = logging.getLevelNamesMapping()
    if name not in mapping:
        raise ConfigurationError(f"unknown level name: {value!r}")
    return mapping[name]
