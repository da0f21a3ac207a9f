"""Caller source location.

The stdlib ``Logger.findCaller`` walks up the stack, skipping frames that
belong to the ``logging`` package itself, and then skips ``stacklevel - 1``
further frames. duolog's public methods all reach ``Logger._log`` through
exactly one private helper::

    caller -> DuoLogger.info -> DuoLogger._emit -> logging.Logger._log

so the caller is always the third non-``logging`` frame. Any change to that
call chain must update ``CALLER_STACKLEVEL``; ``tests/test_source.py`` pins
the reported line to the real call site.

The stack walk is the costly part of an enabled call. With ``add_source``
off, ``DuoLogger.findCaller`` skips it and returns ``UNKNOWN_CALLER``.
"""

from __future__ import annotations

import logging
import os

#: stacklevel passed to ``Logger._log`` by ``DuoLogger._emit``.
CALLER_STACKLEVEL = 3

#: ``findCaller`` result used when no location is wanted; ``locate`` maps it
#: to None.
UNKNOWN_CALLER = ("(unknown file)", 0, "(unknown function)", None)

_UNKNOWN_FILE = UNKNOWN_CALLER[0]


def locate(record: logging.LogRecord, add_source: bool) -> str | None:
    """Return ``"<file basename>:<line>"`` for a record, or None.

    Args:
        record: Record whose ``pathname``/``lineno`` were filled in by
            ``findCaller``.
        add_source: Handler option; when False no location is reported.

    Returns:
        The location string, or None when disabled or unknown.
    """
    if not add_source:
        return None
    pathname = record.pathname
    if not pathname or pathname == _UNKNOWN_FILE:
        return None
    return f"{os.path.basename(pathname)}:{record.lineno}"
