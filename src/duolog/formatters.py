"""Formatters for duolog events.

Two renderings of the same event:

- ``BlockFormatter``: a multi-line, optionally colorized block for humans::

      ===============INFO================
      Request handled
       2025-01-15 10:30:00 @views.py:42
      	- http.url : /api/items
      	- http.status : 200
      ====================================

- ``JSONFormatter``: the flat (or grouped) object sent to the remote
  collector::

      {"time": "2025-01-15 10:30:00", "level": "INFO",
       "msg": "Request handled", "source": "views.py:42",
       "http": {"url": "/api/items", "status": "200"}}

Both work on a ``LogEvent``, which the handler builds after merging
attributes. Both are also usable as plain ``logging.Formatter`` objects on any
stdlib handler: ``format(record)`` builds the event from the record alone.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from duolog.attributes import Attr, group_attrs, normalize_attrs, prefix_keys
from duolog.exceptions import PayloadError
from duolog.levels import level_name
from duolog.source import locate

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI color codes
COLOR_RESET = "\033[0m"
COLOR_DARKGRAY = "\033[90m"
COLOR_RED = "\033[31m"
COLOR_BLUE = "\033[34m"
COLOR_YELLOW = "\033[33m"
COLOR_WHITE = "\033[97m"

LEVEL_COLORS = {
    logging.DEBUG: COLOR_DARKGRAY,
    logging.INFO: COLOR_BLUE,
    logging.WARNING: COLOR_YELLOW,
    logging.ERROR: COLOR_RED,
}

BANNER_FILL = "==============="
CLOSING_BANNER = "===================================="


def format_timestamp(created: float) -> str:
    """Format an epoch timestamp as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(created).strftime(TIME_FORMAT)


def colorize(color: str, text: str, enabled: bool) -> str:
    """Wrap text in an ANSI color when enabled."""
    if not enabled:
        return text
    return f"{color}{text}{COLOR_RESET}"


def _format_value(value: Any) -> str:
    """Stringify a value for text output. Never raises."""
    if isinstance(value, str):
        return value
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


@dataclass(frozen=True)
class LogEvent:
    """One log event, ready to render.

    Attributes:
        created: Epoch seconds when the call happened.
        level: Integer level.
        message: Fully formatted message.
        attrs: Merged attributes, keys not yet prefixed.
        group: Group name applied to every attribute ("" for none).
        source: ``file:line`` of the call site, or None.
        exc_text: Formatted traceback, or None.
    """

    created: float
    level: int
    message: str
    attrs: tuple[Attr, ...] = field(default_factory=tuple)
    group: str = ""
    source: str | None = None
    exc_text: str | None = None

    @property
    def level_name(self) -> str:
        return level_name(self.level)

    @property
    def time_text(self) -> str:
        return format_timestamp(self.created)

    @classmethod
    def from_record(
        cls,
        record: logging.LogRecord,
        formatter: logging.Formatter | None = None,
        add_source: bool = True,
    ) -> LogEvent:
        """Build an event from a record without any handler-bound data.

        Attributes come from ``record.structured_data`` (a mapping or a
        sequence of pairs) when present.
        """
        exc_text = None
        if record.exc_info:
            exc_text = (formatter or logging.Formatter()).formatException(
                record.exc_info
            )
        return cls(
            created=record.created,
            level=record.levelno,
            message=record.getMessage(),
            attrs=normalize_attrs(getattr(record, "structured_data", None)),
            source=locate(record, add_source),
            exc_text=exc_text,
        )


class BlockFormatter(logging.Formatter):
    """Human-readable block formatter with per-level colors."""

    def __init__(self, colorize: bool = True) -> None:
        """Create the formatter.

        Args:
            colorize: Wrap the banner, message and closing line in the level
                color and the timestamp line in dark gray. When False the
                output has the same structure with no escape sequences.
        """
        super().__init__()
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:
        return self.format_event(LogEvent.from_record(record, self))

    def format_event(self, event: LogEvent) -> str:
        """Render an event as a block. The result ends with a newline."""
        color = LEVEL_COLORS.get(event.level, COLOR_WHITE)
        on = self.colorize

        lines = [
            colorize(color, f"{BANNER_FILL}{event.level_name}{BANNER_FILL}=", on),
            colorize(color, event.message, on),
        ]

        stamp = f" {event.time_text}"
        if event.source:
            stamp = f"{stamp} @{event.source}"
        lines.append(colorize(COLOR_DARKGRAY, stamp, on))

        for key, value in prefix_keys(event.attrs, event.group):
            lines.append(f"\t- {key} : {_format_value(value)}")

        if event.exc_text:
            lines.extend(event.exc_text.splitlines())

        lines.append(colorize(color, CLOSING_BANNER, on))
        return "\n".join(lines) + "\n"


class JSONFormatter(logging.Formatter):
    """Formatter producing the remote collector's JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        return self.format_event(LogEvent.from_record(record, self))

    def payload(self, event: LogEvent) -> dict[str, Any]:
        """Build the JSON-ready dict for an event.

        Keys: ``time``, ``level``, ``msg``, ``source`` (only when known),
        ``exception`` (only with a traceback), then the attributes either
        flattened or nested under the group name. Attribute values are
        stringified; a flattened attribute may shadow a base key.

        Args:
            event: Event built by ``DuoHandler.build_event`` or
                ``LogEvent.from_record``.

        Returns:
            A dict ready for ``json.dumps``.

        Raises:
            PayloadError: If an attribute value cannot be stringified.

        Example:
            >>> JSONFormatter().payload(LogEvent(0.0, logging.INFO, "hi"))
            {'time': '...', 'level': 'INFO', 'msg': 'hi'}
        """
        data: dict[str, Any] = {
            "time": event.time_text,
            "level": event.level_name,
            "msg": event.message,
        }
        if event.source:
            data["source"] = event.source
        if event.exc_text:
            data["exception"] = event.exc_text
        data.update(group_attrs(event.attrs, event.group))
        return data

    def format_event(self, event: LogEvent) -> str:
        """Serialize the payload as one JSON line.

        Raises:
            PayloadError: If the payload cannot be built or serialized.
        """
        try:
            return json.dumps(self.payload(event))
        except (TypeError, ValueError) as exc:
            raise PayloadError(f"cannot serialize log payload: {exc}") from exc
