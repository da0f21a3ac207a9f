"""The duolog handler: text block output plus remote JSON dispatch.

``DuoHandler`` is a ``logging.StreamHandler`` that, for every enabled record:

1. computes the caller's source location (when ``add_source``),
2. merges handler-bound attributes, call-site attributes and context-derived
   attributes,
3. writes a rendered block to its stream (unless the record opted out of text
   output),
4. sends the same event as JSON to the remote collector (unless the record
   opted out, or no remote URL is configured).

Per-call routing travels on the record itself (``emit_text``/``emit_json``,
set through ``extra`` by ``DuoLogger``), so concurrent calls never observe
each other's routing. The only critical section is the stream write; JSON
dispatch happens outside it so a slow collector never serializes logging.

Derived handlers (``with_attrs``, ``with_group``, ``with_context_keys``) are
independent copies that share the parent's stream, options, dispatcher and
lock.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import IO, Any

from duolog.attributes import Attr, merge_attributes, normalize_attrs
from duolog.context import ContextKey, as_context_key, resolve_context
from duolog.dispatch import DEFAULT_REQUEST_TIMEOUT, DEFAULT_TIMEOUT, JSONDispatcher
from duolog.exceptions import ConfigurationError, PayloadError
from duolog.formatters import BlockFormatter, JSONFormatter, LogEvent
from duolog.levels import parse_level
from duolog.source import locate

dispatch_logger = logging.getLogger("duolog.dispatch")


@dataclass(frozen=True)
class HandlerOptions:
    """Handler behavior, shared by a handler and all handlers derived from it.

    Attributes:
        add_source: Report the caller's ``file:line``.
        colorize: Color text output per level with ANSI escapes.
        remote_url: Collector URL for JSON output; "" disables JSON output.
        minimum_level: Records below this level are dropped. Accepts a level
            name, normalized to an int.
        timeout: Seconds a logging call waits for the remote POST.
        request_timeout: httpx timeout bounding abandoned requests.
        retries: Connection retries for the remote POST.
    """

    add_source: bool = True
    colorize: bool = True
    remote_url: str = ""
    minimum_level: int | str = logging.INFO
    timeout: float = DEFAULT_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retries: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum_level", parse_level(self.minimum_level))
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )
        if self.retries < 0:
            raise ConfigurationError(f"retries must be >= 0, got {self.retries}")


class DuoHandler(logging.StreamHandler):
    """Handler rendering colorized text blocks and dispatching JSON.

    Usage:
        handler = DuoHandler(sys.stderr, HandlerOptions(remote_url=url))
        logging.getLogger("app").addHandler(handler)

    Most code goes through ``DuoLogger`` instead, which adds per-call
    routing and derivation. A ``DuoHandler`` attached to a plain stdlib
    logger emits both text and JSON for every record and reads call-site
    attributes from ``extra={"structured_data": {...}}``.
    """

    def __init__(
        self,
        stream: IO[str] | None = None,
        options: HandlerOptions | None = None,
        *,
        group: str = "",
        attrs: Mapping[str, Any] | Iterable[Attr] | None = None,
        context_keys: Iterable[ContextKey | str] = (),
        dispatcher: JSONDispatcher | None = None,
        transport: Any = None,
    ) -> None:
        """Create a handler.

        Args:
            stream: Text sink. Defaults to ``sys.stderr``.
            options: Handler options. Defaults to ``HandlerOptions()``
                (colorized, with source, INFO and above, no remote URL).
            group: Group name prefixed to every attribute key.
            attrs: Attributes bound to every event.
            context_keys: Ambient context keys to extract per event.
            dispatcher: Existing dispatcher to share (used by derivation).
            transport: httpx transport for a newly created dispatcher.
        """
        super().__init__(stream if stream is not None else sys.stderr)
        self.options = options or HandlerOptions()
        self.setLevel(self.options.minimum_level)
        self.group = group
        self.attrs: tuple[Attr, ...] = normalize_attrs(attrs)
        self.context_keys: tuple[ContextKey, ...] = tuple(
            as_context_key(key) for key in context_keys
        )
        self.text_formatter = BlockFormatter(colorize=self.options.colorize)
        self.json_formatter = JSONFormatter()

        # Only a dispatcher created here is closed with this handler.
        self._owns_dispatcher = dispatcher is None and bool(self.options.remote_url)
        if self._owns_dispatcher:
            dispatcher = JSONDispatcher(
                self.options.remote_url,
                timeout=self.options.timeout,
                request_timeout=self.options.request_timeout,
                retries=self.options.retries,
                transport=transport,
            )
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # Enablement and derivation
    # ------------------------------------------------------------------

    def enabled(self, level: int) -> bool:
        """Report whether events at ``level`` produce any output.

        Args:
            level: Integer logging level of the event.

        Returns:
            True when ``level`` is at or above ``options.minimum_level``.
        """
        return level >= self.options.minimum_level

    def _derive(
        self,
        *,
        group: str,
        attrs: tuple[Attr, ...],
        context_keys: tuple[ContextKey, ...],
    ) -> DuoHandler:
        handler = DuoHandler(
            self.stream,
            self.options,
            group=group,
            attrs=attrs,
            context_keys=context_keys,
            dispatcher=self.dispatcher,
        )
        # One critical section per stream lineage.
        handler.lock = self.lock
        handler.filters = list(self.filters)
        return handler

    def with_attrs(self, attrs: Mapping[str, Any] | Iterable[Attr]) -> DuoHandler:
        """Copy of this handler whose bound attributes are exactly ``attrs``."""
        return self._derive(
            group=self.group,
            attrs=normalize_attrs(attrs),
            context_keys=self.context_keys,
        )

    def with_group(self, name: str) -> DuoHandler:
        """Copy of this handler using group ``name``; replaces any prior group."""
        return self._derive(
            group=name,
            attrs=self.attrs,
            context_keys=self.context_keys,
        )

    def with_context_keys(self, keys: Iterable[ContextKey | str]) -> DuoHandler:
        """Copy of this handler extracting additional context keys.

        Keys already declared are not added twice; declared order is kept.
        """
        merged = list(self.context_keys)
        for key in keys:
            typed = as_context_key(key)
            if typed not in merged:
                merged.append(typed)
        return self._derive(
            group=self.group,
            attrs=self.attrs,
            context_keys=tuple(merged),
        )

    # ------------------------------------------------------------------
    # Record processing
    # ------------------------------------------------------------------

    def build_event(self, record: logging.LogRecord) -> LogEvent:
        """Merge all attribute sources of a record into a ``LogEvent``.

        Attributes are ordered: handler-bound, then call-site
        (``record.structured_data``), then values resolved for the declared
        context keys from ``record.log_context`` or the ambient
        ``LogContext``.

        Args:
            record: Record produced by ``DuoLogger`` or any stdlib logger.

        Returns:
            The event both sinks render.

        Raises:
            Exception: Whatever ``record.getMessage()`` raises for a message
                that does not match its arguments; ``emit`` reports it
                through ``handleError``.
        """
        call_attrs = normalize_attrs(getattr(record, "structured_data", None))
        ctx_attrs = resolve_context(
            self.context_keys, getattr(record, "log_context", None)
        )
        exc_text = None
        if record.exc_info:
            exc_text = self.text_formatter.formatException(record.exc_info)
        return LogEvent(
            created=record.created,
            level=record.levelno,
            message=record.getMessage(),
            attrs=tuple(merge_attributes(self.attrs, call_attrs, ctx_attrs)),
            group=self.group,
            source=locate(record, self.options.add_source),
            exc_text=exc_text,
        )

    def handle(self, record: logging.LogRecord) -> logging.LogRecord | bool:
        """Filter and emit without holding the lock for the whole emit.

        ``emit`` takes the lock around the stream write only, so a slow JSON
        dispatch does not block other threads' text output.
        """
        rv = self.filter(record)
        if isinstance(rv, logging.LogRecord):
            record = rv
        if rv:
            self.emit(record)
        return rv

    def close(self) -> None:
        """Close the handler and the HTTP client of a dispatcher it created.

        Derived handlers share their parent's dispatcher and never close
        it; neither does a handler given an existing ``dispatcher``. The
        stream is left open, as with ``logging.StreamHandler``.
        """
        try:
            if self._owns_dispatcher and self.dispatcher is not None:
                self.dispatcher.close()
        finally:
            super().close()

    def emit(self, record: logging.LogRecord) -> None:
        """Render and write the text block, then dispatch JSON.

        Never raises. Stream, message-formatting and dispatch failures go
        to ``handleError``; JSON payload failures are reported on the
        ``duolog.dispatch`` logger. A failure in one sink does not affect
        the other.
        """
        if not self.enabled(record.levelno):
            return

        try:
            event = self.build_event(record)
        except Exception:
            self.handleError(record)
            return

        if getattr(record, "emit_text", True):
            self._write_text(record, event)

        if getattr(record, "emit_json", True) and self.dispatcher is not None:
            self._send_json(record, event)

    def _write_text(self, record: logging.LogRecord, event: LogEvent) -> None:
        try:
            block = self.text_formatter.format_event(event)
            with self.lock:
                self.stream.write(block)
                self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def _send_json(self, record: logging.LogRecord, event: LogEvent) -> None:
        try:
            payload = self.json_formatter.payload(event)
            self.dispatcher.dispatch(payload)
        except PayloadError as exc:
            dispatch_logger.error("Unable to build JSON log payload: %s", exc)
        except RecursionError:
            raise
        except Exception:
            # e.g. no worker thread could be started
            self.handleError(record)
