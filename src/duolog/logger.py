"""Logger façade for duolog.

``DuoLogger`` is a standard ``logging.Logger`` bound to one ``DuoHandler``.
It adds:

- structured attributes as keyword arguments::

      logger.info("Request handled", url="/api/items", status=200)

- per-call routing: every level has a both-sinks method, a text-only method
  and a JSON-only method::

      logger.warn("Disk almost full")          # text block + remote JSON
      logger.warn_text("Disk almost full")     # text block only
      logger.warn_json("Disk almost full")     # remote JSON only

- derived loggers that never modify their parent::

      http_logger = logger.with_group("http").with_attrs(service="api")
      req_logger = http_logger.with_context_keys(ContextKey("request_id"))

- an explicit or ambient context for context-declared attributes::

      req_logger.info("Start", ctx={ContextKey("request_id"): "abc"})
      with LogContext({ContextKey("request_id"): "abc"}):
          req_logger.info("Start")

Loggers are not registered with the stdlib logger manager and do not
propagate, so ``logging.getLogger`` configuration never interferes with them.

A process-wide default logger is available through ``configure_logging`` /
``get_logger``. Configure it once at startup; replacing it while other
threads are logging is not supported. Passing a ``DuoLogger`` explicitly is
preferred.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from typing import IO, Any, cast

from duolog.attributes import Attr, normalize_attrs
from duolog.context import ContextKey
from duolog.handler import DuoHandler, HandlerOptions
from duolog.levels import CRITICAL, DEBUG, ERROR, INFO, WARN, parse_level
from duolog.source import CALLER_STACKLEVEL, UNKNOWN_CALLER

DEFAULT_NAME = "duolog"

# (emit_text, emit_json) routing for the three method variants
_BOTH = (True, True)
_TEXT = (True, False)
_JSON = (False, True)


class DuoLogger(logging.Logger):
    """Leveled logger with attributes, routing variants and derivation.

    Every public logging method accepts:

    - ``msg`` and ``*args``: stdlib %-style message formatting.
    - ``ctx``: explicit context mapping for context-key extraction; when
      omitted the ambient ``LogContext`` is used.
    - ``exc_info``, ``stack_info``, ``stacklevel``: as in ``logging``.
    - ``**attrs``: call-site attributes, kept in call order.
    """

    def __init__(self, name: str, handler: DuoHandler) -> None:
        super().__init__(name, handler.options.minimum_level)
        self.propagate = False
        self.addHandler(handler)
        self._handler = handler

    @property
    def handler(self) -> DuoHandler:
        return self._handler

    def findCaller(
        self, stack_info: bool = False, stacklevel: int = 1
    ) -> tuple[str, int, str, str | None]:
        """Locate the caller, skipping the stack walk when it is not shown.

        With ``add_source`` off the location would be discarded, so the
        walk is skipped unless ``stack_info`` asks for the stack anyway.
        """
        if not self._handler.options.add_source and not stack_info:
            return UNKNOWN_CALLER
        return super().findCaller(stack_info, stacklevel)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_attrs(self, **attrs: Any) -> DuoLogger:
        """New logger whose handler binds exactly ``attrs`` to every event.

        Replaces this logger's bound attributes rather than adding to them.
        Group and context keys carry over.
        """
        return DuoLogger(self.name, self._handler.with_attrs(attrs))

    def with_group(self, name: str) -> DuoLogger:
        """New logger prefixing every attribute with ``name``.

        A group set here replaces any group set on this logger; groups do not
        nest. Bound attributes and context keys carry over.
        """
        return DuoLogger(self.name, self._handler.with_group(name))

    def with_context_keys(self, *keys: ContextKey | str) -> DuoLogger:
        """New logger also extracting ``keys`` from the context.

        Plain strings are wrapped in ``ContextKey``; lookups try the typed key
        first and the plain string second.
        """
        return DuoLogger(self.name, self._handler.with_context_keys(keys))

    # ------------------------------------------------------------------
    # Core emit path
    # ------------------------------------------------------------------

    def _emit(
        self,
        level: int,
        route: tuple[bool, bool],
        msg: object,
        args: tuple[Any, ...],
        attrs: Mapping[str, Any] | Iterable[Attr],
        ctx: Mapping[Any, Any] | None,
        exc_info: Any,
        stack_info: bool,
        stacklevel: int,
    ) -> None:
        """Forward one call to ``Logger._log`` with routing on the record.

        Every public method must call this directly: the caller's frame is
        found at a fixed depth (``CALLER_STACKLEVEL``).

        Args:
            level: Integer level of the event.
            route: ``(emit_text, emit_json)`` flags stored on the record.
            msg: Message, optionally with %-style placeholders.
            args: Values for the placeholders.
            attrs: Call-site attributes as a mapping or ordered pairs.
            ctx: Explicit context mapping, or None for the ambient one.
            exc_info: Passed through to ``Logger._log``.
            stack_info: Passed through to ``Logger._log``.
            stacklevel: Caller-relative stack level; 1 is the direct caller.
        """
        if not self.isEnabledFor(level):
            return
        emit_text, emit_json = route
        extra: dict[str, Any] = {
            "structured_data": normalize_attrs(attrs),
            "emit_text": emit_text,
            "emit_json": emit_json,
        }
        if ctx is not None:
            extra["log_context"] = ctx
        self._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=CALLER_STACKLEVEL + stacklevel - 1,
        )

    # ------------------------------------------------------------------
    # DEBUG
    # ------------------------------------------------------------------

    def debug(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at DEBUG to text and JSON."""
        self._emit(
            DEBUG, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def debug_text(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at DEBUG to text only."""
        self._emit(
            DEBUG, _TEXT, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def debug_json(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at DEBUG to JSON only."""
        self._emit(
            DEBUG, _JSON, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    # ------------------------------------------------------------------
    # INFO
    # ------------------------------------------------------------------

    def info(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at INFO to the text stream and the remote collector.

        The other level methods take the same arguments; their ``_text`` and
        ``_json`` variants differ only in which sink receives the event.

        Args:
            msg: Message, optionally with %-style placeholders.
            *args: Values for the placeholders.
            ctx: Mapping to resolve declared context keys from. Defaults to
                the ambient ``LogContext``.
            exc_info: Exception, exc_info tuple or True to attach a
                traceback, as in ``logging``.
            stack_info: Attach the current stack, as in ``logging``.
            stacklevel: 1 reports the direct caller; 2 its caller, for
                logging helpers.
            **attrs: Call-site attributes, rendered after the bound ones.

        Returns:
            None. Sink failures are reported, never raised.

        Example:
            >>> logger.info("Request handled", url="/api/items", status=200)
        """
        self._emit(INFO, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    def info_text(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at INFO to text only."""
        self._emit(INFO, _TEXT, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    def info_json(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at INFO to JSON only."""
        self._emit(INFO, _JSON, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    # ------------------------------------------------------------------
    # WARN
    # ------------------------------------------------------------------

    def warn(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at WARN to text and JSON."""
        self._emit(WARN, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    warning = warn

    def warn_text(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at WARN to text only."""
        self._emit(WARN, _TEXT, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    def warn_json(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at WARN to JSON only."""
        self._emit(WARN, _JSON, msg, args, attrs, ctx, exc_info, stack_info, stacklevel)

    # ------------------------------------------------------------------
    # ERROR
    # ------------------------------------------------------------------

    def error(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at ERROR to text and JSON."""
        self._emit(
            ERROR, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def error_text(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at ERROR to text only."""
        self._emit(
            ERROR, _TEXT, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def error_json(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at ERROR to JSON only."""
        self._emit(
            ERROR, _JSON, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def exception(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = True,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at ERROR with the current exception's traceback."""
        self._emit(
            ERROR, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def critical(
        self,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at CRITICAL to text and JSON."""
        self._emit(
            CRITICAL, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    fatal = critical

    # ------------------------------------------------------------------
    # Generic level
    # ------------------------------------------------------------------

    def log(
        self,
        level: int | str,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at an arbitrary level to text and JSON.

        Args:
            level: Integer level or level name (``"warn"``, ``"INFO"``).
            msg: Message, optionally with %-style placeholders.
            *args: Values for the placeholders.
            ctx: Explicit context mapping, as for ``info``.
            exc_info: As for ``info``.
            stack_info: As for ``info``.
            stacklevel: As for ``info``.
            **attrs: Call-site attributes.

        Raises:
            ConfigurationError: If ``level`` is not a known level name.

        Example:
            >>> logger.log("warn", "Disk almost full", free_mb=120)
        """
        level = parse_level(level)
        self._emit(
            level, _BOTH, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def log_text(
        self,
        level: int | str,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at an arbitrary level to text only."""
        level = parse_level(level)
        self._emit(
            level, _TEXT, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def log_json(
        self,
        level: int | str,
        msg: object,
        *args: Any,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **attrs: Any,
    ) -> None:
        """Log at an arbitrary level to JSON only."""
        level = parse_level(level)
        self._emit(
            level, _JSON, msg, args, attrs, ctx, exc_info, stack_info, stacklevel
        )

    def log_attrs(
        self,
        level: int | str,
        msg: object,
        attrs: Mapping[str, Any] | Iterable[Attr],
        *,
        emit_text: bool = True,
        emit_json: bool = True,
        ctx: Mapping[Any, Any] | None = None,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
    ) -> None:
        """Log with attributes given as ordered pairs.

        Unlike keyword arguments, pairs may repeat a key and may use keys
        that are not valid identifiers. Both routing flags are explicit.

        Example:
            >>> logger.log_attrs(
            ...     logging.INFO, "retry", [("attempt", 1), ("attempt", 2)],
            ...     emit_json=False,
            ... )
        """
        self._emit(
            parse_level(level),
            (emit_text, emit_json),
            msg,
            (),
            attrs,
            ctx,
            exc_info,
            stack_info,
            stacklevel,
        )

    def __repr__(self) -> str:
        level = logging.getLevelName(self.getEffectiveLevel())
        return f"<{self.__class__.__name__} {self.name} ({level})>"


def new_logger(
    stream: IO[str] | None = None,
    options: HandlerOptions | None = None,
    name: str = DEFAULT_NAME,
    *,
    transport: Any = None,
) -> DuoLogger:
    """Create a logger with a fresh ``DuoHandler``.

    With no options the logger writes colorized blocks with source location
    to ``sys.stderr`` for INFO and above, and sends no JSON.

    Args:
        stream: Text sink, default ``sys.stderr``.
        options: Handler options.
        name: Logger name.
        transport: httpx transport for the JSON dispatcher (tests).

    Returns:
        A new ``DuoLogger``.

    Example:
        >>> logger = new_logger(options=HandlerOptions(
        ...     remote_url="http://localhost:8081/logs",
        ... ))
        >>> logger.with_attrs(url="/x").with_group("values").info("foo")
    """
    handler = DuoHandler(stream, options, transport=transport)
    return DuoLogger(name, handler)


# =============================================================================
# Process-wide default logger
# =============================================================================

_default_logger: DuoLogger | None = None
_config_lock = threading.Lock()


def configure_logging(
    options: HandlerOptions | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> DuoLogger:
    """Create the process-wide default logger.

    Idempotent: once a default exists, later calls return it unchanged unless
    ``force`` is True, in which case it is replaced. Call at startup, before
    other threads start logging.

    Args:
        options: Handler options for the default logger.
        stream: Text sink, default ``sys.stderr``.
        force: Replace an existing default. The replaced logger's handlers
            are closed.

    Returns:
        The default logger.

    Example:
        >>> configure_logging(HandlerOptions(minimum_level="DEBUG"))
        >>> get_logger().debug("ready")
    """
    global _default_logger

    with _config_lock:
        if _default_logger is None or force:
            previous = _default_logger
            _default_logger = new_logger(stream, options)
            if previous is not None:
                _close_handlers(previous)
        return _default_logger


def get_logger() -> DuoLogger:
    """Return the default logger, configuring it with defaults if needed.

    Uses double-checked locking so the common path takes no lock.
    """
    global _default_logger

    if _default_logger is None:
        with _config_lock:
            if _default_logger is None:  # pragma: no branch
                _default_logger = new_logger()
    return cast(DuoLogger, _default_logger)


def set_default_logger(logger: DuoLogger) -> None:
    """Install ``logger`` as the process-wide default."""
    global _default_logger

    with _config_lock:
        _default_logger = logger


def reset_logging() -> None:
    """Drop the default logger (for testing).

    Its handlers are removed and closed, which also closes the HTTP client
    of its remote dispatcher.
    """
    global _default_logger

    with _config_lock:
        if _default_logger is not None:
            _close_handlers(_default_logger)
        _default_logger = None


def _close_handlers(logger: DuoLogger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
