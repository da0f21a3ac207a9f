"""duolog: colorized block logging with best-effort remote JSON delivery.

Built on the standard ``logging`` module. Each event is rendered as a
colorized text block on a stream and, when a collector URL is configured,
POSTed as JSON with a bounded wait.

Example:
    from duolog import ContextKey, HandlerOptions, LogContext, new_logger

    logger = new_logger(options=HandlerOptions(
        remote_url="http://localhost:8081/logs",
    ))

    # Text and JSON
    logger.info("Server started", port=8080)

    # Text only / JSON only
    logger.warn_text("Cache miss", key="user:42")
    logger.error_json("Payment failed", order_id=17)

    # Derived loggers
    api = logger.with_group("api").with_attrs(service="billing")
    api = api.with_context_keys(ContextKey("request_id"))

    with LogContext({ContextKey("request_id"): "abc123"}):
        api.info("Handling request")
"""

from duolog.context import ContextKey, LogContext, current_context
from duolog.dispatch import JSONDispatcher
from duolog.exceptions import ConfigurationError, DuoLogError, PayloadError
from duolog.formatters import BlockFormatter, JSONFormatter, LogEvent
from duolog.handler import DuoHandler, HandlerOptions
from duolog.levels import level_name, parse_level
from duolog.logger import (
    DuoLogger,
    configure_logging,
    get_logger,
    new_logger,
    reset_logging,
    set_default_logger,
)

__version__ = "0.1.0"

__all__ = [
    # Logger
    "DuoLogger",
    "new_logger",
    "configure_logging",
    "get_logger",
    "set_default_logger",
    "reset_logging",
    # Handler
    "DuoHandler",
    "HandlerOptions",
    "JSONDispatcher",
    # Formatting
    "BlockFormatter",
    "JSONFormatter",
    "LogEvent",
    # Context
    "ContextKey",
    "LogContext",
    "current_context",
    # Levels
    "level_name",
    "parse_level",
    # Errors
    "DuoLogError",
    "ConfigurationError",
    "PayloadError",
]
