"""Ambient logging context.

Handlers can declare a list of context keys. At event time each key is
looked up in the caller's ambient context and, when present, appended to the
event's attributes. The ambient context is either an explicit mapping passed
to the logging call (``ctx=...``) or the mapping currently installed by
``LogContext``.

``LogContext`` is backed by ``contextvars``, so values are isolated per thread
and per asyncio task, and nested contexts merge with their parent.

Example:
    request_id = ContextKey("request_id")
    logger = new_logger().with_context_keys(request_id, "user")

    with LogContext({request_id: "abc123"}, user="alice"):
        logger.info("Handling request")
        # attributes: request_id : abc123, user : alice

    logger.info("Explicit", ctx={"user": "bob"})
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from duolog.attributes import Attr

_EMPTY: Mapping[Any, Any] = {}

_log_context: contextvars.ContextVar[Mapping[Any, Any]] = contextvars.ContextVar(
    "duolog_context", default=_EMPTY
)


@dataclass(frozen=True)
class ContextKey:
    """Typed key for values placed in a logging context.

    A ``ContextKey("id")`` and the plain string ``"id"`` are different
    mapping keys, so values stored under a ``ContextKey`` cannot collide with
    values other libraries store under bare strings. Lookups still fall back
    to the plain string for compatibility.
    """

    name: str

    def __str__(self) -> str:
        return self.name


def as_context_key(key: ContextKey | str) -> ContextKey:
    """Wrap a plain string in a ``ContextKey``; pass ``ContextKey`` through."""
    if isinstance(key, ContextKey):
        return key
    return ContextKey(str(key))


def current_context() -> Mapping[Any, Any]:
    """Return the mapping installed by the innermost active ``LogContext``."""
    return _log_context.get()


class LogContext:
    """Context manager installing values into the ambient logging context.

    Usage:
        with LogContext(request_id="abc"):
            logger.info("Processing")

            with LogContext({ContextKey("step"): "capture"}):
                logger.info("Capturing")  # sees both values
    """

    def __init__(self, values: Mapping[Any, Any] | None = None, **kwargs: Any) -> None:
        """Collect the values to install.

        Args:
            values: Optional mapping, typically keyed by ``ContextKey``.
            **kwargs: Plain string keyed values. Applied after ``values``.
        """
        self._values: dict[Any, Any] = dict(values or {})
        self._values.update(kwargs)
        self._token: contextvars.Token[Mapping[Any, Any]] | None = None

    def __enter__(self) -> LogContext:
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._values})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    def __repr__(self) -> str:
        return f"LogContext({self._values!r})"


def resolve_context(
    keys: Iterable[ContextKey],
    ctx: Mapping[Any, Any] | None,
) -> list[Attr]:
    """Resolve declared context keys against a context mapping.

    For each key, in declared order, the typed key is tried first and the
    plain string name second. Missing keys and ``None`` values are skipped.
    Found values are stringified.

    Args:
        keys: Declared context keys.
        ctx: Mapping to search. ``None`` means the ambient ``LogContext``.

    Returns:
        List of ``(name, str(value))`` attributes.
    """
    if ctx is None:
        ctx = current_context()
    if not ctx:
        return []

    resolved: list[Attr] = []
    for key in keys:
        value = ctx.get(key)
        if value is None:
            value = ctx.get(key.name)
            if value is None:
                continue
        resolved.append((key.name, str(value)))
    return resolved
