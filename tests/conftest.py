"""Pytest configuration and fixtures for duolog tests.

Loggers under test write to in-memory streams, and remote JSON delivery goes
through ``httpx.MockTransport`` so no test touches the network.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from duolog import DuoLogger, HandlerOptions, new_logger, reset_logging
from tests.helpers import COLLECTOR_URL, Collector


@pytest.fixture(autouse=True)
def _reset_default_logger() -> Iterator[None]:
    """Drop the process-wide default logger after every test."""
    yield
    reset_logging()


@pytest.fixture
def stream() -> io.StringIO:
    """In-memory text sink."""
    return io.StringIO()


@pytest.fixture
def collector() -> Iterator[Collector]:
    """Capturing collector that answers 200 immediately."""
    collector = Collector()
    yield collector
    collector.release.set()


@pytest.fixture
def make_logger(
    stream: io.StringIO, collector: Collector
) -> Callable[..., DuoLogger]:
    """Factory for uncolored loggers writing to ``stream``.

    Keyword arguments are ``HandlerOptions`` fields. ``remote=True`` points
    JSON output at the ``collector`` fixture.

    Example:
        >>> logger = make_logger(remote=True, minimum_level="DEBUG")
        >>> logger.info("hello", user="alice")
    """

    def _make(remote: bool = False, **options: Any) -> DuoLogger:
        options.setdefault("colorize", False)
        if remote:
            options.setdefault("remote_url", COLLECTOR_URL)
        return new_logger(
            stream,
            HandlerOptions(**options),
            transport=collector.transport,
        )

    return _make
