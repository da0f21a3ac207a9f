"""Test helpers for duolog.

Provides a capturing httpx transport standing in for the remote log
collector, and a parser splitting rendered text output into blocks.

Example:
    from tests.helpers import Collector, split_blocks

    collector = Collector()
    logger = new_logger(stream, HandlerOptions(remote_url=URL),
                        transport=collector.transport)
    logger.info_json("hello")
    assert collector.payloads()[0]["msg"] == "hello"
"""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx

from duolog.formatters import CLOSING_BANNER

COLLECTOR_URL = "http://collector.test/logs"


class Collector:
    """In-process stand-in for the remote collector.

    Records every request it receives. Can answer with a fixed status,
    raise a transport error, or block until released to simulate a server
    that never answers.
    """

    def __init__(
        self,
        status: int = 200,
        error: Exception | None = None,
        block: bool = False,
    ) -> None:
        self.status = status
        self.error = error
        self.release = threading.Event()
        if not block:
            self.release.set()
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        # Bounded so a forgotten release never hangs the suite.
        self.release.wait(5.0)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status)

    def payloads(self) -> list[dict[str, Any]]:
        """Decoded JSON bodies of all received requests."""
        with self._lock:
            return [json.loads(request.content) for request in self.requests]


def split_blocks(output: str) -> list[list[str]]:
    """Split uncolored text output into blocks of lines.

    Each block runs from a level banner to the closing banner, inclusive.

    Raises:
        AssertionError: If a line appears outside a block or a block is left
            open, which means two outputs were interleaved.
    """
    blocks: list[list[str]] = []
    current: list[str] | None = None
    for line in output.splitlines():
        if current is None:
            assert line.startswith("===============") and line != CLOSING_BANNER, (
                f"line outside of any block: {line!r}"
            )
            current = [line]
            continue
        current.append(line)
        if line == CLOSING_BANNER:
            blocks.append(current)
            current = None
    assert current is None, f"unterminated block: {current!r}"
    return blocks


def attr_lines(block: list[str]) -> list[str]:
    """Attribute lines of a block, without the leading tab and dash."""
    return [line[len("\t- ") :] for line in block if line.startswith("\t- ")]
