"""Best-effort JSON delivery to a remote log collector.

Each dispatch serializes the payload on the calling thread, then POSTs it
from a daemon worker thread. The caller waits for the worker at most
``timeout`` seconds:

- worker finishes first: its outcome (success, HTTP error status, transport
  error) has been logged to ``duolog.dispatch`` and ``dispatch`` returns True;
- timeout fires first: ``dispatch`` returns False and the request is
  abandoned. It is not cancelled; it keeps running until the transport's own
  ``request_timeout`` ends it.

Nothing is retried apart from the optional connection retries of
``httpx.HTTPTransport``, and no network failure ever reaches the caller.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

import httpx

from duolog.exceptions import PayloadError

logger = logging.getLogger("duolog.dispatch")

DEFAULT_TIMEOUT = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0

_HEADERS = {"Content-Type": "application/json"}


class JSONDispatcher:
    """POSTs JSON log payloads to one URL, bounded by a timeout.

    Thread Safety:
        Safe to share between handlers and threads. The underlying
        ``httpx.Client`` is created lazily under a lock and reused.

    Example:
        >>> dispatcher = JSONDispatcher("http://localhost:8081/logs")
        >>> dispatcher.dispatch({"time": "...", "level": "INFO", "msg": "hi"})
        True
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retries: int = 0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Configure the dispatcher. No connection is made here.

        Args:
            url: Full URL of the collector endpoint.
            timeout: Seconds ``dispatch`` waits for the POST before
                abandoning it.
            request_timeout: httpx timeout for the request itself; bounds
                how long an abandoned worker thread can live.
            retries: Connection retries performed by ``httpx.HTTPTransport``.
                Ignored when ``transport`` is given.
            transport: Custom httpx transport (``httpx.MockTransport`` in
                tests).
        """
        self.url = url
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.retries = retries
        self._transport = transport
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    transport = self._transport or httpx.HTTPTransport(
                        retries=self.retries
                    )
                    self._client = httpx.Client(
                        transport=transport,
                        timeout=self.request_timeout,
                        headers=_HEADERS,
                    )
        return self._client

    def close(self) -> None:
        """Close the HTTP client. In-flight abandoned requests may fail."""
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def dispatch(self, payload: dict[str, Any]) -> bool:
        """Send one payload, waiting at most ``self.timeout`` seconds.

        Args:
            payload: JSON-serializable dict.

        Returns:
            True if the POST completed (successfully or not) within the
            timeout, False if it was abandoned.

        Raises:
            PayloadError: If the payload cannot be serialized. Nothing is
                sent in that case.
        """
        try:
            body = json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise PayloadError(f"cannot serialize log payload: {exc}") from exc

        done = threading.Event()
        worker = threading.Thread(
            target=self._post,
            args=(body, done),
            name="duolog-dispatch",
            daemon=True,
        )
        worker.start()

        if done.wait(self.timeout):
            return True
        logger.debug(
            "Abandoned log dispatch to %s after %.2fs", self.url, self.timeout
        )
        return False

    def _post(self, body: bytes, done: threading.Event) -> None:
        try:
            response = self.client.post(self.url, content=body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Error while sending to log service %s: %s", self.url, exc)
        else:
            if response.status_code >= 400:
                logger.warning(
                    "Log service %s answered %d", self.url, response.status_code
                )
            else:
                logger.debug(
                    "Log service %s answered %d", self.url, response.status_code
                )
        finally:
            done.set()
