"""Threaded HTTP listener with a path route table and bounded shutdown.

Purpose
-------
Serve the daemon's ``health``/``metrics``/``receive`` routes and the standalone
metrics endpoint from one small server built on :mod:`http.server`.

Contents
--------
* :class:`Request` / :class:`Response` - plain values passed to route handlers.
* :class:`PayloadTooLarge` - raised by :meth:`Request.read_body` past the limit.
* :class:`RoutedHTTPServer` - threaded server running on a worker thread.

System Role
-----------
Adapter used by :mod:`logzd.adapters.daemon` and
:mod:`logzd.adapters.metrics_store`. Every request is logged through the
``logging`` module with its status and duration.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from socketserver import ThreadingMixIn
from typing import IO, Callable, Mapping
from urllib.parse import urlparse

from logzd.domain.errors import ShutdownTimeoutError

logger = logging.getLogger(__name__)


class PayloadTooLarge(Exception):
    """Raised when a request body exceeds the caller's limit."""


@dataclass(slots=True)
class Request:
    method: str
    path: str
    headers: Mapping[str, str]
    content_length: int
    _rfile: IO[bytes] | None = field(default=None, repr=False)

    def read_body(self, limit: int) -> bytes:
        """Return at most ``limit`` bytes, raising :class:`PayloadTooLarge` beyond it."""
        if self.content_length > limit:
            raise PayloadTooLarge(f"body of {self.content_length} bytes exceeds {limit}")
        if self._rfile is None or self.content_length <= 0:
            return b""
        return self._rfile.read(self.content_length)


@dataclass(slots=True, frozen=True)
class Response:
    status: int
    body: bytes = b""
    content_type: str = "text/plain; charset=utf-8"

    @classmethod
    def text(cls, status: int, body: str) -> "Response":
        return cls(status, body.encode("utf-8"))

    @classmethod
    def json(cls, status: int, body: str) -> "Response":
        return cls(status, body.encode("utf-8"), "application/json")


Handler = Callable[[Request], Response]


class _ThreadedHTTPServer(ThreadingMixIn, HTTPServer):
    daemon_threads = False
    block_on_close = True
    allow_reuse_address = True


class RoutedHTTPServer:
    """Dispatch exact request paths to handlers on a background thread."""

    def __init__(
        self,
        host: str,
        port: int,
        routes: Mapping[str, Handler],
        *,
        read_timeout: float | None = None,
        name: str = "logzd-http",
    ) -> None:
        self._routes = dict(routes)
        self._name = name
        self._thread: threading.Thread | None = None
        self._server = _ThreadedHTTPServer((host, port), self._build_handler(read_timeout))

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    @property
    def routes(self) -> list[str]:
        return sorted(self._routes)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._server.serve_forever, name=self._name, daemon=True)
        self._thread.start()
        logger.info("HTTP listener %s bound to %s:%s", self._name, *self.address)

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop accepting connections and wait for in-flight requests.

        Raises
        ------
        ShutdownTimeoutError
            When requests are still running after ``timeout`` seconds.
        """

        closer = threading.Thread(target=self._close, name=f"{self._name}-shutdown", daemon=True)
        closer.start()
        closer.join(timeout)
        if closer.is_alive():
            raise ShutdownTimeoutError(f"{self._name} did not drain within {timeout:.1f}s")
        self._thread = None
        logger.info("HTTP listener %s stopped", self._name)

    def _close(self) -> None:
        if self.running:
            self._server.shutdown()
        self._server.server_close()

    def _dispatch(self, request: Request) -> Response:
        handler = self._routes.get(request.path)
        if handler is None:
            return Response.text(404, "Not Found\n")
        try:
            return handler(request)
        except Exception as exc:  # noqa: BLE001
            logger.error("Handler for %s failed", request.path, exc_info=exc)
            return Response.text(500, "Internal Server Error\n")

    def _build_handler(self, read_timeout: float | None) -> type[BaseHTTPRequestHandler]:
        dispatch = self._dispatch

        class _Handler(BaseHTTPRequestHandler):
            timeout = read_timeout
            server_version = "logzd"

            def _handle(self) -> None:
                started = time.perf_counter()
                length_header = self.headers.get("Content-Length") or "0"
                try:
                    length = int(length_header)
                except ValueError:
                    length = 0
                request = Request(
                    method=self.command,
                    path=urlparse(self.path).path,
                    headers={key: value for key, value in self.headers.items()},
                    content_length=length,
                    _rfile=self.rfile,
                )
                response = dispatch(request)
                self.send_response(response.status)
                self.send_header("Content-Type", response.content_type)
                self.send_header("Content-Length", str(len(response.body)))
                self.end_headers()
                if response.body and self.command != "HEAD":
                    self.wfile.write(response.body)
                logger.info(
                    "%s %s -> %d (%.1f ms) from %s",
                    self.command,
                    request.path,
                    response.status,
                    (time.perf_counter() - started) * 1000,
                    self.client_address[0],
                )

            do_GET = _handle  # noqa: N815
            do_POST = _handle  # noqa: N815
            do_PUT = _handle  # noqa: N815
            do_DELETE = _handle  # noqa: N815
            do_HEAD = _handle  # noqa: N815

            def log_message(self, format: str, *args: object) -> None:  # noqa: A002
                logger.debug("%s - %s", self.address_string(), format % args)

        return _Handler


__all__ = ["PayloadTooLarge", "Request", "Response", "RoutedHTTPServer"]
