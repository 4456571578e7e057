"""Game server entry point: the health-check HTTP endpoint and the game loop."""

from __future__ import annotations

import argparse
import logging
import os
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

SERVER_CAPACITY = 5500
"""Maximum number of players that can play concurrently."""

DEFAULT_METRIC_HOST = "0.0.0.0"
DEFAULT_METRIC_PORT = "9669"

_ROUTES = {"/ping": b"pong"}

_log = logging.getLogger(__name__)


class PingHandler(BaseHTTPRequestHandler):
    """Answers ``GET /ping`` with ``pong``; every other path is not found."""

    server_version = "ecsgame"

    def _route(self) -> bytes | None:
        return _ROUTES.get(urlsplit(self.path).path)

    def _reply(self, status: int, body: bytes, *, head: bool = False) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if not head:
            self.wfile.write(body)

    def _answer(self, head: bool) -> None:
        body = self._route()
        if body is None:
            self._reply(404, b"", head=head)
        else:
            self._reply(200, body, head=head)

    def do_GET(self) -> None:  # noqa: N802
        self._answer(head=False)

    def do_HEAD(self) -> None:  # noqa: N802
        self._answer(head=True)

    def _not_allowed(self) -> None:
        status = 404 if self._route() is None else 405
        self._reply(status, b"")

    do_POST = do_PUT = do_DELETE = do_PATCH = _not_allowed

    def log_message(self, format: str, *args: object) -> None:
        """Send request logs to the module logger instead of stderr."""
        _log.debug("%s - %s", self.address_string(), format % args)


def server_address(environ: Mapping[str, str] | None = None) -> tuple[str, int]:
    """Host and port to listen on, from ``METRIC_HOST`` and ``METRIC_PORT``."""
    env = os.environ if environ is None else environ
    host = env.get("METRIC_HOST", DEFAULT_METRIC_HOST)
    port_text = env.get("METRIC_PORT", DEFAULT_METRIC_PORT)
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid METRIC_PORT {port_text!r}") from None
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"invalid METRIC_PORT {port_text!r}")
    return host, port


def create_server(host: str, port: int) -> ThreadingHTTPServer:
    """Bind the health-check HTTP server to ``host:port``."""
    server = ThreadingHTTPServer((host, port), PingHandler)
    server.daemon_threads = True
    return server


def _run_game_app(systems: Iterable[Callable[[], object]] = ()) -> int:
    """Run the game application for a single update and return how many systems ran.

    With no runner loop installed the application updates once and finishes.
    """
    count = 0
    for system in systems:
        system()
        count += 1
    _log.info("game app finished after one update with %d systems", count)
    return count


def main(argv: Sequence[str] | None = None) -> int:
    """Start the HTTP endpoint in the background, then run the game app."""
    parser = argparse.ArgumentParser(
        prog="ecsgame-server", description="Run the game server."
    )
    parser.parse_args(argv)

    server = create_server(*server_address())
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        _run_game_app()
    finally:
        server.shutdown()
        server.server_close()
        thread.join()
    return 0