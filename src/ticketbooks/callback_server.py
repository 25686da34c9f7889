"""One-shot HTTPS server receiving the OAuth2 authorization code.

The redirect URI registered with pretix and Exact points at `/callback`
on this server. It serves until one request carries a `code`, then
shuts down.
"""

import asyncio
import ssl
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import structlog

logger = structlog.get_logger(__name__)


class CallbackServerError(Exception):
    """The callback server could not be started."""


class _CallbackHTTPServer(HTTPServer):
    code: str | None = None
    # Called from the serving thread with the received code
    on_code: Callable[[str], None] | None = None


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)

        if parsed.path == "/":
            self._respond(200, "OK")
        elif parsed.path == "/callback":
            code = parse_qs(parsed.query).get("code", [None])[0]
            if not code:
                self._respond(400, "Missing authorization code")
                return
            self._respond(200, "Authorization received. You can close this window.")
            self.server.code = code
            if self.server.on_code is not None:
                self.server.on_code(code)
        else:
            self._respond(404, "Not Found")

    def _respond(self, status: int, message: str) -> None:
        body = message.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback_request", request=format % args)


def create_callback_server(
    host: str, port: int, ssl_context: ssl.SSLContext | None = None
) -> _CallbackHTTPServer:
    """Bind the callback server. Without an SSL context it serves plain HTTP."""
    try:
        server = _CallbackHTTPServer((host, port), _CallbackHandler)
    except OSError as e:
        raise CallbackServerError(f"Cannot bind {host}:{port}: {e}") from e

    if ssl_context is not None:
        server.socket = ssl_context.wrap_socket(server.socket, server_side=True)
    return server


async def serve_until_code(server: _CallbackHTTPServer) -> str:
    """Serve on a daemon thread until a request delivers a code.

    The server is shut down when this returns or is cancelled.
    """
    loop = asyncio.get_running_loop()
    received: asyncio.Future[str] = loop.create_future()

    def resolve(code: str) -> None:
        if not received.done():
            received.set_result(code)

    server.on_code = lambda code: loop.call_soon_threadsafe(resolve, code)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        return await received
    finally:
        # Returns once serve_forever has left its poll loop
        server.shutdown()
        thread.join()


def load_ssl_context(ssl_cert: Path, ssl_key: Path) -> ssl.SSLContext:
    """Server SSL context from PEM certificate and key files."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        context.load_cert_chain(certfile=ssl_cert, keyfile=ssl_key)
    except (OSError, ssl.SSLError) as e:
        raise CallbackServerError(f"Cannot load certificate {ssl_cert}: {e}") from e
    return context


async def wait_for_callback(
    ssl_cert: Path, ssl_key: Path, host: str, port: int
) -> str:
    """Serve HTTPS until the OAuth2 callback arrives and return its code."""
    server = create_callback_server(host, port, load_ssl_context(ssl_cert, ssl_key))
    logger.info("callback_server_listening", host=host, port=port)
    try:
        code = await serve_until_code(server)
    finally:
        server.server_close()

    logger.info("callback_received")
    return code
