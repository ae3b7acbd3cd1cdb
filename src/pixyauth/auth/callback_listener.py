"""Loopback HTTP listener that receives the issuer's authorization redirect.

:class:`CallbackListener` binds an :class:`http.server.ThreadingHTTPServer` to a
loopback address, serves it on a daemon thread, and turns the first
``GET /callback`` it sees into exactly one
:class:`~pixyauth.models.CallbackResponse` on the queue handed to
:meth:`CallbackListener.await_response`. The waiting flow blocks on that
queue. Each connection is handled on its own daemon thread, so an idle
browser preconnect never holds up the redirect or shutdown.

Later requests to ``/callback`` (browser retries, prefetches) get an HTML
notice and never reach the queue. Other paths get a 404, since browsers ask
for ``/favicon.ico`` alongside the redirect.

There is no timeout: if the redirect never arrives the caller waits until
the process is interrupted.
"""

from __future__ import annotations

import ipaddress
import logging
import queue
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from pixyauth.exceptions import AuthError
from pixyauth.models import CallbackResponse

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

INCORRECT_STATE = "callback completed with incorrect state"
NO_ERROR_OR_CODE = "callback completed with no error or code"

_PAGE_AUTHORIZED = "You've been authorized and may now close this browser page."
_PAGE_FAILED = "An error occurred. Please check terminal for output."
_PAGE_ALREADY_DONE = "This sign-in has already completed. You may close this browser page."
_PAGE_NOT_FOUND = "Not found."


def _first(params: dict[str, list[str]], name: str) -> str:
    values = params.get(name)
    return values[0] if values else ""


def evaluate_callback(params: dict[str, list[str]], expected_state: str) -> CallbackResponse:
    """Map callback query parameters onto a :class:`CallbackResponse`.

    The checks run in a fixed order: state, then ``error``, then ``code``.
    A wrong state wins even when a code is present, and an issuer error wins
    over a code.

    Args:
        params: Parsed query string (:func:`urllib.parse.parse_qs` shape).
        expected_state: The state generated for this flow.
    """
    if _first(params, "state") != expected_state:
        return CallbackResponse(error=INCORRECT_STATE)

    callback_error = _first(params, "error")
    if callback_error:
        description = _first(params, "error_description")
        return CallbackResponse(error=f"{callback_error}: {description}")

    code = _first(params, "code")
    if code:
        return CallbackResponse(code=code)

    return CallbackResponse(error=NO_ERROR_OR_CODE)


class _CallbackRequestHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self._respond(404, _PAGE_NOT_FOUND)
            return

        body = self.server.listener.handle_callback(parse_qs(parsed.query))
        self._respond(200, body)

    def _respond(self, status: int, body: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


class _CallbackHTTPServer(ThreadingHTTPServer):
    # No other process may share the callback port.
    allow_reuse_port = False
    # Browsers preconnect idle sockets; each connection gets its own thread
    # and none of them may hold up shutdown.
    daemon_threads = True

    def __init__(self, address: tuple[str, int], listener: CallbackListener) -> None:
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, _CallbackRequestHandler)
        self.listener = listener


class CallbackListener:
    """Receive one authorization redirect on ``http://<host>:<port>/callback``.

    The socket is bound lazily, on the first call to :attr:`callback_url` or
    :meth:`await_response`, so the URL is known before the server starts and
    stays the same for fixed and ephemeral (``port=0``) ports alike.

    Args:
        host: Loopback address to bind. Public interfaces are rejected.
        port: TCP port; ``0`` lets the OS choose.

    Example::

        listener = CallbackListener(port=0)
        responses: queue.Queue[CallbackResponse] = queue.Queue(maxsize=1)
        listener.await_response(responses, state)
        webbrowser.open(authorize_url_with(listener.callback_url))
        result = responses.get()
        listener.close()
    """

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        if not _is_loopback(host):
            raise ValueError(f"Callback listener must bind a loopback address, got {host!r}")
        self._host = host
        self._port = port
        self._server: Optional[_CallbackHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._callback_url: Optional[str] = None
        self._lock = threading.Lock()
        self._closed = False
        # Set by await_response; read on the server thread.
        self._responses: Optional[queue.Queue[CallbackResponse]] = None
        self._expected_state = ""
        self._delivered = False

    @property
    def callback_url(self) -> str:
        """``http://<bound-address>/callback``; stable for the listener's lifetime."""
        if self._callback_url is None:
            server = self._bind()
            host, port = server.server_address[:2]
            if ":" in host:
                host = f"[{host}]"
            self._callback_url = f"http://{host}:{port}{CALLBACK_PATH}"
        return self._callback_url

    def get_callback_url(self) -> str:
        return self.callback_url

    def await_response(
        self,
        response_queue: queue.Queue[CallbackResponse],
        expected_state: str,
    ) -> None:
        """Start serving on a background thread and return immediately.

        The handler writes exactly one :class:`CallbackResponse` to
        *response_queue* for the first ``/callback`` request it receives.

        Raises:
            AuthError: If the loopback port cannot be bound.
            RuntimeError: If the listener is already serving or closed.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("callback listener is closed")
            if self._thread is not None:
                raise RuntimeError("callback listener is already awaiting a response")
            self._responses = response_queue
            self._expected_state = expected_state
            self._delivered = False

        server = self._bind()
        self._thread = threading.Thread(
            target=server.serve_forever,
            name="pixyauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Listening for the authorization callback on %s", self.callback_url)

    def handle_callback(self, params: dict[str, list[str]]) -> str:
        """Deliver the outcome of a ``/callback`` request; return the page to show.

        Runs on a connection thread. Only the first call writes to the queue.
        """
        with self._lock:
            if self._delivered or self._responses is None:
                logger.debug("Ignoring repeated callback request")
                return _PAGE_ALREADY_DONE
            self._delivered = True
            responses = self._responses

        response = evaluate_callback(params, self._expected_state)
        responses.put_nowait(response)
        return _PAGE_FAILED if response.error is not None else _PAGE_AUTHORIZED

    def close(self) -> None:
        """Shut the server down and release the socket. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            server, thread = self._server, self._thread

        if server is None:
            return
        if thread is not None:
            server.shutdown()
            thread.join()
        server.server_close()
        logger.debug("Callback listener closed")

    def _bind(self) -> _CallbackHTTPServer:
        if self._server is None:
            try:
                self._server = _CallbackHTTPServer((self._host, self._port), self)
            except OSError as exc:
                raise AuthError(
                    f"could not listen for the callback on {self._host}:{self._port}: {exc}"
                ) from exc
        return self._server


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False
