"""HTTP callback server for the OAuth flow.

This module contains the loopback HTTP server that receives the OAuth
redirect, separated from high-level OAuth orchestration.

The server exposes two routes:

- ``/authorize`` redirects the browser to the provider (or signup) URL, so
  the link shown in the terminal stays short and local.
- ``/callback`` receives the provider redirect and resolves the attempt's
  single outcome: Authorized, Denied or CallbackFailure.

Everything else is a 404. The listener binds the IPv4 loopback address
only and is owned by one flow attempt.
"""

from __future__ import annotations

import errno
import html
import http.server
import logging
import secrets
import sys
import threading
import time
import urllib.parse
from dataclasses import dataclass

from .constants import OAuthDefaults, OAuthProtocol
from .exceptions import CallbackBindError, CallbackPortInUseError

_logger = logging.getLogger(__name__)

_ADDRESS_IN_USE_ERRNOS = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", 10048)}


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Authorized:
    """The provider redirected back with a code and the expected state."""

    code: str
    state: str

    def __repr__(self) -> str:
        return "Authorized(code='***', state='***')"


@dataclass(frozen=True)
class Denied:
    """The user declined access at the provider."""

    reason: str


@dataclass(frozen=True)
class CallbackFailure:
    """The callback could not be accepted.

    ``error_code`` is either the provider's error or one of the local codes
    ``state_mismatch`` and ``missing_code``.
    """

    error_code: str
    description: str | None = None


@dataclass(frozen=True)
class TimedOut:
    """No callback arrived before the flow's deadline."""

    timeout: float


CallbackOutcome = Authorized | Denied | CallbackFailure
Outcome = CallbackOutcome | TimedOut


class CompletionSignal:
    """One-shot, thread-safe completion channel.

    Exactly one of the callback route or the flow's timer resolves it;
    every later resolution attempt is ignored and reported as ``False``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._outcome: Outcome | None = None

    def resolve(self, outcome: Outcome) -> bool:
        """Record ``outcome`` if nothing has been recorded yet.

        Returns:
            True if this call won, False if the signal was already resolved
        """
        with self._lock:
            if self._event.is_set():
                _logger.debug(
                    "Ignoring %s: attempt already resolved as %s",
                    type(outcome).__name__,
                    type(self._outcome).__name__,
                )
                return False
            self._outcome = outcome
            self._event.set()
            return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until resolved or ``timeout`` elapses; True if resolved."""
        return self._event.wait(timeout=timeout)

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def outcome(self) -> Outcome | None:
        with self._lock:
            return self._outcome


# =============================================================================
# HTML pages
# =============================================================================

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{title}</title>
  </head>
  <body>
    <div style="max-width: 640px; margin: 80px auto;
                font-family: system-ui, -apple-system, sans-serif;">
      <h1>{title}</h1>
      <p>{message}</p>
      <p>Return to your terminal. This window will close automatically.</p>
    </div>
    <script>setTimeout(() => window.close(), 2000);</script>
  </body>
</html>
"""


def _render_page(title: str, message: str) -> str:
    return _PAGE_TEMPLATE.format(title=html.escape(title), message=html.escape(message))


_SUCCESS_PAGE = _render_page("Authorization successful", "You are now logged in.")
_DENIED_PAGE = _render_page("Authorization cancelled", "You declined access.")
_STATE_MISMATCH_PAGE = _render_page(
    "Authorization failed", "Invalid state parameter. Authorization failed."
)
_MISSING_CODE_PAGE = _render_page(
    "Authorization failed", "Invalid request - no authorization code received."
)


# =============================================================================
# Server
# =============================================================================


class OAuthCallbackServer(http.server.ThreadingHTTPServer):
    """Loopback HTTP server for one OAuth attempt.

    Requests are handled on daemon threads so a stalled browser
    connection cannot block the real callback. The outcome is delivered
    through ``completion``; the owner must call ``close()`` (or use the
    server as a context manager) on every exit path.

    Raises:
        CallbackPortInUseError: If the port is already bound
        CallbackBindError: If listening fails for any other reason
    """

    daemon_threads = True
    # SO_REUSEADDR lets the fixed port be re-bound right after close on
    # POSIX. On Windows it would allow two listeners on one port.
    allow_reuse_address = sys.platform != "win32"

    def __init__(
        self,
        authorize_url: str,
        expected_state: str,
        signup_url: str | None = None,
        host: str = OAuthDefaults.CALLBACK_HOST,
        port: int = OAuthDefaults.CALLBACK_PORT,
    ) -> None:
        self.authorize_url = authorize_url
        self.signup_url = signup_url
        self.expected_state = expected_state
        self.completion = CompletionSignal()
        self.started_at = time.monotonic()

        self._thread: threading.Thread | None = None
        self._closed = False
        self._close_lock = threading.Lock()

        try:
            super().__init__((host, port), OAuthCallbackHandler, bind_and_activate=True)
        except OSError as e:
            # TCPServer closes its own socket when binding fails
            if e.errno in _ADDRESS_IN_USE_ERRNOS or getattr(e, "winerror", None) == 10048:
                raise CallbackPortInUseError(port) from e
            raise CallbackBindError(host, port, e.strerror or str(e)) from e

        _logger.debug("OAuth callback server listening on %s:%s", host, self.port)

    @property
    def port(self) -> int:
        return int(self.server_address[1])

    def start(self) -> None:
        """Serve requests on a background daemon thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="oauth-callback-server",
            daemon=True,
        )
        self._thread.start()

    def wait_for_outcome(self, timeout: float) -> Outcome:
        """Wait for the callback, racing ``timeout`` seconds.

        The timer resolves the same one-shot signal as the callback route,
        so whichever fires first is the only outcome ever observed.
        """
        if not self.completion.wait(timeout):
            self.completion.resolve(TimedOut(timeout))
        outcome = self.completion.outcome
        assert outcome is not None
        return outcome

    def close(self) -> None:
        """Stop serving and release the listening socket. Idempotent."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        if self._thread is not None:
            self.shutdown()
            self._thread.join(timeout=OAuthDefaults.SERVER_JOIN_TIMEOUT)
        self.server_close()
        _logger.debug("OAuth callback server on port %s closed", self.port)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> OAuthCallbackServer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class OAuthCallbackHandler(http.server.BaseHTTPRequestHandler):
    """Handle the authorize redirect and the OAuth callback."""

    server: OAuthCallbackServer

    # Socket timeout so a speculative browser connection that never sends
    # a request line does not pin a handler thread.
    timeout = 5

    def do_GET(self) -> None:
        """Handle GET request."""
        parsed = urllib.parse.urlparse(self.path)
        params = urllib.parse.parse_qs(parsed.query)

        # Query strings carry the code and state; only the path is logged.
        _logger.debug("Callback server request: GET %s", parsed.path)

        if parsed.path == OAuthProtocol.AUTHORIZE_PATH:
            self._handle_authorize(params)
            return

        if parsed.path == OAuthProtocol.CALLBACK_PATH:
            self._handle_callback(params)
            return

        self._send_not_found()

    def do_POST(self) -> None:
        """Handle POST request (not supported)."""
        self._send_not_found()

    # Every other method gets the same 404 as an unknown path.
    do_HEAD = do_POST
    do_PUT = do_POST
    do_PATCH = do_POST
    do_DELETE = do_POST
    do_OPTIONS = do_POST

    def log_message(self, fmt: str, *args: object) -> None:
        """Suppress default access logs; they would include the query string."""
        pass

    def _handle_authorize(self, params: dict[str, list[str]]) -> None:
        is_signup = _first(params, "signup") == "true"
        target = self.server.authorize_url
        if is_signup and self.server.signup_url:
            target = self.server.signup_url

        self.send_response(OAuthProtocol.HTTP_FOUND)
        self.send_header("Location", target)
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _handle_callback(self, params: dict[str, list[str]]) -> None:
        code = _first(params, "code")
        state = _first(params, "state")
        error = _first(params, "error")

        # Resolve before responding: a client that saw a page sees the outcome.
        if error:
            if error == OAuthProtocol.ERROR_ACCESS_DENIED:
                self.server.completion.resolve(Denied(error))
                self._send_html(OAuthProtocol.HTTP_OK, _DENIED_PAGE)
            else:
                description = _first(params, "error_description")
                self.server.completion.resolve(CallbackFailure(error, description))
                self._send_html(
                    OAuthProtocol.HTTP_BAD_REQUEST,
                    _render_page("Authorization failed", f"The provider returned: {error}"),
                )
            return

        if state is None or not _states_match(state, self.server.expected_state):
            _logger.warning("OAuth callback rejected: state parameter missing or mismatched")
            self.server.completion.resolve(
                CallbackFailure(
                    OAuthProtocol.ERROR_STATE_MISMATCH,
                    "OAuth callback state does not match expected value",
                )
            )
            self._send_html(OAuthProtocol.HTTP_BAD_REQUEST, _STATE_MISMATCH_PAGE)
            return

        if not code:
            self.server.completion.resolve(
                CallbackFailure(
                    OAuthProtocol.ERROR_MISSING_CODE,
                    "No authorization code in callback URL",
                )
            )
            self._send_html(OAuthProtocol.HTTP_BAD_REQUEST, _MISSING_CODE_PAGE)
            return

        self.server.completion.resolve(Authorized(code=code, state=state))
        self._send_html(OAuthProtocol.HTTP_OK, _SUCCESS_PAGE)

    def _send_html(self, status: int, body: str) -> None:
        """Send HTML response."""
        encoded = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(encoded)

    def _send_not_found(self) -> None:
        self.send_error(OAuthProtocol.HTTP_NOT_FOUND, "Not Found")


def _first(params: dict[str, list[str]], key: str) -> str | None:
    values = params.get(key)
    return values[0] if values else None


def _states_match(received: str, expected: str) -> bool:
    # Constant-time, exact byte comparison
    return secrets.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


__all__ = [
    "Authorized",
    "Denied",
    "CallbackFailure",
    "TimedOut",
    "CallbackOutcome",
    "Outcome",
    "CompletionSignal",
    "OAuthCallbackServer",
    "OAuthCallbackHandler",
]
