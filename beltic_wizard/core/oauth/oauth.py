"""OAuth 2.0 Authorization Code + PKCE flow for Beltic authentication.

This module provides high-level OAuth flow orchestration.
HTTP server infrastructure is in callback_server.py.
"""

from __future__ import annotations

import enum
import logging
import urllib.parse
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.markup import escape

from .browser import open_url
from .callback_server import (
    Authorized,
    CallbackFailure,
    Denied,
    OAuthCallbackServer,
    Outcome,
    TimedOut,
)
from .constants import (
    OAuthClient,
    OAuthDefaults,
    OAuthProtocol,
    PkceProtocol,
    ProjectLinks,
    ValidationLimits,
)
from .exceptions import (
    AuthorizationDeniedError,
    AuthorizationProviderError,
    AuthorizationTimeoutError,
    CallbackBindError,
    CallbackPortInUseError,
    InvalidTokenResponseError,
    OAuthError,
    OAuthFlowError,
    StateMismatchError,
    ValidationError,
)
from .http_client import HttpClient, HttpError, HttpxHttpClient
from .pkce import PkceCodes, generate_pkce, generate_state
from .token_exchanger import TokenBundle, TokenExchangeContext, TokenExchanger
from .validation import (
    validate_port,
    validate_range,
    validate_scopes,
    validate_string,
    validate_url,
)

_logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def _validate_endpoint(value: str, field_name: str) -> str:
    """Endpoints must be HTTPS unless they point at this machine."""
    validate_url(value, field_name)
    host = urllib.parse.urlparse(value).hostname or ""
    if host not in _LOOPBACK_HOSTS:
        validate_url(value, field_name, require_https=True)
    return value


@dataclass(frozen=True)
class OAuthConfig:
    """Immutable configuration for one OAuth flow.

    Defaults describe the Beltic platform; every field can be overridden
    by the caller. Nothing mutates a config once it is built.

    Attributes:
        authorization_endpoint: Provider authorize URL (may carry its own query)
        token_endpoint: URL the code is exchanged at
        client_id: Public OAuth client ID
        scopes: Requested scopes, order preserved
        signup_endpoint: Optional signup page for new users
        app_name: Name used in user-facing messages
        authorize_params: Provider-specific extra authorize parameters
        port: Fixed loopback callback port (1024-65535)
        timeout: Seconds to wait for the callback (1-3600)

    Raises:
        ValidationError: If any parameter fails validation
    """

    authorization_endpoint: str = OAuthClient.AUTHORIZE_URL
    token_endpoint: str = OAuthClient.CONSOLE_URL + OAuthClient.TOKEN_PATH
    client_id: str = OAuthClient.CLIENT_ID
    scopes: tuple[str, ...] = OAuthClient.SCOPES
    signup_endpoint: str | None = None
    app_name: str = OAuthClient.APP_NAME
    authorize_params: Mapping[str, str] = field(
        default_factory=lambda: {"provider": OAuthClient.PROVIDER}
    )
    port: int = OAuthDefaults.CALLBACK_PORT
    timeout: float = OAuthDefaults.CALLBACK_TIMEOUT

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        _validate_endpoint(self.authorization_endpoint, "authorization_endpoint")
        _validate_endpoint(self.token_endpoint, "token_endpoint")
        if self.signup_endpoint is not None:
            _validate_endpoint(self.signup_endpoint, "signup_endpoint")
        validate_string(self.client_id, "client_id", allow_empty=False)
        validate_string(self.app_name, "app_name", allow_empty=False)
        validate_port(self.port, "port")
        validate_range(
            self.timeout,
            "timeout",
            min_value=ValidationLimits.MIN_TIMEOUT_SECONDS,
            max_value=ValidationLimits.MAX_TIMEOUT_SECONDS,
        )

        scopes = validate_scopes(self.scopes, "scopes")
        if not scopes:
            raise ValidationError("scopes", self.scopes, "at least one scope is required")
        object.__setattr__(self, "scopes", scopes)

        params: dict[str, str] = {}
        for key, value in dict(self.authorize_params).items():
            params[validate_string(key, "authorize_params")] = validate_string(
                value, f"authorize_params[{key!r}]", allow_empty=True
            )
        object.__setattr__(self, "authorize_params", params)

    @property
    def local_base_url(self) -> str:
        return f"http://{OAuthDefaults.REDIRECT_HOST}:{self.port}"

    @property
    def redirect_uri(self) -> str:
        """Redirect URI registered with the provider."""
        return self.local_base_url + OAuthProtocol.CALLBACK_PATH

    @property
    def local_authorize_url(self) -> str:
        return self.local_base_url + OAuthProtocol.AUTHORIZE_PATH

    @property
    def local_signup_url(self) -> str:
        return self.local_authorize_url + "?signup=true"


class FlowState(str, enum.Enum):
    """Lifecycle of one authorization attempt."""

    IDLE = "idle"
    AWAITING_USER_AUTHORIZATION = "awaiting_user_authorization"
    EXCHANGING_CODE = "exchanging_code"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


_ALLOWED_TRANSITIONS: dict[FlowState, frozenset[FlowState]] = {
    FlowState.IDLE: frozenset({FlowState.AWAITING_USER_AUTHORIZATION, FlowState.FAILED}),
    FlowState.AWAITING_USER_AUTHORIZATION: frozenset(
        {FlowState.EXCHANGING_CODE, FlowState.FAILED, FlowState.CANCELLED}
    ),
    FlowState.EXCHANGING_CODE: frozenset({FlowState.COMPLETE, FlowState.FAILED}),
    FlowState.COMPLETE: frozenset(),
    FlowState.FAILED: frozenset(),
    FlowState.CANCELLED: frozenset(),
}


def build_authorization_url(config: OAuthConfig, pkce: PkceCodes, state: str) -> str:
    """Build the provider authorization URL.

    Query parameters already present on the configured endpoint are kept;
    the OAuth parameters are appended after them, then any
    provider-specific ``authorize_params``.
    """
    parsed = urllib.parse.urlsplit(config.authorization_endpoint)
    query = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)

    oauth_params = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "response_type": OAuthProtocol.RESPONSE_TYPE_CODE,
        "code_challenge": pkce.code_challenge,
        "code_challenge_method": PkceProtocol.CODE_CHALLENGE_METHOD,
        "scope": " ".join(config.scopes),
        "state": state,
    }
    overrides = {**oauth_params, **config.authorize_params}
    query = [(k, v) for k, v in query if k not in overrides]
    query.extend(overrides.items())

    return urllib.parse.urlunsplit(parsed._replace(query=urllib.parse.urlencode(query)))


def build_signup_url(config: OAuthConfig, authorization_url: str) -> str | None:
    """Signup URL that returns the new user to ``authorization_url``."""
    if not config.signup_endpoint:
        return None
    parsed = urllib.parse.urlsplit(config.signup_endpoint)
    query = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    query = [(k, v) for k, v in query if k != "next"]
    query.append(("next", authorization_url))
    return urllib.parse.urlunsplit(parsed._replace(query=urllib.parse.urlencode(query)))


class OAuthFlow:
    """High-level OAuth flow manager.

    Runs one Authorization Code + PKCE attempt:
    1. Generates PKCE material and an independent state
    2. Starts the loopback callback server
    3. Prints the local authorize URL and opens the browser (best effort)
    4. Waits for the callback, racing the configured timeout
    5. Exchanges the code for tokens with the original verifier

    The callback server is closed on every exit path before
    ``authenticate`` returns or raises. An instance runs a single attempt;
    retrying means building a new flow.

    Example:
        >>> flow = OAuthFlow(OAuthConfig())
        >>> bundle = flow.authenticate()
        >>> print(bundle.expires_in)
    """

    def __init__(
        self,
        config: OAuthConfig | None = None,
        http_client: HttpClient | None = None,
        console: Console | None = None,
        browser_opener: Callable[[str], Any] = open_url,
    ) -> None:
        self.config = config or OAuthConfig()
        self.http_client = http_client
        self.console = console or Console()
        self.state = FlowState.IDLE
        self._browser_opener = browser_opener

    def authenticate(self, open_browser: bool = True) -> TokenBundle:
        """Run the OAuth authentication flow.

        Args:
            open_browser: If True, try to open the local authorize URL

        Returns:
            TokenBundle from the token endpoint

        Raises:
            AuthorizationDeniedError: The user declined access
            StateMismatchError: The callback carried a foreign state
            AuthorizationTimeoutError: No callback within ``config.timeout``
            AuthorizationProviderError: The provider reported another error
            CallbackPortInUseError: The callback port is taken
            CallbackBindError: The callback server could not listen
            HttpError: The token endpoint could not be reached
            InvalidTokenResponseError: The token endpoint answered garbage
        """
        if self.state is not FlowState.IDLE:
            raise OAuthFlowError(
                f"This flow already ran (state: {self.state.value}); start a new one to retry"
            )

        pkce = generate_pkce()
        state = generate_state()
        authorization_url = build_authorization_url(self.config, pkce, state)
        signup_url = build_signup_url(self.config, authorization_url)

        try:
            server = OAuthCallbackServer(
                authorization_url,
                state,
                signup_url=signup_url,
                port=self.config.port,
            )
        except (CallbackPortInUseError, CallbackBindError):
            self._transition(FlowState.FAILED)
            raise

        try:
            with server:
                server.start()
                self._transition(FlowState.AWAITING_USER_AUTHORIZATION)

                url_to_open = (
                    self.config.local_signup_url if signup_url else self.config.local_authorize_url
                )
                self._announce(url_to_open, show_login_link=signup_url is not None)
                if open_browser:
                    # Result ignored: the URL is already on screen.
                    self._browser_opener(url_to_open)

                with self.console.status("Waiting for authorization..."):
                    outcome = server.wait_for_outcome(self.config.timeout)
        except KeyboardInterrupt:
            if self.state is FlowState.AWAITING_USER_AUTHORIZATION:
                self._transition(FlowState.CANCELLED)
            else:
                self._fail_if_running()
            raise
        except BaseException:
            self._fail_if_running()
            raise

        return self._finish(outcome, pkce)

    def _finish(self, outcome: Outcome, pkce: PkceCodes) -> TokenBundle:
        if isinstance(outcome, Authorized):
            self._transition(FlowState.EXCHANGING_CODE)
            try:
                bundle = self._exchange(outcome.code, pkce.code_verifier)
            except BaseException:
                self._transition(FlowState.FAILED)
                raise
            self._transition(FlowState.COMPLETE)
            return bundle

        if isinstance(outcome, Denied):
            self._transition(FlowState.CANCELLED)
            raise AuthorizationDeniedError(
                f"OAuth error: {outcome.reason}. You denied access to {self.config.app_name}."
            )

        self._transition(FlowState.FAILED)

        if isinstance(outcome, TimedOut):
            raise AuthorizationTimeoutError(outcome.timeout)

        assert isinstance(outcome, CallbackFailure)
        if outcome.error_code == OAuthProtocol.ERROR_STATE_MISMATCH:
            raise StateMismatchError(
                "State mismatch: " + (outcome.description or "callback state was not accepted")
            )
        raise AuthorizationProviderError(outcome.error_code, outcome.description)

    def _exchange(self, code: str, code_verifier: str) -> TokenBundle:
        owns_client = self.http_client is None
        http_client = self.http_client or HttpxHttpClient()
        try:
            ctx = TokenExchangeContext(
                code=code,
                code_verifier=code_verifier,
                redirect_uri=self.config.redirect_uri,
                client_id=self.config.client_id,
                token_endpoint=self.config.token_endpoint,
            )
            return TokenExchanger(http_client).exchange(ctx)
        finally:
            if owns_client:
                http_client.close()

    def _announce(self, url: str, show_login_link: bool) -> None:
        message = (
            "[bold]If the browser window didn't open automatically, "
            f"please open the following link:[/bold]\n\n[cyan]{escape(url)}[/cyan]"
        )
        if show_login_link:
            message += (
                "\n\nIf you already have an account, you can use this link:\n\n"
                f"[cyan]{escape(self.config.local_authorize_url)}[/cyan]"
            )
        self.console.print(message)

    def _transition(self, new_state: FlowState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid OAuth flow transition {self.state.value} -> {new_state.value}"
            )
        _logger.debug("OAuth flow: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _fail_if_running(self) -> None:
        if FlowState.FAILED in _ALLOWED_TRANSITIONS[self.state]:
            self._transition(FlowState.FAILED)


# =============================================================================
# User-facing failure messages
# =============================================================================


@dataclass(frozen=True)
class FailureDescription:
    """One rendered message for an OAuth failure category.

    ``message`` contains rich markup.
    """

    title: str
    message: str
    style: str = "red"


def describe_failure(error: OAuthError, app_name: str = OAuthClient.APP_NAME) -> FailureDescription:
    """Map an authentication error to the message shown at the CLI boundary."""
    detail = escape(str(error))
    report_hint = (
        f"[dim]If you think this is a bug, please create an issue:\n{ProjectLinks.ISSUES_URL}[/dim]"
    )

    if isinstance(error, AuthorizationDeniedError):
        return FailureDescription(
            title="Authorization Cancelled",
            message=(
                "[yellow]Authorization was cancelled.[/yellow]\n\n"
                f"You denied access to {escape(app_name)}. "
                "To use the wizard, you need to authorize access.\n\n"
                "[dim]You can try again by re-running the wizard.[/dim]"
            ),
            style="yellow",
        )

    if isinstance(error, StateMismatchError):
        return FailureDescription(
            title="Security Error",
            message=(
                f"[red]Security error:[/red]\n\n{detail}\n\n"
                "The authorization response did not come from the login this wizard "
                "started. This may indicate a forged or intercepted request, so it was "
                "rejected. Close any other login tabs before running the wizard again."
            ),
        )

    if isinstance(error, AuthorizationTimeoutError):
        return FailureDescription(
            title="Authorization Timed Out",
            message=f"[red]{detail}.[/red] Please try again.",
        )

    if isinstance(error, CallbackPortInUseError):
        return FailureDescription(
            title="Port In Use",
            message=(
                f"[red]{detail}[/red]\n\n"
                f"[dim]Find the process with e.g. `lsof -i :{error.port}`.[/dim]"
            ),
        )

    if isinstance(error, CallbackBindError):
        return FailureDescription(
            title="Callback Server Error",
            message=(
                "[red]Couldn't start the local login server.[/red]\n\n"
                f"{detail}\n\n"
                f"[dim]The wizard listens on {escape(error.host)}:{error.port} "
                "for the login redirect. Check that the address is available "
                "and the port is not reserved, then try again.[/dim]"
            ),
        )

    if isinstance(error, HttpError):
        return FailureDescription(
            title="Network Error",
            message=(
                "[red]Couldn't reach the authentication server.[/red]\n\n"
                f"{detail}\n\n[dim]Check your connection and try again.[/dim]"
            ),
        )

    if isinstance(error, InvalidTokenResponseError):
        return FailureDescription(
            title="Invalid Server Response",
            message=(
                "[red]The authentication server returned an unexpected response.[/red]\n\n"
                f"{detail}\n\n{report_hint}"
            ),
        )

    return FailureDescription(
        title="Authorization Failed",
        message=f"[red]Authorization failed:[/red]\n\n{detail}\n\n{report_hint}",
    )


__all__ = [
    "OAuthConfig",
    "OAuthFlow",
    "FlowState",
    "FailureDescription",
    "build_authorization_url",
    "build_signup_url",
    "describe_failure",
]
