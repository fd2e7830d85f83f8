"""
Beltic Auth Library

OAuth 2.0 Authorization Code + PKCE login for the Beltic platform,
suitable for interactive CLI tools.

This library provides:
- A loopback callback server that receives the authorization redirect
- The flow orchestrator (PKCE, state, browser launch, timeout, exchange)
- A token endpoint client
- Credential storage abstraction (filesystem, memory)

Basic Usage:
    >>> from beltic_wizard.core.oauth import OAuthFlow, FileSystemCredentialStore
    >>>
    >>> flow = OAuthFlow()
    >>> bundle = flow.authenticate()
    >>> headers = {"Authorization": f"Bearer {bundle.access_token}"}

For Testing:
    >>> from beltic_wizard.core.oauth import InMemoryCredentialStore, MockHttpClient
    >>> store = InMemoryCredentialStore()
    >>> # No file I/O, data persists only in memory
"""

from .browser import open_url
from .callback_server import (
    Authorized,
    CallbackFailure,
    CallbackOutcome,
    CompletionSignal,
    Denied,
    OAuthCallbackHandler,
    OAuthCallbackServer,
    TimedOut,
)

# Exceptions
from .exceptions import (
    AuthenticationCancelledError,
    AuthorizationDeniedError,
    AuthorizationProviderError,
    AuthorizationTimeoutError,
    CallbackBindError,
    CallbackPortInUseError,
    ConfigurationError,
    InvalidTokenResponseError,
    OAuthError,
    OAuthFlowError,
    StateMismatchError,
    StorageError,
    ValidationError,
)

# HTTP client
from .http_client import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    HttpResponse,
    HttpxHttpClient,
    MockHttpClient,
)

# OAuth flow
from .oauth import (
    FailureDescription,
    FlowState,
    OAuthConfig,
    OAuthFlow,
    build_authorization_url,
    build_signup_url,
    describe_failure,
)
from .pkce import PkceCodes, generate_pkce, generate_state

# Storage backend
from .storage import (
    CredentialStore,
    FileSystemCredentialStore,
    InMemoryCredentialStore,
    StoredCredentials,
)
from .token_exchanger import TokenBundle, TokenExchangeContext, TokenExchanger

__all__ = [
    # Storage
    "CredentialStore",
    "StoredCredentials",
    "FileSystemCredentialStore",
    "InMemoryCredentialStore",
    # OAuth
    "OAuthFlow",
    "OAuthConfig",
    "FlowState",
    "FailureDescription",
    "describe_failure",
    "build_authorization_url",
    "build_signup_url",
    "OAuthCallbackServer",
    "OAuthCallbackHandler",
    "CompletionSignal",
    "CallbackOutcome",
    "Authorized",
    "Denied",
    "CallbackFailure",
    "TimedOut",
    "TokenExchanger",
    "TokenExchangeContext",
    "TokenBundle",
    # Utilities
    "open_url",
    "generate_pkce",
    "generate_state",
    "PkceCodes",
    # HTTP client
    "HttpClient",
    "HttpClientConfig",
    "HttpResponse",
    "HttpError",
    "HttpxHttpClient",
    "MockHttpClient",
    # Exceptions
    "OAuthError",
    "ValidationError",
    "ConfigurationError",
    "StorageError",
    "AuthenticationCancelledError",
    "OAuthFlowError",
    "AuthorizationDeniedError",
    "StateMismatchError",
    "AuthorizationTimeoutError",
    "AuthorizationProviderError",
    "CallbackPortInUseError",
    "CallbackBindError",
    "InvalidTokenResponseError",
]
