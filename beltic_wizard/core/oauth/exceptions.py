"""
Custom exception hierarchy for the Beltic OAuth flow.

All exceptions inherit from OAuthError, so callers can catch every
library-specific error with a single except clause. Errors that end a
flow attempt inherit from OAuthFlowError and carry a ``reason`` naming
the user-facing category they belong to.

Example:
    >>> try:
    ...     flow.authenticate()
    ... except OAuthFlowError as e:
    ...     print(f"Authentication failed ({e.reason}): {e}")
"""

from __future__ import annotations


class OAuthError(Exception):
    """Base exception for all Beltic authentication errors."""

    pass


class ValidationError(OAuthError):
    """Raised when input validation fails.

    Attributes:
        field: Name of the field that failed validation
        value: The invalid value that was provided
        message: Human-readable explanation of the validation error

    Example:
        >>> OAuthConfig(port=99999)
        ValidationError: Invalid 'port': must be at most 65535 (got 99999)
    """

    def __init__(self, field: str, value: object, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Invalid {field!r}: {message} (got {value!r})")

    def __repr__(self) -> str:
        return (
            f"ValidationError(field={self.field!r}, value={self.value!r}, message={self.message!r})"
        )


class ConfigurationError(OAuthError):
    """Raised when configuration is invalid or incomplete."""

    pass


class StorageError(OAuthError):
    """Raised when credentials cannot be written or removed.

    Reads never raise: an unreadable credential file is treated as absent.
    """

    pass


class AuthenticationCancelledError(OAuthError):
    """Raised when the user declines to log in."""

    pass


class OAuthFlowError(OAuthError):
    """Raised when an authorization attempt ends without a token.

    Subclasses set ``reason`` to one of the categories below so the CLI
    can render a single message per category.
    """

    reason = "flow_error"


class AuthorizationDeniedError(OAuthFlowError):
    """The user declined access at the provider. Not a fault; re-run to retry."""

    reason = "denied"


class StateMismatchError(OAuthFlowError):
    """The callback's state did not match the one issued for this attempt.

    This is a potential CSRF or code-injection attempt. It is never retried.
    """

    reason = "state_mismatch"


class AuthorizationTimeoutError(OAuthFlowError):
    """No callback arrived within the allotted window."""

    reason = "timeout"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Authorization timed out after {_format_duration(timeout)}")


class AuthorizationProviderError(OAuthFlowError):
    """The provider redirected back with an error other than access_denied."""

    reason = "provider_error"

    def __init__(self, error_code: str, description: str | None = None) -> None:
        self.error_code = error_code
        self.description = description
        message = f"OAuth error: {error_code}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class CallbackPortInUseError(OAuthFlowError):
    """The loopback callback port could not be bound."""

    reason = "port_in_use"

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(
            f"Port {port} is already in use. "
            "Please close the application using this port and try again."
        )


class CallbackBindError(OAuthFlowError):
    """The loopback callback server could not listen for another reason.

    Covers bind failures other than a taken port, such as an unavailable
    address or a port the OS reserves.
    """

    reason = "transport"

    def __init__(self, host: str, port: int, detail: str) -> None:
        self.host = host
        self.port = port
        self.detail = detail
        super().__init__(f"Cannot listen on {host}:{port}: {detail}")


class InvalidTokenResponseError(OAuthFlowError):
    """The token endpoint answered, but not with a usable token payload."""

    reason = "invalid_response"


def _format_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds:g} second{'s' if seconds != 1 else ''}"


__all__ = [
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
