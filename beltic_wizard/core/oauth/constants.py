"""
Centralized constants for the Beltic OAuth flow.

Constants are grouped by:
- Configurable defaults: Values callers may override via OAuthConfig
- Protocol constants: Fixed by OAuth/PKCE specifications
- Internal constants: Implementation details
- Validation limits: Valid ranges for parameters
"""

from __future__ import annotations

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================


class OAuthClient:
    """Public OAuth client registration for the Beltic platform.

    The client id is a public identifier, not a secret. PKCE removes the
    need for a client secret in a CLI.
    """

    CLIENT_ID = "client_01KD6DX6TJ0SVR510DQ5WSTWTR"
    AUTHORIZE_URL = "https://api.workos.com/user_management/authorize"
    CONSOLE_URL = "https://kya.beltic.app"
    TOKEN_PATH = "/api/auth/token"
    PROVIDER = "authkit"
    SCOPES = ("openid", "email", "profile")
    APP_NAME = "Beltic"


class ProjectLinks:
    """User-facing links printed in error messages."""

    ISSUES_URL = "https://github.com/belticlabs/wizard/issues"


class OAuthDefaults:
    """Default values for OAuth configuration.

    - Port 8239: registered redirect port for the Beltic client
    - 300s timeout: matches the beltic CLI's authorization window
    - 30s HTTP timeout: balance between responsiveness and slow networks
    """

    CALLBACK_HOST = "127.0.0.1"
    REDIRECT_HOST = "localhost"
    CALLBACK_PORT = 8239
    CALLBACK_TIMEOUT = 300  # seconds (5 minutes)

    HTTP_REQUEST_TIMEOUT = 30  # seconds

    # Seconds to wait for the serving thread to exit on close
    SERVER_JOIN_TIMEOUT = 5.0


class CredentialDefaults:
    """Credential storage defaults."""

    CONFIG_DIR_NAME = ".beltic"
    FILE_NAME = "credentials.json"

    # octal 0600 = rw------- / 0700 = rwx------
    FILE_PERMISSIONS = 0o600
    DIR_PERMISSIONS = 0o700

    # A token is considered expired 5 minutes before its real expiry so it
    # does not lapse in the middle of a request.
    EXPIRY_BUFFER_SECONDS = 300


# =============================================================================
# PROTOCOL CONSTANTS (Fixed by Standards)
# =============================================================================


class OAuthProtocol:
    """Constants defined by OAuth 2.0 and related RFCs."""

    HTTP_OK = 200
    HTTP_FOUND = 302
    HTTP_BAD_REQUEST = 400
    HTTP_UNAUTHORIZED = 401
    HTTP_FORBIDDEN = 403
    HTTP_NOT_FOUND = 404

    RESPONSE_TYPE_CODE = "code"

    # Error code a provider returns when the user declines consent
    ERROR_ACCESS_DENIED = "access_denied"

    # Local error codes produced by the callback server
    ERROR_STATE_MISMATCH = "state_mismatch"
    ERROR_MISSING_CODE = "missing_code"

    AUTHORIZE_PATH = "/authorize"
    CALLBACK_PATH = "/callback"


class PkceProtocol:
    """Constants defined by PKCE (RFC 7636).

    Code verifier requirements (RFC 7636 Section 4.1):
    - Must be 43-128 characters
    - Using URL-safe characters (A-Z, a-z, 0-9, -, ., _, ~)
    """

    # 32 random bytes base64url-encoded = 43 chars
    CODE_VERIFIER_BYTES = 32
    STATE_BYTES = 32

    CODE_CHALLENGE_METHOD = "S256"


# =============================================================================
# VALIDATION RANGES
# =============================================================================


class ValidationLimits:
    """Valid ranges for user-configurable parameters."""

    # Ports below 1024 require root/admin privileges
    MIN_PORT = 1024
    MAX_PORT = 65535

    MIN_TIMEOUT_SECONDS = 1
    MAX_TIMEOUT_SECONDS = 3600  # 1 hour


__all__ = [
    "OAuthClient",
    "ProjectLinks",
    "OAuthDefaults",
    "CredentialDefaults",
    "OAuthProtocol",
    "PkceProtocol",
    "ValidationLimits",
]
