"""Token exchange logic for the OAuth flow.

This module contains the business logic for exchanging an OAuth
authorization code for tokens, separated from HTTP infrastructure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .http_client import HttpClient

from .exceptions import InvalidTokenResponseError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenBundle:
    """Tokens returned by the token endpoint.

    Attributes:
        access_token: Bearer token for API requests (always present)
        refresh_token: Optional refresh token
        token_type: Optional token type, usually "Bearer"
        scope: Optional space-separated granted scopes
        expires_in: Optional lifetime of the access token in seconds
    """

    access_token: str
    refresh_token: str | None = None
    token_type: str | None = None
    scope: str | None = None
    expires_in: int | None = None

    def __repr__(self) -> str:
        return (
            f"TokenBundle(access_token='***', token_type={self.token_type!r}, "
            f"scope={self.scope!r}, expires_in={self.expires_in!r})"
        )

    @classmethod
    def from_response(cls, payload: Any) -> TokenBundle:
        """Validate a token endpoint payload.

        A missing or empty ``access_token`` is never defaulted; optional
        fields must have the right type when present.

        Raises:
            InvalidTokenResponseError: If the payload does not match the shape
        """
        if not isinstance(payload, dict):
            raise InvalidTokenResponseError(
                f"Token response must be a JSON object, got {type(payload).__name__}"
            )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise InvalidTokenResponseError("Token response is missing 'access_token'")

        for key in ("refresh_token", "token_type", "scope"):
            value = payload.get(key)
            if value is not None and not isinstance(value, str):
                raise InvalidTokenResponseError(
                    f"Token response field {key!r} must be a string, got {type(value).__name__}"
                )

        expires_in = payload.get("expires_in")
        if expires_in is not None:
            # bool is an int subclass; floats like 3600.0 are accepted and truncated
            if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
                raise InvalidTokenResponseError(
                    "Token response field 'expires_in' must be a number, "
                    f"got {type(expires_in).__name__}"
                )
            expires_in = int(expires_in)

        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
            expires_in=expires_in,
        )


@dataclass(frozen=True)
class TokenExchangeContext:
    """Context for token exchange.

    Attributes:
        code: Authorization code from the OAuth callback
        code_verifier: The PKCE verifier generated for this attempt
        redirect_uri: Callback URL, must match the authorize request
        client_id: OAuth client ID
        token_endpoint: URL for token endpoint
    """

    code: str
    code_verifier: str
    redirect_uri: str
    client_id: str
    token_endpoint: str

    def __repr__(self) -> str:
        # code and verifier stay out of reprs and logs
        return (
            f"TokenExchangeContext(redirect_uri={self.redirect_uri!r}, "
            f"client_id={self.client_id!r}, token_endpoint={self.token_endpoint!r})"
        )


class TokenExchanger:
    """Handle OAuth token exchange.

    Separates token exchange logic from HTTP server infrastructure,
    making it easier to test and reason about.
    """

    def __init__(self, http_client: HttpClient) -> None:
        self.http_client = http_client

    def exchange(self, ctx: TokenExchangeContext) -> TokenBundle:
        """Exchange an authorization code for tokens.

        Returns:
            TokenBundle containing the tokens

        Raises:
            HttpError: If the token endpoint is unreachable or answers non-2xx
            InvalidTokenResponseError: If the response is not a valid token payload
        """
        body = {
            "code": ctx.code,
            "code_verifier": ctx.code_verifier,
            "redirect_uri": ctx.redirect_uri,
            "client_id": ctx.client_id,
        }
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        _logger.debug("Exchanging authorization code at %s", ctx.token_endpoint)
        response = self.http_client.post_json(ctx.token_endpoint, body, headers=headers)

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise InvalidTokenResponseError(f"Token response is not valid JSON: {e}") from e

        bundle = TokenBundle.from_response(payload)
        _logger.debug(
            "Token exchange succeeded (expires_in=%s, refresh_token=%s)",
            bundle.expires_in,
            "yes" if bundle.refresh_token else "no",
        )
        return bundle


__all__ = [
    "TokenBundle",
    "TokenExchanger",
    "TokenExchangeContext",
]
