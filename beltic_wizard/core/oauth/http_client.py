"""
HTTP client abstraction for the Beltic OAuth flow.

Provides a testable, observable interface for HTTP requests using
httpx as the default implementation. Requests are never retried:
a failed token exchange or identity fetch ends the attempt and the
user re-runs the wizard.
"""

from __future__ import annotations

import abc
import json
import logging
import typing
from dataclasses import dataclass, field

import httpx

from .constants import OAuthDefaults
from .exceptions import OAuthFlowError

_logger = logging.getLogger(__name__)

# Headers whose values must never reach the logs
_REDACTED_HEADERS = frozenset({"authorization"})


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class HttpClientConfig:
    """Configuration for HTTP client behavior.

    Attributes:
        timeout: Request timeout in seconds
        enable_logging: Enable debug logging of requests/responses
    """

    timeout: float = OAuthDefaults.HTTP_REQUEST_TIMEOUT
    enable_logging: bool = True


# =============================================================================
# Response
# =============================================================================


@dataclass
class HttpResponse:
    """HTTP response wrapper adapting httpx.Response to our interface."""

    _raw: httpx.Response
    _text: str | None = field(init=False, default=None)

    @property
    def status_code(self) -> int:
        return self._raw.status_code

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._raw.headers)

    @property
    def body(self) -> bytes:
        return self._raw.content

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = self._raw.text
        return self._text

    def json(self) -> typing.Any:
        """Decode the body as JSON.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON
        """
        return self._raw.json()


# =============================================================================
# Exceptions
# =============================================================================


class HttpError(OAuthFlowError):
    """HTTP request failed at the transport level or with a non-2xx status.

    Kept separate from response validation errors so the CLI can say
    "couldn't reach the server" rather than "the server returned garbage".

    Attributes:
        status_code: HTTP status code (0 for network errors)
        detail: HTTP reason phrase or network error text
        body: Response body
        url: Request URL
    """

    reason = "transport"

    def __init__(
        self,
        status_code: int,
        reason: str,
        body: str,
        url: str,
    ) -> None:
        self.status_code = status_code
        self.detail = reason
        self.body = body
        self.url = url

        body_preview = body[:200] if body else "(empty)"
        if len(body) > 200:
            body_preview += "..."

        if status_code == 0:
            message = f"Network error for {url}: {reason}"
        else:
            message = f"HTTP {status_code} - {reason} for {url}\nResponse: {body_preview}"
        super().__init__(message)

    @property
    def is_network_error(self) -> bool:
        return self.status_code == 0


# =============================================================================
# Abstract Client
# =============================================================================


class HttpClient(abc.ABC):
    """Abstract HTTP client.

    Implementations provide JSON POST (token exchange) and GET (identity
    fetch). Both raise HttpError for network failures and non-2xx responses.
    """

    @abc.abstractmethod
    def post_json(
        self,
        url: str,
        payload: dict[str, typing.Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """POST ``payload`` as a JSON body."""

    @abc.abstractmethod
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """GET ``url``."""

    def close(self) -> None:
        """Release any pooled connections."""


def _redact(headers: dict[str, str]) -> dict[str, str]:
    return {k: ("***" if k.lower() in _REDACTED_HEADERS else v) for k, v in headers.items()}


# =============================================================================
# httpx Implementation
# =============================================================================


class HttpxHttpClient(HttpClient):
    """Default HTTP client using httpx.

    Example:
        >>> client = HttpxHttpClient()
        >>> response = client.post_json("https://example.com/token", {"code": "abc"})
    """

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        self.config = config or HttpClientConfig()
        self._client = httpx.Client(timeout=httpx.Timeout(self.config.timeout))

    def post_json(
        self,
        url: str,
        payload: dict[str, typing.Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        return self._request("POST", url, headers or {}, timeout, json_body=payload)

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        return self._request("GET", url, headers or {}, timeout)

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout: float | None,
        json_body: dict[str, typing.Any] | None = None,
    ) -> HttpResponse:
        effective_timeout = timeout or self.config.timeout

        if self.config.enable_logging:
            _logger.debug(
                "HTTP %s %s (timeout=%ss, headers=%s)",
                method,
                url,
                effective_timeout,
                _redact(headers),
            )

        try:
            response = self._client.request(
                method,
                url,
                json=json_body,
                headers=headers,
                timeout=httpx.Timeout(effective_timeout),
            )

            if self.config.enable_logging:
                _logger.debug(
                    "HTTP %s from %s (body=%d bytes)",
                    response.status_code,
                    url,
                    len(response.content),
                )

            response.raise_for_status()
            return HttpResponse(response)

        except httpx.HTTPStatusError as e:
            raise HttpError(
                status_code=e.response.status_code,
                reason=str(e.response.reason_phrase),
                body=e.response.text,
                url=str(e.request.url),
            ) from e

        except httpx.TransportError as e:
            raise HttpError(
                status_code=0,
                reason=str(e) or type(e).__name__,
                body="",
                url=url,
            ) from e


# =============================================================================
# Mock Client for Testing
# =============================================================================


class MockHttpClient(HttpClient):
    """Mock HTTP client for testing.

    Returns a predefined response without making network requests and
    records every request for assertions. Non-2xx statuses raise HttpError
    just like HttpxHttpClient does.

    Example:
        >>> mock = MockHttpClient(json_response={"access_token": "test"})
        >>> mock.post_json("https://example.com", {}).json()["access_token"]
        'test'
        >>> len(mock.requests)
        1
    """

    def __init__(
        self,
        status_code: int = 200,
        json_response: typing.Any = None,
        text_response: str = "",
        raise_error: Exception | type[Exception] | None = None,
    ) -> None:
        self.status_code = status_code
        self.json_response = json_response
        self.text_response = text_response
        self.raise_error = raise_error

        self.requests: list[dict[str, typing.Any]] = []

    def post_json(
        self,
        url: str,
        payload: dict[str, typing.Any],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        return self._respond("POST", url, headers or {}, timeout, payload)

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        return self._respond("GET", url, headers or {}, timeout, None)

    def _respond(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout: float | None,
        payload: dict[str, typing.Any] | None,
    ) -> HttpResponse:
        self.requests.append(
            {
                "method": method,
                "url": url,
                "json": payload,
                "headers": headers,
                "timeout": timeout,
            }
        )

        if self.raise_error:
            raise self.raise_error

        if self.json_response is not None:
            body = json.dumps(self.json_response).encode()
        else:
            body = self.text_response.encode()

        raw = httpx.Response(
            status_code=self.status_code,
            content=body,
            request=httpx.Request(method, url),
        )

        if raw.is_error:
            raise HttpError(
                status_code=raw.status_code,
                reason=raw.reason_phrase,
                body=raw.text,
                url=url,
            )

        return HttpResponse(raw)


__all__ = [
    "HttpClient",
    "HttpClientConfig",
    "HttpResponse",
    "HttpError",
    "HttpxHttpClient",
    "MockHttpClient",
]
