"""Client for the Beltic console API.

After the OAuth flow the wizard asks the console who the token belongs
to. The console speaks JSON:API; responses are flattened here into small
immutable records.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from beltic_wizard.core.oauth.constants import OAuthProtocol
from beltic_wizard.core.oauth.exceptions import OAuthError, ValidationError
from beltic_wizard.core.oauth.http_client import HttpClient, HttpError
from beltic_wizard.core.oauth.validation import validate_email, validate_string

_logger = logging.getLogger(__name__)

DEVELOPERS_ME_PATH = "/api/developers/me"
DEVELOPER_RESOURCE_TYPE = "developers"


class ApiError(OAuthError):
    """A console API request failed.

    Attributes:
        status_code: HTTP status, if a response was received
        endpoint: Request URL, if known
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


@dataclass(frozen=True)
class Developer:
    """The developer account behind an access token.

    ``attributes`` holds the complete attribute object from the console.
    """

    id: str
    email: str
    name: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Any) -> Developer:
        """Flatten a JSON:API ``developers`` document.

        Raises:
            ValidationError: If the document does not have the expected shape
        """
        if not isinstance(document, dict) or not isinstance(document.get("data"), dict):
            raise ValidationError("data", document, "must be a JSON:API document")
        data = document["data"]

        if data.get("type") != DEVELOPER_RESOURCE_TYPE:
            raise ValidationError("data.type", data.get("type"), "must be 'developers'")
        developer_id = validate_string(data.get("id"), "data.id")

        attributes = data.get("attributes")
        if not isinstance(attributes, dict):
            raise ValidationError("data.attributes", attributes, "must be an object")
        name = validate_string(attributes.get("legal_name"), "legal_name", allow_empty=True)
        email = validate_email(attributes.get("business_email"), "business_email")

        return cls(id=developer_id, email=email, name=name or None, attributes=dict(attributes))

    @property
    def display_name(self) -> str:
        return self.name or self.email


def _error_detail(error: HttpError) -> str | None:
    try:
        body = json.loads(error.body) if error.body else None
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail
    return None


def _to_api_error(error: Exception, operation: str, endpoint: str) -> ApiError:
    if isinstance(error, HttpError) and not error.is_network_error:
        status = error.status_code
        if status == OAuthProtocol.HTTP_UNAUTHORIZED:
            message = f"Authentication failed while trying to {operation}"
        elif status == OAuthProtocol.HTTP_FORBIDDEN:
            message = f"Access denied while trying to {operation}"
        elif status == OAuthProtocol.HTTP_NOT_FOUND:
            message = f"Resource not found while trying to {operation}"
        else:
            message = _error_detail(error) or f"Failed to {operation}"
        return ApiError(message, status, endpoint)

    if isinstance(error, (ValidationError, ValueError)):
        return ApiError(f"Invalid response format while trying to {operation}", None, endpoint)

    return ApiError(f"Unexpected error while trying to {operation}: {error}", None, endpoint)


class ConsoleApiClient:
    """Beltic console API client.

    Args:
        base_url: Console base URL, e.g. ``https://kya.beltic.app``
        http_client: Transport used for requests; the caller owns its lifetime
    """

    def __init__(self, base_url: str, http_client: HttpClient) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client

    def fetch_developer(self, access_token: str) -> Developer:
        """Fetch the developer account the token was issued to.

        Raises:
            ApiError: On any HTTP, transport or response-shape failure
        """
        url = self.base_url + DEVELOPERS_ME_PATH
        operation = f"GET {url}"
        _logger.debug("Fetching developer profile from %s", url)

        try:
            response = self.http_client.get(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
            developer = Developer.from_document(response.json())
        except (HttpError, ValidationError, ValueError) as e:
            _logger.debug("Developer fetch failed: %s", e)
            raise _to_api_error(e, operation, url) from e

        _logger.debug("Fetched developer %s", developer.id)
        return developer
