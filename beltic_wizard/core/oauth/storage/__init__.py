"""
Storage abstraction for Beltic credentials.

This module provides the stored credential shape and an abstract
interface for persisting it, so the file-backed store and the
in-memory test store share one expiry rule.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..constants import CredentialDefaults
from ..exceptions import ValidationError
from ..validation import (
    validate_email,
    validate_optional_string,
    validate_string,
    validate_type,
)

if TYPE_CHECKING:
    from ..token_exchanger import TokenBundle

Clock = Callable[[], float]


@dataclass(frozen=True)
class StoredCredentials:
    """Credentials persisted between wizard runs.

    Attributes:
        access_token: OAuth access token for console API requests
        subject_id: Authenticated developer ID
        email: Developer's business email
        refresh_token: Optional OAuth refresh token
        display_name: Optional developer (legal) name
        expires_at: Optional expiry as epoch milliseconds

    Raises:
        ValidationError: If created with invalid data
    """

    access_token: str
    subject_id: str
    email: str
    refresh_token: str | None = None
    display_name: str | None = None
    expires_at: int | None = None

    def __post_init__(self) -> None:
        validate_string(self.access_token, "access_token")
        validate_string(self.subject_id, "subject_id")
        validate_email(self.email, "email")
        validate_optional_string(self.refresh_token, "refresh_token")
        validate_optional_string(self.display_name, "display_name")
        if self.expires_at is not None:
            validate_type(self.expires_at, int, "expires_at")

    def __repr__(self) -> str:
        return (
            f"StoredCredentials(subject_id={self.subject_id!r}, email={self.email!r}, "
            f"display_name={self.display_name!r}, expires_at={self.expires_at!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the on-disk key names; unset optionals are omitted."""
        data: dict[str, Any] = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "developerId": self.subject_id,
            "email": self.email,
            "name": self.display_name,
            "expiresAt": self.expires_at,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Any) -> StoredCredentials:
        """Create from a decoded credentials file.

        Unknown keys are ignored so older wizards can read newer files.

        Raises:
            ValidationError: If required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise ValidationError("credentials", data, "must be a JSON object")

        expires_at = data.get("expiresAt")
        if isinstance(expires_at, float) and expires_at.is_integer():
            expires_at = int(expires_at)

        return cls(
            access_token=data.get("accessToken", ""),
            subject_id=data.get("developerId", ""),
            email=data.get("email", ""),
            refresh_token=data.get("refreshToken"),
            display_name=data.get("name"),
            expires_at=expires_at,
        )

    @classmethod
    def from_token_bundle(
        cls,
        bundle: TokenBundle,
        subject_id: str,
        email: str,
        display_name: str | None = None,
        now: float | None = None,
    ) -> StoredCredentials:
        """Combine a fresh token bundle with the authenticated identity.

        ``expires_at`` is ``now + expires_in`` when the server sent a lifetime.
        """
        expires_at = None
        if bundle.expires_in is not None:
            issued_at = time.time() if now is None else now
            expires_at = int((issued_at + bundle.expires_in) * 1000)

        return cls(
            access_token=bundle.access_token,
            subject_id=subject_id,
            email=email,
            refresh_token=bundle.refresh_token,
            display_name=display_name,
            expires_at=expires_at,
        )


class CredentialStore(ABC):
    """Abstract storage backend for Beltic credentials.

    Implementations:
    - FileSystemCredentialStore: ~/.beltic/credentials.json
    - InMemoryCredentialStore: For testing and ephemeral use

    Args:
        clock: Returns the current time in epoch seconds (defaults to time.time)
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.time

    @abstractmethod
    def load(self) -> StoredCredentials | None:
        """Return stored credentials, or None if absent or unreadable.

        Never raises.
        """

    @abstractmethod
    def save(self, credentials: StoredCredentials) -> None:
        """Persist ``credentials``, replacing any previous value.

        Raises:
            StorageError: If write fails
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove stored credentials. Idempotent.

        Raises:
            StorageError: If removal fails
        """

    @property
    @abstractmethod
    def path(self) -> str:
        """Human-readable location of the stored credentials."""

    def now(self) -> float:
        return self._clock()

    def is_valid(self, credentials: StoredCredentials) -> bool:
        """Check whether ``credentials`` can still be used.

        True if no expiry is recorded; otherwise true only while now is
        before ``expires_at`` minus a five minute buffer.
        """
        if credentials.expires_at is None:
            return True
        buffer_ms = CredentialDefaults.EXPIRY_BUFFER_SECONDS * 1000
        now_ms = self.now() * 1000
        return now_ms < credentials.expires_at - buffer_ms

    def has_valid_credentials(self) -> bool:
        credentials = self.load()
        return credentials is not None and self.is_valid(credentials)


# Import implementations (E402 exemption: implementations import the base)
from .file_storage import FileSystemCredentialStore  # noqa: E402
from .memory_storage import InMemoryCredentialStore  # noqa: E402

__all__ = [
    "Clock",
    "StoredCredentials",
    "CredentialStore",
    "FileSystemCredentialStore",
    "InMemoryCredentialStore",
]
