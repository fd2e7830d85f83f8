"""
In-memory credential storage for testing and ephemeral use.
"""

from __future__ import annotations

from . import Clock, CredentialStore, StoredCredentials


class InMemoryCredentialStore(CredentialStore):
    """In-memory credential storage.

    Data persists only for the lifetime of the process.
    """

    def __init__(
        self,
        credentials: StoredCredentials | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock)
        self._data = credentials

    def load(self) -> StoredCredentials | None:
        return self._data

    def save(self, credentials: StoredCredentials) -> None:
        self._data = credentials

    def clear(self) -> None:
        self._data = None

    @property
    def path(self) -> str:
        return "<memory>"

    def __repr__(self) -> str:
        if self._data:
            return f"InMemoryCredentialStore(authenticated=True, email={self._data.email})"
        return "InMemoryCredentialStore(authenticated=False)"
