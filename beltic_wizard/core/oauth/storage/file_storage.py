"""
Filesystem-based credential storage.

Stores credentials in ~/.beltic/credentials.json with owner-only permissions.

Writes go to a temporary file in the same directory which is then renamed
over the target, so a concurrent reader sees either the old or the new
file, never a partial one. Concurrent writers are not locked against each
other: the last rename wins.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
import tempfile
from pathlib import Path

from ..constants import CredentialDefaults
from ..exceptions import StorageError, ValidationError
from . import Clock, CredentialStore, StoredCredentials

_logger = logging.getLogger(__name__)


class FileSystemCredentialStore(CredentialStore):
    """File-based credential storage.

    Uses ~/.beltic/credentials.json by default. The directory is created
    with mode 0700 and the file with mode 0600 on Unix systems.
    """

    def __init__(self, config_dir: str | Path | None = None, *, clock: Clock | None = None):
        """Initialize file-based storage.

        Args:
            config_dir: Directory holding credentials.json. Defaults to ~/.beltic
            clock: Epoch-seconds clock used by is_valid()
        """
        super().__init__(clock)
        if config_dir:
            self.config_dir = Path(config_dir).expanduser()
        else:
            self.config_dir = Path.home() / CredentialDefaults.CONFIG_DIR_NAME

        self.credentials_file = self.config_dir / CredentialDefaults.FILE_NAME

    def load(self) -> StoredCredentials | None:
        """Read credentials from file.

        A missing, empty, unreadable or malformed file is reported as None.
        """
        try:
            text = self.credentials_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            _logger.debug("No credentials file found at %s", self.credentials_file)
            return None
        except (OSError, ValueError) as e:
            _logger.warning("Cannot read credentials file %s: %s", self.credentials_file, e)
            return None

        if not text.strip():
            _logger.warning("Credentials file %s is empty; ignoring it", self.credentials_file)
            return None

        try:
            credentials = StoredCredentials.from_dict(json.loads(text))
        except (
            json.JSONDecodeError,
            ValidationError,
            TypeError,
            ValueError,
            RecursionError,
        ) as e:
            _logger.warning("Ignoring corrupted credentials file %s: %s", self.credentials_file, e)
            return None

        _logger.debug("Loaded credentials for %s", credentials.email)
        return credentials

    def save(self, credentials: StoredCredentials) -> None:
        """Write credentials to file atomically.

        Raises:
            StorageError: If write fails due to I/O errors
        """
        try:
            self._ensure_config_dir()
            fd, tmp_name = tempfile.mkstemp(
                prefix=".credentials-", suffix=".tmp", dir=self.config_dir
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    # mkstemp already uses 0600; enforce it regardless of platform defaults
                    if hasattr(os, "fchmod"):
                        os.fchmod(f.fileno(), CredentialDefaults.FILE_PERMISSIONS)
                    json.dump(credentials.to_dict(), f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.credentials_file)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            _logger.error("Failed to write credentials file %s: %s", self.credentials_file, e)
            raise StorageError(f"Cannot write credentials file: {e}") from e

        _logger.debug("Saved credentials to %s", self.credentials_file)

    def clear(self) -> None:
        """Remove the credentials file if present.

        Raises:
            StorageError: If file removal fails due to I/O errors
        """
        try:
            self.credentials_file.unlink(missing_ok=True)
        except OSError as e:
            _logger.error("Failed to remove credentials file %s: %s", self.credentials_file, e)
            raise StorageError(f"Cannot remove credentials file: {e}") from e
        _logger.debug("Cleared credentials at %s", self.credentials_file)

    def _ensure_config_dir(self) -> None:
        if self.config_dir.exists():
            return
        self.config_dir.mkdir(parents=True, mode=CredentialDefaults.DIR_PERMISSIONS)
        if sys.platform != "win32":
            # mkdir's mode is filtered through the umask
            os.chmod(self.config_dir, CredentialDefaults.DIR_PERMISSIONS)
        _logger.debug("Created config directory %s", self.config_dir)

    @property
    def path(self) -> str:
        """Absolute path to credentials.json as string."""
        return str(self.credentials_file)
