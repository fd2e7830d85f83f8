"""Best-effort browser launcher.

Opening the browser is a convenience: the flow always prints the URL
first, so every failure here is logged at DEBUG and otherwise ignored.
Callers must not turn a False return into an error.
"""

from __future__ import annotations

import logging
import subprocess
import sys

_logger = logging.getLogger(__name__)


def _open_command(url: str, platform: str) -> list[str]:
    if platform == "darwin":
        return ["open", url]
    if platform == "win32":
        # "start" is a cmd builtin; the empty string is the window title
        return ["cmd", "/c", "start", "", url]
    return ["xdg-open", url]


def open_url(url: str, platform: str | None = None) -> bool:
    """Spawn the platform's URL opener without waiting for it.

    Args:
        url: URL to open
        platform: Override for ``sys.platform`` (tests)

    Returns:
        True if the opener process was spawned, False otherwise
    """
    command = _open_command(url, platform or sys.platform)
    try:
        # Not waited on: on POSIX the opener stays a zombie until the wizard exits.
        subprocess.Popen(  # noqa: S603
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            close_fds=True,
        )
    except (OSError, ValueError) as e:
        _logger.debug("Could not launch browser with %s: %s", command[0], e)
        return False
    return True


__all__ = ["open_url"]
