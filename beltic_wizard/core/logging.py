"""Logging setup for the wizard.

Console output is kept quiet (WARNING by default) so log lines never
interleave with the interactive prompts; everything at DEBUG goes to a
log file that can be attached to bug reports.
"""

import logging
import sys

NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def level_name(value: str) -> str:
    """Upper-cased first word of ``value``; tolerates trailing .env comments."""
    words = value.split()
    return words[0].upper() if words else ""


def parse_log_level(value: str, default: str = "WARNING") -> str:
    """Normalize a level name, falling back to ``default`` if unknown."""
    level = level_name(value)
    return level if level in VALID_LEVELS else default


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Ensure HTTP client noise only surfaces at DEBUG level."""

    noisy_level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for logger_name in NOISY_HTTP_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Downgrade noisy third-party HTTP logs to DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO:
            for prefix in self.prefixes:
                if record.name.startswith(prefix):
                    record.levelno = logging.DEBUG
                    record.levelname = logging.getLevelName(logging.DEBUG)
                    break
        return True


def configure_root_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Install the wizard's handlers on the root logger.

    Replaces any existing root handlers, so calling it twice is safe.

    Args:
        level: Level name for the stderr handler
        log_file: Optional path of a DEBUG-level log file
    """
    log_level = parse_log_level(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.setLevel(getattr(logging, log_level))

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot open log file %s: %s", log_file, e)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root_logger.addHandler(file_handler)
            root_logger.setLevel(logging.DEBUG)

    set_noisy_http_logger_levels(log_level)
    logger.debug("Logging configured (console=%s, file=%s)", log_level, log_file)
