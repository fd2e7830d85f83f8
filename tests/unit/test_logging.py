import logging
from io import StringIO

import pytest

from beltic_wizard.core.logging import (
    NOISY_HTTP_LOGGERS,
    HttpRequestLogDowngradeFilter,
    configure_root_logging,
    level_name,
    parse_log_level,
    set_noisy_http_logger_levels,
)


@pytest.mark.unit
class TestHttpRequestLogDowngradeFilter:
    def setup_method(self) -> None:
        self.stream = StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(logging.Formatter("%(levelname)s:%(message)s"))
        self.handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))

    def _emit(self, logger_name: str, level: int, message: str) -> str:
        logger = logging.getLogger(logger_name)
        logger.handlers = [self.handler]
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.log(level, message)
        self.handler.flush()
        output = self.stream.getvalue()
        self.stream.truncate(0)
        self.stream.seek(0)
        logger.handlers = []
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
        return output

    def test_downgrades_noisy_http_info_logs(self):
        output = self._emit("httpx", logging.INFO, "HTTP Request: POST")
        assert output.startswith("DEBUG:HTTP Request: POST")

    def test_preserves_non_noisy_info_logs(self):
        output = self._emit("beltic_wizard.core.session", logging.INFO, "Session expired")
        assert output.startswith("INFO:Session expired")


@pytest.mark.unit
class TestNoisyHttpLoggerLevelSetter:
    def test_sets_warning_by_default(self):
        set_noisy_http_logger_levels("INFO")
        for name in NOISY_HTTP_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_stays_debug_when_global_debug(self):
        set_noisy_http_logger_levels("DEBUG")
        for name in NOISY_HTTP_LOGGERS:
            assert logging.getLogger(name).level == logging.DEBUG

    def teardown_method(self):
        for name in NOISY_HTTP_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.mark.unit
class TestParseLogLevel:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("debug", "DEBUG"),
            ("INFO  # verbose", "INFO"),
            ("", "WARNING"),
            ("chatty", "WARNING"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert parse_log_level(raw) == expected

    def test_level_name_keeps_unknown_words(self):
        assert level_name("chatty # note") == "CHATTY"
        assert level_name("   ") == ""


@pytest.mark.unit
class TestConfigureRootLogging:
    def test_console_only(self):
        configure_root_logging("INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert root.handlers[0].level == logging.INFO

    def test_file_handler_captures_debug(self, tmp_path):
        log_file = tmp_path / "wizard.log"

        configure_root_logging("WARNING", str(log_file))
        logging.getLogger("beltic_wizard.test").debug("token exchange started")
        for handler in logging.getLogger().handlers:
            handler.flush()

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert [type(h) for h in root.handlers] == [logging.StreamHandler, logging.FileHandler]
        assert root.handlers[0].level == logging.WARNING
        assert "token exchange started" in log_file.read_text(encoding="utf-8")

    def test_unwritable_log_file_is_skipped(self, tmp_path):
        missing = tmp_path / "missing-dir" / "wizard.log"

        configure_root_logging("WARNING", str(missing))

        assert len(logging.getLogger().handlers) == 1
        assert not missing.exists()

    def test_calling_twice_does_not_duplicate_handlers(self):
        configure_root_logging("INFO")
        configure_root_logging("INFO")

        assert len(logging.getLogger().handlers) == 1

    def teardown_method(self):
        for name in NOISY_HTTP_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)
