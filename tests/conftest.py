"""Shared pytest configuration and fixtures for Beltic Wizard tests."""

import logging
import socket

import pytest

from beltic_wizard.core.config.schema import ConfigSchema

# Import HTTP mocking fixtures from fixtures module
pytest_plugins = ["tests.fixtures.mock_http"]


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Controllable clock for credential expiry tests."""
    return FakeClock()


@pytest.fixture
def free_port():
    """A loopback port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def config_dir(tmp_path):
    """Credential directory that does not exist yet."""
    return tmp_path / "beltic"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (real sockets on loopback)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        path = str(item.fspath).replace("\\", "/")
        if "tests/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="function", autouse=True)
def isolated_wizard_environment(monkeypatch, tmp_path):
    """Keep every test away from the real ~/.beltic and the user's shell config.

    All wizard environment variables are cleared, then the credential
    directory and log file are pointed into the test's tmp_path.
    """
    for spec in ConfigSchema.all_specs().values():
        monkeypatch.delenv(spec.name, raising=False)

    monkeypatch.setenv("BELTIC_CONFIG_DIR", str(tmp_path / "beltic"))
    monkeypatch.setenv("BELTIC_LOG_FILE", str(tmp_path / "beltic-wizard.log"))

    # The CLI reconfigures the root logger; restore it afterwards.
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level

    yield

    for handler in root_logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)
