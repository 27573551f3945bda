"""Pytest configuration for jsloop tests."""

import pytest
import signal
import sys


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "timeout(seconds): set custom timeout for test")


def timeout_handler(signum, frame):
    """Handle timeout signal."""
    pytest.fail("Test timed out")


@pytest.fixture(autouse=True)
def test_timeout(request):
    """Apply a timeout to all tests.

    A runaway simulation shows up as a hang, so every test gets 10 seconds
    unless marked otherwise:
    @pytest.mark.timeout(30)  # 30 second timeout
    """
    if sys.platform != "win32":
        marker = request.node.get_closest_marker("timeout")
        timeout_seconds = marker.args[0] if marker else 10

        old_handler = signal.signal(signal.SIGALRM, timeout_handler)
        signal.alarm(timeout_seconds)
        yield
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)
    else:
        yield


@pytest.fixture
def js_file(tmp_path):
    """Write JavaScript source to a temporary file and return its path."""
    def write(source, name="program.js"):
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return str(path)
    return write
