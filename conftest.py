"""
Pytest configuration for the Intcode test suite.

    python -m pytest                 # everything
    python -m pytest -m "not threads"  # skip the threaded ring tests

Ring tests start one thread per stage and have no timeout: a wrong
ring wiring shows up as a hang, not a failure.
"""

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers",
        "threads: tests that run pipeline stages on background threads")


@pytest.fixture
def program_path(tmp_path):
    """Write comma-separated program text to a temp file, return its path."""
    def _write(text: str, name: str = "program.txt") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _write
