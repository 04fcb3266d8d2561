"""
Pytest configuration for the tinyAsm test suite.

    python -m pytest            # everything
    python -m pytest -m "not slow"

Provides the `source_file` fixture, which writes program text to a
temporary .tasm file and returns its path.
"""

import pytest

COUNT_TO_10 = "STR 0 A\nSTR 10 B\nSTR 1 C\n>loop\nADD C A\nBNE A B loop\n"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers",
        "slow: long-running programs (deselect with -m 'not slow')")


@pytest.fixture
def source_file(tmp_path):
    def write(text: str = COUNT_TO_10, name: str = "prog.tasm") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return write


@pytest.fixture(autouse=True)
def _no_step_limit_env(monkeypatch):
    # Tests choose their own limits.
    monkeypatch.delenv("TINYASM_MAX_STEPS", raising=False)
