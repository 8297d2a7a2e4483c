"""Pytest configuration for concise_exec tests.

Run tests with: pytest concise_exec/tests/
"""

import io
import os
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from concise_exec.renderers.concise import ConciseRenderer
from concise_exec.styles import make_console


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user config files and CONCISE_EXEC_* variables out of tests."""
    for name in list(os.environ):
        if name.startswith("CONCISE_EXEC_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def console_buffer():
    """In-memory stream standing in for stdout."""
    return io.StringIO()


@pytest.fixture
def make_renderer(console_buffer):
    """Factory building a ConciseRenderer that prints into console_buffer."""
    def _make(with_ansi: bool = False, **kwargs) -> ConciseRenderer:
        console = make_console(with_ansi, file=console_buffer)
        return ConciseRenderer(with_ansi=with_ansi, console=console, **kwargs)
    return _make


@pytest.fixture
def output_lines(console_buffer):
    """Callable returning the lines printed so far."""
    return lambda: console_buffer.getvalue().splitlines()
