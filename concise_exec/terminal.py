"""Terminal capability detection for the concise renderer.

Decides whether stdout should receive ANSI styling and prepares the
console streams for UTF-8 output (plan markers such as ✓ and → are not
representable in legacy Windows code pages).

Usage:
    from concise_exec.terminal import resolve_color_mode

    with_ansi = resolve_color_mode("auto")
"""

import os
import sys
from typing import Optional, TextIO

COLOR_MODES = ("always", "never", "auto")


def detect_color_depth(stream: Optional[TextIO] = None) -> str:
    """Detect the color depth of a stream.

    Returns:
        "24bit" | "256" | "basic" | "none"
    """
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    if not (isatty and isatty()):
        return "none"

    term_lower = (os.environ.get("TERM") or "").lower()
    colorterm_lower = (os.environ.get("COLORTERM") or "").lower()

    if colorterm_lower in ("truecolor", "24bit") or "truecolor" in colorterm_lower:
        return "24bit"
    if "256color" in term_lower or "256" in colorterm_lower:
        return "256"
    if term_lower and term_lower != "dumb":
        return "basic"
    # Windows consoles do not set TERM but handle ANSI since Windows 10
    if sys.platform == "win32" and not term_lower:
        return "basic"
    return "none"


def supports_ansi(stream: Optional[TextIO] = None) -> bool:
    """True when ANSI styling should be written to ``stream``.

    Honours the NO_COLOR convention (https://no-color.org).
    """
    if os.environ.get("NO_COLOR"):
        return False
    return detect_color_depth(stream) != "none"


def resolve_color_mode(mode: str, stream: Optional[TextIO] = None) -> bool:
    """Map a ``--color`` choice to the renderer's ANSI flag.

    Raises:
        ValueError: If ``mode`` is not one of COLOR_MODES.
    """
    if mode == "always":
        return True
    if mode == "never":
        return False
    if mode == "auto":
        return supports_ansi(stream)
    raise ValueError(f"Invalid color mode: {mode!r} (expected one of {', '.join(COLOR_MODES)})")


def configure_utf8_output() -> None:
    """Configure stdout and stderr to use UTF-8 encoding with error handling.

    Only Windows consoles need this; elsewhere it is a no-op.
    """
    if sys.platform != 'win32':
        return

    os.environ.setdefault('PYTHONUTF8', '1')
    os.environ.setdefault('PYTHONIOENCODING', 'utf-8:replace')

    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, 'reconfigure', None)
        if reconfigure is None:
            continue
        try:
            reconfigure(encoding='utf-8', errors='replace')
        except (OSError, ValueError):
            # Stream already wrapped or detached; leave it as is
            continue
