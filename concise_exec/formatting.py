"""Formatting helpers shared by the concise renderer.

Covers the small, pure pieces of line rendering: shell quoting of command
argv, human-readable durations, UTC timestamp prefixes and line splitting
for multi-line bodies.
"""

import shlex
from datetime import datetime, timezone
from time import monotonic
from typing import List, Optional, Sequence

TIMESTAMP_FORMAT = "[%Y-%m-%dT%H:%M:%S]"


def escape_command(command: Sequence[str]) -> str:
    """Render an argv list as one POSIX shell-quoted string.

    Falls back to a plain space join when quoting is not possible
    (non-string arguments or embedded NUL bytes).
    """
    try:
        if any("\0" in arg for arg in command):
            raise ValueError("NUL byte in command argument")
        return shlex.join(command)
    except (TypeError, ValueError):
        return " ".join(str(arg) for arg in command)


def format_duration(seconds: float) -> str:
    """Format a duration for display.

    Examples:
        0.25   -> "250ms"
        1.5    -> "1.50s"
        75.0   -> "1m 15s"
    """
    millis = max(int(seconds * 1000), 0)
    if millis < 1000:
        return f"{millis}ms"
    if millis < 60_000:
        return f"{millis / 1000:.2f}s"
    minutes, remainder = divmod(millis, 60_000)
    return f"{minutes}m {remainder // 1000:02d}s"


def format_elapsed(start_time: float, now: Optional[float] = None) -> str:
    """Format the time since a ``time.monotonic()`` reading."""
    if now is None:
        now = monotonic()
    return format_duration(now - start_time)


def timestamp_prefix(now: Optional[datetime] = None) -> str:
    """Bracketed UTC timestamp, second precision."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime(TIMESTAMP_FORMAT)


def split_lines(text: str) -> List[str]:
    """Split a body into lines, keeping interior blank lines.

    A single trailing newline does not produce an empty last line, and
    CRLF endings are normalised.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]
