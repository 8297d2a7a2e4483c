"""Named visual styles for concise output.

The renderer uses exactly five styles. They are picked once, when the
renderer is built, from a single "ANSI enabled" flag; call sites only ever
refer to them by name.
"""

import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from rich.console import Console
from rich.style import Style


@dataclass(frozen=True)
class RenderStyles:
    """Immutable set of the styles used for status lines."""
    status: Style
    success: Style
    error: Style
    info: Style
    timestamp: Style

    @classmethod
    def for_ansi(cls, with_ansi: bool) -> "RenderStyles":
        """Colored styles when ANSI is enabled, null styles otherwise."""
        if with_ansi:
            return cls(
                status=Style(bold=True),
                success=Style(color="green"),
                error=Style(color="red"),
                info=Style(color="cyan"),
                timestamp=Style(dim=True),
            )
        plain = Style.null()
        return cls(
            status=plain,
            success=plain,
            error=plain,
            info=plain,
            timestamp=plain,
        )


def make_console(with_ansi: bool, file: Optional[TextIO] = None) -> Console:
    """Create the Rich console used for stdout output.

    Markup, emoji and highlighting are disabled so event text is printed
    literally, and soft wrapping keeps each logical line on one physical line.
    """
    return Console(
        file=file if file is not None else sys.stdout,
        force_terminal=with_ansi,
        color_system="standard" if with_ansi else None,
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )
