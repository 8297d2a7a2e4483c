"""Writer for the agent's final message (``--output-last-message``)."""

import logging
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def write_last_message_file(contents: str, path: Union[str, Path]) -> None:
    """Write ``contents`` to ``path``, logging (not raising) on failure."""
    try:
        Path(path).write_text(contents, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write last message file {path}: {e}")


def handle_last_message(
    last_agent_message: Optional[str],
    output_file: Union[str, Path],
) -> None:
    """Persist the final agent message for scripts that consume it.

    A missing message still produces the file, with empty content, so
    callers can rely on its existence after the run.
    """
    write_last_message_file(last_agent_message or "", output_file)
    if last_agent_message is None:
        logger.warning(
            f"No last agent message; wrote empty content to {output_file}"
        )
