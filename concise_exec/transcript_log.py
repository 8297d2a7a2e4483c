"""Plain-text transcript of a concise session.

Mirrors every console line (without ANSI styling) into a file so the run
can be inspected after the fact. Opening is strict: a path that cannot be
created is a setup error. Writing is best-effort: a failed write or flush
is reported on the diagnostic log and the session carries on.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO, Union

logger = logging.getLogger(__name__)


class TranscriptLog:
    """Line writer that flushes after every line.

    Usage:
        log = TranscriptLog.create(Path("/tmp/run/transcript.log"))
        log.write_line("[2025-01-01T00:00:00] Running command: ls")
        log.close()
    """

    def __init__(self, file: TextIO, path: Optional[Path] = None):
        self._file = file
        self.path = path

    @classmethod
    def create(cls, path: Union[str, Path]) -> "TranscriptLog":
        """Create (or truncate) the transcript file at ``path``.

        Parent directories are created as needed.

        Raises:
            OSError: If the directory cannot be created or the file opened.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file = open(path, "w", encoding="utf-8")
        logger.debug(f"Transcript log opened at {path}")
        return cls(file, path)

    @property
    def closed(self) -> bool:
        return self._file.closed

    def write_line(self, line: str) -> None:
        """Append ``line`` and a newline, then flush. Never raises on I/O errors."""
        try:
            self._file.write(f"{line}\n")
        except (OSError, ValueError) as e:
            # ValueError: I/O operation on closed file
            logger.warning(f"Failed to write transcript log line: {e}")
            return
        try:
            self._file.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to flush transcript log: {e}")

    def close(self) -> None:
        """Close the underlying file. Safe to call more than once."""
        if self._file.closed:
            return
        try:
            self._file.close()
        except OSError as e:
            logger.warning(f"Failed to close transcript log: {e}")

    def __enter__(self) -> "TranscriptLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
