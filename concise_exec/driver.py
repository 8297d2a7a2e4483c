"""Driver loop feeding engine events to a renderer.

Reads newline-delimited JSON events, hands them to the renderer one at a
time and stops once the renderer reports that the engine has shut down.
"""

import json
import logging
from typing import IO, Callable, Iterable, Iterator, Optional, Union

from concise_exec.config import ExecConfig
from concise_exec.events import Event, SessionConfiguredEvent, deserialize_event
from concise_exec.renderers.base import ControlSignal, Renderer

logger = logging.getLogger(__name__)


def read_events(stream: Union[IO[str], IO[bytes]]) -> Iterator[Event]:
    """Yield events from a JSON-lines stream.

    Binary streams are decoded as UTF-8 one line at a time. Blank lines are
    ignored. Lines that are not valid UTF-8, not valid JSON or carry an
    unknown event type are logged and skipped.
    """
    for line_number, raw in enumerate(stream, start=1):
        try:
            line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        except UnicodeDecodeError as e:
            logger.warning(f"Skipping undecodable line {line_number}: {e}")
            continue
        line = line.strip()
        if not line:
            continue
        try:
            yield deserialize_event(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping invalid JSON on line {line_number}: {e}")
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping unsupported event on line {line_number}: {e}")


def run_event_loop(
    renderer: Renderer,
    events: Iterable[Event],
    config: ExecConfig,
    prompt: str,
    request_shutdown: Optional[Callable[[], None]] = None,
) -> ControlSignal:
    """Feed events to ``renderer`` until the engine shuts down.

    The config summary is printed once, when the first
    ``session_configured`` event arrives. After the renderer asks for a
    shutdown, ``request_shutdown`` is called once and events keep flowing
    until the acknowledgement (or the end of the stream).

    Args:
        renderer: Renderer receiving the events.
        events: Event source, consumed lazily.
        config: Resolved session configuration for the summary.
        prompt: The user prompt echoed in the summary.
        request_shutdown: Called when the task completes.

    Returns:
        SHUTDOWN if the engine acknowledged the shutdown,
        INITIATE_SHUTDOWN if the task completed but the stream ended first,
        CONTINUE if the stream ended before the task completed.
    """
    summary_printed = False
    status = ControlSignal.CONTINUE

    for event in events:
        if isinstance(event, SessionConfiguredEvent) and not summary_printed:
            renderer.print_config_summary(config, prompt, event)
            summary_printed = True

        signal = renderer.process_event(event)

        if signal is ControlSignal.SHUTDOWN:
            return signal
        if signal is ControlSignal.INITIATE_SHUTDOWN and status is ControlSignal.CONTINUE:
            status = signal
            logger.debug("Task complete, waiting for shutdown acknowledgement")
            if request_shutdown is not None:
                request_shutdown()

    if status is ControlSignal.CONTINUE:
        logger.warning("Event stream ended before the task completed")
    else:
        logger.debug("Event stream ended before shutdown acknowledgement")
    return status
