# concise_exec/renderers/base.py
"""Abstract base class for event renderers.

Defines the interface the driver loop talks to, so the loop does not
depend on a particular output format.
"""

from abc import ABC, abstractmethod
from enum import Enum

from concise_exec.config import ExecConfig
from concise_exec.events import Event, SessionConfiguredEvent


class ControlSignal(str, Enum):
    """What the driver should do after an event has been rendered."""

    CONTINUE = "continue"
    # Task finished; the driver should request an engine shutdown and keep
    # feeding events until the acknowledgement arrives.
    INITIATE_SHUTDOWN = "initiate_shutdown"
    # Engine acknowledged the shutdown; stop feeding events.
    SHUTDOWN = "shutdown"


class RendererState(str, Enum):
    """Lifecycle of a rendering session."""

    RUNNING = "running"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    TERMINATED = "terminated"


class Renderer(ABC):
    """Abstract renderer interface for session output.

    Renderers receive events one at a time from a single driver and
    produce output in their target format.
    """

    @abstractmethod
    def print_config_summary(
        self,
        config: ExecConfig,
        prompt: str,
        session_configured: SessionConfiguredEvent,
    ) -> None:
        """Print the session header before any event is processed."""
        pass

    @abstractmethod
    def process_event(self, event: Event) -> ControlSignal:
        """Render one event and tell the driver how to proceed."""
        pass

    def close(self) -> None:
        """Release output resources. Called once when the driver finishes."""
        pass
