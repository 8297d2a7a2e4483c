"""concise-exec - concise console renderer for agent event streams.

Usage:
    from concise_exec import ConciseRenderer, deserialize_event

    renderer = ConciseRenderer(with_ansi=False)
    signal = renderer.process_event(deserialize_event(line))
"""

from concise_exec.constants import APP_NAME, __version__
from concise_exec.config import ExecConfig, SandboxPolicy, load_exec_config
from concise_exec.events import (
    Event,
    EventType,
    deserialize_event,
    serialize_event,
)
from concise_exec.renderers import (
    ConciseRenderer,
    ControlSignal,
    Renderer,
    RendererState,
)
from concise_exec.transcript_log import TranscriptLog

__all__ = [
    "APP_NAME",
    "__version__",
    # Config
    "ExecConfig",
    "SandboxPolicy",
    "load_exec_config",
    # Events
    "Event",
    "EventType",
    "deserialize_event",
    "serialize_event",
    # Rendering
    "ConciseRenderer",
    "ControlSignal",
    "Renderer",
    "RendererState",
    "TranscriptLog",
]
