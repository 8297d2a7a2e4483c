# concise_exec/renderers/__init__.py
"""Renderers turning engine events into console output."""

from .base import ControlSignal, Renderer, RendererState
from .concise import ConciseRenderer, SUPPRESSED_EVENT_TYPES

__all__ = [
    "ControlSignal",
    "Renderer",
    "RendererState",
    "ConciseRenderer",
    "SUPPRESSED_EVENT_TYPES",
]
