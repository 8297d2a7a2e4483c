# concise_exec/renderers/concise.py
"""Concise console renderer.

Prints only lifecycle milestones of a session: commands and patches
starting and finishing, plan updates, agent messages, errors and the
final result. Streaming deltas, reasoning traces and other chatter are
suppressed. Every console line can be mirrored to a plain-text transcript.

Status lines look like:
    [2025-01-01T12:00:00] Running command: echo hi
    [2025-01-01T12:00:00] Command succeeded (exit 0, 5ms): echo hi
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from time import monotonic
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from rich.console import Console
from rich.style import Style
from rich.text import Text

from concise_exec.config import ExecConfig, create_config_summary_entries
from concise_exec.constants import APP_NAME, __version__
from concise_exec.events import (
    AgentMessageEvent,
    ErrorEvent,
    Event,
    EventType,
    ExecCommandBeginEvent,
    ExecCommandEndEvent,
    PatchApplyBeginEvent,
    PatchApplyEndEvent,
    PlanUpdateEvent,
    SessionConfiguredEvent,
    StepStatus,
    StreamErrorEvent,
    TaskCompleteEvent,
    TokenCountEvent,
    TokenUsageInfo,
    TurnAbortedEvent,
)
from concise_exec.formatting import (
    escape_command,
    format_duration,
    format_elapsed,
    split_lines,
    timestamp_prefix,
)
from concise_exec.last_message import handle_last_message
from concise_exec.styles import RenderStyles, make_console
from concise_exec.transcript_log import TranscriptLog
from .base import ControlSignal, Renderer, RendererState

logger = logging.getLogger(__name__)


# Plan step markers
STEP_MARKERS = {
    StepStatus.COMPLETED: "✓",
    StepStatus.IN_PROGRESS: "→",
    StepStatus.PENDING: "•",
}

# Events that produce no output and leave the renderer state untouched.
SUPPRESSED_EVENT_TYPES: FrozenSet[EventType] = frozenset({
    EventType.BACKGROUND_EVENT,
    EventType.TASK_STARTED,
    EventType.EXEC_COMMAND_OUTPUT_DELTA,
    EventType.EXEC_APPROVAL_REQUEST,
    EventType.APPLY_PATCH_APPROVAL_REQUEST,
    EventType.TURN_DIFF,
    EventType.AGENT_MESSAGE_DELTA,
    EventType.AGENT_REASONING,
    EventType.AGENT_REASONING_DELTA,
    EventType.AGENT_REASONING_RAW_CONTENT,
    EventType.AGENT_REASONING_RAW_CONTENT_DELTA,
    EventType.AGENT_REASONING_SECTION_BREAK,
    EventType.USER_MESSAGE,
    EventType.MCP_TOOL_CALL_BEGIN,
    EventType.MCP_TOOL_CALL_END,
    EventType.WEB_SEARCH_BEGIN,
    EventType.WEB_SEARCH_END,
    EventType.SESSION_CONFIGURED,
    EventType.CONVERSATION_PATH,
    EventType.GET_HISTORY_ENTRY_RESPONSE,
    EventType.MCP_LIST_TOOLS_RESPONSE,
    EventType.LIST_CUSTOM_PROMPTS_RESPONSE,
    EventType.ENTERED_REVIEW_MODE,
    EventType.EXITED_REVIEW_MODE,
})

LastMessageWriter = Callable[[Optional[str], Path], None]


@dataclass
class PendingCommand:
    """A command that has started but not yet been seen to finish."""
    command: List[str]
    start_time: float  # time.monotonic()


@dataclass
class PendingPatch:
    """A patch that has started but not yet been seen to finish."""
    start_time: float  # time.monotonic()
    auto_approved: bool


class ConciseRenderer(Renderer):
    """Renderer that prints one line per lifecycle milestone.

    Correlation state (in-flight commands and patches, latest token usage)
    lives here and is mutated only by process_event, so calls must be
    serialized by the single driver.
    """

    # Event type -> handler method name. Together with SUPPRESSED_EVENT_TYPES
    # this covers every EventType exactly once.
    HANDLERS: Dict[EventType, str] = {
        EventType.ERROR: "_on_error",
        EventType.STREAM_ERROR: "_on_stream_error",
        EventType.EXEC_COMMAND_BEGIN: "_on_exec_begin",
        EventType.EXEC_COMMAND_END: "_on_exec_end",
        EventType.PATCH_APPLY_BEGIN: "_on_patch_begin",
        EventType.PATCH_APPLY_END: "_on_patch_end",
        EventType.PLAN_UPDATE: "_on_plan_update",
        EventType.TOKEN_COUNT: "_on_token_count",
        EventType.TASK_COMPLETE: "_on_task_complete",
        EventType.TURN_ABORTED: "_on_turn_aborted",
        EventType.SHUTDOWN_COMPLETE: "_on_shutdown_complete",
        EventType.AGENT_MESSAGE: "_on_agent_message",
    }

    def __init__(
        self,
        with_ansi: bool,
        last_message_path: Optional[Union[str, Path]] = None,
        transcript_log_path: Optional[Union[str, Path]] = None,
        console: Optional[Console] = None,
        last_message_writer: LastMessageWriter = handle_last_message,
    ):
        """Initialize the concise renderer.

        Args:
            with_ansi: Whether console output is styled.
            last_message_path: If set, the final agent message is handed to
                ``last_message_writer`` with this path on task completion.
            transcript_log_path: If set, every line is mirrored to this file
                (truncated on open).
            console: Console to print to (default: stdout).
            last_message_writer: Callable persisting the final message.

        Raises:
            OSError: If the transcript file cannot be created.
        """
        self.styles = RenderStyles.for_ansi(with_ansi)
        self.console = console if console is not None else make_console(with_ansi)
        self.last_message_path = Path(last_message_path) if last_message_path else None
        self._last_message_writer = last_message_writer
        self._transcript_log: Optional[TranscriptLog] = None
        if transcript_log_path is not None:
            self._transcript_log = TranscriptLog.create(transcript_log_path)

        self.state = RendererState.RUNNING
        self._pending_commands: Dict[str, PendingCommand] = {}
        self._pending_patches: Dict[str, PendingPatch] = {}
        self._latest_token_usage: Optional[TokenUsageInfo] = None

    # ==================== Output ====================

    def _emit_status(self, message: str, style: Style) -> None:
        """Timestamped, styled line."""
        timestamp = timestamp_prefix()
        if self._transcript_log is not None:
            self._transcript_log.write_line(f"{timestamp} {message}")
        self.console.print(
            Text.assemble((timestamp, self.styles.timestamp), " ", (message, style))
        )

    def _emit_plain_line(self, message: str) -> None:
        """Unstyled line without timestamp."""
        if self._transcript_log is not None:
            self._transcript_log.write_line(message)
        self.console.print(Text(message))

    def _emit_multiline(self, message: str) -> None:
        for line in split_lines(message):
            self._emit_plain_line(line)

    # ==================== Session Header ====================

    def print_config_summary(
        self,
        config: ExecConfig,
        prompt: str,
        session_configured: SessionConfiguredEvent,
    ) -> None:
        """Print the banner, session identity, sandbox, workdir and prompt.

        Of the config summary entries only ``sandbox`` is shown.
        """
        styles = self.styles
        self._emit_status(f"{APP_NAME} (v{__version__}) non-interactive session", styles.status)

        model = session_configured.model
        self._emit_status(
            f"Session {session_configured.session_id} using model {model}", styles.info
        )
        self._emit_status(f"model: {model}", styles.info)

        for key, value in create_config_summary_entries(config):
            if key == "sandbox":
                self._emit_status(f"{key}: {value}", styles.info)

        self._emit_status(f"Working directory: {config.cwd}", styles.info)

        self._emit_status("Prompt:", styles.status)
        self._emit_multiline(prompt)

    # ==================== Dispatch ====================

    def process_event(self, event: Event) -> ControlSignal:
        """Render one event.

        Returns:
            INITIATE_SHUTDOWN after task completion, SHUTDOWN after the
            shutdown acknowledgement, CONTINUE otherwise.

        Raises:
            ValueError: If the event type is neither handled nor suppressed.
        """
        if event.type in SUPPRESSED_EVENT_TYPES:
            return ControlSignal.CONTINUE

        handler_name = self.HANDLERS.get(event.type)
        if handler_name is None:
            raise ValueError(f"Unclassified event type: {event.type}")

        signal = getattr(self, handler_name)(event)
        return signal or ControlSignal.CONTINUE

    # ==================== Errors ====================

    def _on_error(self, event: ErrorEvent) -> None:
        self._emit_status(f"Error: {event.message}", self.styles.error)

    def _on_stream_error(self, event: StreamErrorEvent) -> None:
        self._emit_status(f"Stream error: {event.message}", self.styles.error)

    def _on_turn_aborted(self, event: TurnAbortedEvent) -> None:
        self._emit_status("Task aborted", self.styles.error)

    # ==================== Commands ====================

    def _on_exec_begin(self, event: ExecCommandBeginEvent) -> None:
        self._pending_commands[event.call_id] = PendingCommand(
            command=list(event.command),
            start_time=monotonic(),
        )
        escaped = escape_command(event.command)
        self._emit_status(f"Running command: {escaped}", self.styles.status)

    def _on_exec_end(self, event: ExecCommandEndEvent) -> None:
        pending = self._pending_commands.pop(event.call_id, None)
        if pending is not None:
            command = escape_command(pending.command)
            elapsed = format_elapsed(pending.start_time, monotonic())
        else:
            logger.debug(f"Command end without begin: call_id={event.call_id}")
            command = f"command {event.call_id}"
            elapsed = None

        # Wall-clock time since begin wins over the engine-reported duration
        suffix = elapsed or format_duration(event.duration_seconds)
        exit_code = event.exit_code

        if exit_code == 0:
            self._emit_status(
                f"Command succeeded (exit {exit_code}, {suffix}): {command}",
                self.styles.success,
            )
        else:
            self._emit_status(
                f"Command failed (exit {exit_code}, {suffix}): {command}",
                self.styles.error,
            )

    # ==================== Patches ====================

    def _on_patch_begin(self, event: PatchApplyBeginEvent) -> None:
        self._pending_patches[event.call_id] = PendingPatch(
            start_time=monotonic(),
            auto_approved=event.auto_approved,
        )
        approval = "auto-approved" if event.auto_approved else "awaiting approval"
        self._emit_status(
            f"Applying patch ({approval}, {len(event.changes)} files)",
            self.styles.status,
        )

    def _on_patch_end(self, event: PatchApplyEndEvent) -> None:
        pending = self._pending_patches.pop(event.call_id, None)
        if pending is not None:
            auto_approved = pending.auto_approved
            duration = format_elapsed(pending.start_time, monotonic())
        else:
            logger.debug(f"Patch end without begin: call_id={event.call_id}")
            auto_approved = False
            duration = None

        approval = "auto-approved" if auto_approved else "manual"
        if event.success:
            summary = (
                f"Patch applied ({approval}, {duration})" if duration
                else f"Patch applied ({approval})"
            )
            style = self.styles.success
        else:
            summary = (
                f"Patch failed ({approval}, {duration})" if duration
                else f"Patch failed ({approval})"
            )
            style = self.styles.error
        self._emit_status(summary, style)

    # ==================== Plan ====================

    def _on_plan_update(self, event: PlanUpdateEvent) -> None:
        self._emit_status("Plan update", self.styles.info)
        if event.explanation and event.explanation.strip():
            self._emit_multiline(event.explanation)
        for item in event.plan:
            self._emit_plain_line(f"{STEP_MARKERS[item.status]} {item.step}")

    # ==================== Messages ====================

    def _on_agent_message(self, event: AgentMessageEvent) -> None:
        if not event.message.strip():
            return
        self._emit_status("Agent message:", self.styles.info)
        self._emit_multiline(event.message)

    # ==================== Task Lifecycle ====================

    def _on_token_count(self, event: TokenCountEvent) -> None:
        if event.info is not None:
            self._latest_token_usage = event.info

    def _on_task_complete(self, event: TaskCompleteEvent) -> ControlSignal:
        message = event.last_agent_message
        if self.last_message_path is not None:
            self._last_message_writer(message, self.last_message_path)

        if message is not None and message.strip():
            self._emit_status("Final result:", self.styles.status)
            self._emit_multiline(message)
        else:
            self._emit_status("Task complete (no final message).", self.styles.status)

        self._emit_final_token_usage()
        self.state = RendererState.SHUTDOWN_REQUESTED
        return ControlSignal.INITIATE_SHUTDOWN

    def _emit_final_token_usage(self) -> None:
        info, self._latest_token_usage = self._latest_token_usage, None
        if info is None:
            return
        total = info.total_token_usage.blended_total()
        self._emit_status(f"Total tokens used: {total}", self.styles.info)

    def _on_shutdown_complete(self, event: Event) -> ControlSignal:
        self.state = RendererState.TERMINATED
        return ControlSignal.SHUTDOWN

    # ==================== Lifecycle ====================

    def close(self) -> None:
        """Close the transcript log, if any."""
        if self._transcript_log is not None:
            self._transcript_log.close()
