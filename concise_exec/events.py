"""Event protocol consumed by the concise renderer.

This module defines every event the agent engine can emit during a
non-interactive session. Events are JSON-serializable dataclasses that
arrive one per line on the event stream.

Wire shape:
    {"type": "exec_command_begin", "call_id": "1", "command": ["echo", "hi"]}

Fields not known to the target dataclass are dropped on decode so newer
engines can add payload fields without breaking older renderers.
"""

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Any, Dict, List, Optional
import json


# =============================================================================
# Event Types
# =============================================================================

class EventType(str, Enum):
    """All event tags in the protocol."""

    # Errors
    ERROR = "error"
    STREAM_ERROR = "stream_error"
    BACKGROUND_EVENT = "background_event"

    # Task lifecycle
    TASK_STARTED = "task_started"
    TASK_COMPLETE = "task_complete"
    TURN_ABORTED = "turn_aborted"
    SHUTDOWN_COMPLETE = "shutdown_complete"
    TOKEN_COUNT = "token_count"

    # Command execution
    EXEC_COMMAND_BEGIN = "exec_command_begin"
    EXEC_COMMAND_END = "exec_command_end"
    EXEC_COMMAND_OUTPUT_DELTA = "exec_command_output_delta"
    EXEC_APPROVAL_REQUEST = "exec_approval_request"

    # Patches
    PATCH_APPLY_BEGIN = "patch_apply_begin"
    PATCH_APPLY_END = "patch_apply_end"
    APPLY_PATCH_APPROVAL_REQUEST = "apply_patch_approval_request"
    TURN_DIFF = "turn_diff"

    # Agent output
    AGENT_MESSAGE = "agent_message"
    AGENT_MESSAGE_DELTA = "agent_message_delta"
    AGENT_REASONING = "agent_reasoning"
    AGENT_REASONING_DELTA = "agent_reasoning_delta"
    AGENT_REASONING_RAW_CONTENT = "agent_reasoning_raw_content"
    AGENT_REASONING_RAW_CONTENT_DELTA = "agent_reasoning_raw_content_delta"
    AGENT_REASONING_SECTION_BREAK = "agent_reasoning_section_break"
    USER_MESSAGE = "user_message"
    PLAN_UPDATE = "plan_update"

    # Tools
    MCP_TOOL_CALL_BEGIN = "mcp_tool_call_begin"
    MCP_TOOL_CALL_END = "mcp_tool_call_end"
    WEB_SEARCH_BEGIN = "web_search_begin"
    WEB_SEARCH_END = "web_search_end"

    # Session
    SESSION_CONFIGURED = "session_configured"
    CONVERSATION_PATH = "conversation_path"
    GET_HISTORY_ENTRY_RESPONSE = "get_history_entry_response"
    MCP_LIST_TOOLS_RESPONSE = "mcp_list_tools_response"
    LIST_CUSTOM_PROMPTS_RESPONSE = "list_custom_prompts_response"

    # Review mode
    ENTERED_REVIEW_MODE = "entered_review_mode"
    EXITED_REVIEW_MODE = "exited_review_mode"


class StepStatus(str, Enum):
    """Status of a single plan step."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# =============================================================================
# Payload Records
# =============================================================================

@dataclass
class TokenUsage:
    """Token counts for one request or a whole session."""
    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0
    reasoning_output_tokens: int = 0
    total_tokens: int = 0

    def non_cached_input(self) -> int:
        return max(self.input_tokens - self.cached_input_tokens, 0)

    def blended_total(self) -> int:
        """Tokens billed at full rate: non-cached input plus output."""
        return self.non_cached_input() + self.output_tokens


@dataclass
class TokenUsageInfo:
    """Cumulative and most recent token usage."""
    total_token_usage: TokenUsage = field(default_factory=TokenUsage)
    last_token_usage: TokenUsage = field(default_factory=TokenUsage)
    model_context_window: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.total_token_usage, dict):
            self.total_token_usage = _build(TokenUsage, self.total_token_usage)
        if isinstance(self.last_token_usage, dict):
            self.last_token_usage = _build(TokenUsage, self.last_token_usage)


@dataclass
class PlanItem:
    """One step of an agent plan."""
    step: str = ""
    status: StepStatus = StepStatus.PENDING

    def __post_init__(self):
        if not isinstance(self.status, StepStatus):
            self.status = StepStatus(self.status)


# =============================================================================
# Base Event
# =============================================================================

@dataclass
class Event:
    """Base class for all events."""
    type: EventType
    id: str = ""  # submission id the event belongs to

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d['type'] = self.type.value
        return _enum_values(d)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())


# =============================================================================
# Handled Events
# =============================================================================

@dataclass
class ErrorEvent(Event):
    """Fatal or turn-level error reported by the engine."""
    type: EventType = field(default=EventType.ERROR)
    message: str = ""


@dataclass
class StreamErrorEvent(Event):
    """Transient model stream error (the engine may retry)."""
    type: EventType = field(default=EventType.STREAM_ERROR)
    message: str = ""


@dataclass
class ExecCommandBeginEvent(Event):
    """A shell command started."""
    type: EventType = field(default=EventType.EXEC_COMMAND_BEGIN)
    call_id: str = ""
    command: List[str] = field(default_factory=list)
    cwd: str = ""


@dataclass
class ExecCommandEndEvent(Event):
    """A shell command finished."""
    type: EventType = field(default=EventType.EXEC_COMMAND_END)
    call_id: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    duration_seconds: float = 0.0  # as measured by the engine


@dataclass
class PatchApplyBeginEvent(Event):
    """A patch is about to be applied."""
    type: EventType = field(default=EventType.PATCH_APPLY_BEGIN)
    call_id: str = ""
    auto_approved: bool = False
    changes: Dict[str, Any] = field(default_factory=dict)  # path -> change


@dataclass
class PatchApplyEndEvent(Event):
    """A patch finished applying."""
    type: EventType = field(default=EventType.PATCH_APPLY_END)
    call_id: str = ""
    stdout: str = ""
    stderr: str = ""
    success: bool = False


@dataclass
class PlanUpdateEvent(Event):
    """The agent published a new version of its plan."""
    type: EventType = field(default=EventType.PLAN_UPDATE)
    explanation: Optional[str] = None
    plan: List[PlanItem] = field(default_factory=list)

    def __post_init__(self):
        self.plan = [
            _build(PlanItem, item) if isinstance(item, dict) else item
            for item in self.plan
        ]


@dataclass
class TokenCountEvent(Event):
    """Token usage update. ``info`` is absent before the first response."""
    type: EventType = field(default=EventType.TOKEN_COUNT)
    info: Optional[TokenUsageInfo] = None

    def __post_init__(self):
        if isinstance(self.info, dict):
            self.info = _build(TokenUsageInfo, self.info)


@dataclass
class TaskCompleteEvent(Event):
    """The agent finished the task."""
    type: EventType = field(default=EventType.TASK_COMPLETE)
    last_agent_message: Optional[str] = None


@dataclass
class TurnAbortedEvent(Event):
    """The current turn was interrupted or replaced."""
    type: EventType = field(default=EventType.TURN_ABORTED)
    reason: str = ""


@dataclass
class ShutdownCompleteEvent(Event):
    """The engine acknowledged the shutdown request."""
    type: EventType = field(default=EventType.SHUTDOWN_COMPLETE)


@dataclass
class AgentMessageEvent(Event):
    """A complete agent message."""
    type: EventType = field(default=EventType.AGENT_MESSAGE)
    message: str = ""


@dataclass
class SessionConfiguredEvent(Event):
    """First event of a session: identifies the session and model."""
    type: EventType = field(default=EventType.SESSION_CONFIGURED)
    session_id: str = ""
    model: str = ""
    history_log_id: int = 0
    history_entry_count: int = 0
    rollout_path: str = ""


# =============================================================================
# Events Suppressed in Concise Mode
# =============================================================================

@dataclass
class BackgroundEventEvent(Event):
    type: EventType = field(default=EventType.BACKGROUND_EVENT)
    message: str = ""


@dataclass
class TaskStartedEvent(Event):
    type: EventType = field(default=EventType.TASK_STARTED)
    model_context_window: Optional[int] = None


@dataclass
class ExecCommandOutputDeltaEvent(Event):
    type: EventType = field(default=EventType.EXEC_COMMAND_OUTPUT_DELTA)
    call_id: str = ""
    stream: str = "stdout"  # "stdout" or "stderr"
    chunk: str = ""


@dataclass
class ExecApprovalRequestEvent(Event):
    type: EventType = field(default=EventType.EXEC_APPROVAL_REQUEST)
    call_id: str = ""
    command: List[str] = field(default_factory=list)
    cwd: str = ""
    reason: Optional[str] = None


@dataclass
class ApplyPatchApprovalRequestEvent(Event):
    type: EventType = field(default=EventType.APPLY_PATCH_APPROVAL_REQUEST)
    call_id: str = ""
    changes: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    grant_root: Optional[str] = None


@dataclass
class TurnDiffEvent(Event):
    type: EventType = field(default=EventType.TURN_DIFF)
    unified_diff: str = ""


@dataclass
class AgentMessageDeltaEvent(Event):
    type: EventType = field(default=EventType.AGENT_MESSAGE_DELTA)
    delta: str = ""


@dataclass
class AgentReasoningEvent(Event):
    type: EventType = field(default=EventType.AGENT_REASONING)
    text: str = ""


@dataclass
class AgentReasoningDeltaEvent(Event):
    type: EventType = field(default=EventType.AGENT_REASONING_DELTA)
    delta: str = ""


@dataclass
class AgentReasoningRawContentEvent(Event):
    type: EventType = field(default=EventType.AGENT_REASONING_RAW_CONTENT)
    text: str = ""


@dataclass
class AgentReasoningRawContentDeltaEvent(Event):
    type: EventType = field(default=EventType.AGENT_REASONING_RAW_CONTENT_DELTA)
    delta: str = ""


@dataclass
class AgentReasoningSectionBreakEvent(Event):
    type: EventType = field(default=EventType.AGENT_REASONING_SECTION_BREAK)


@dataclass
class UserMessageEvent(Event):
    type: EventType = field(default=EventType.USER_MESSAGE)
    message: str = ""
    kind: Optional[str] = None
    images: Optional[List[str]] = None


@dataclass
class McpToolCallBeginEvent(Event):
    type: EventType = field(default=EventType.MCP_TOOL_CALL_BEGIN)
    call_id: str = ""
    invocation: Dict[str, Any] = field(default_factory=dict)


@dataclass
class McpToolCallEndEvent(Event):
    type: EventType = field(default=EventType.MCP_TOOL_CALL_END)
    call_id: str = ""
    invocation: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    result: Optional[Dict[str, Any]] = None


@dataclass
class WebSearchBeginEvent(Event):
    type: EventType = field(default=EventType.WEB_SEARCH_BEGIN)
    call_id: str = ""


@dataclass
class WebSearchEndEvent(Event):
    type: EventType = field(default=EventType.WEB_SEARCH_END)
    call_id: str = ""
    query: str = ""


@dataclass
class ConversationPathEvent(Event):
    type: EventType = field(default=EventType.CONVERSATION_PATH)
    conversation_id: str = ""
    path: str = ""


@dataclass
class GetHistoryEntryResponseEvent(Event):
    type: EventType = field(default=EventType.GET_HISTORY_ENTRY_RESPONSE)
    offset: int = 0
    log_id: int = 0
    entry: Optional[Dict[str, Any]] = None


@dataclass
class McpListToolsResponseEvent(Event):
    type: EventType = field(default=EventType.MCP_LIST_TOOLS_RESPONSE)
    tools: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ListCustomPromptsResponseEvent(Event):
    type: EventType = field(default=EventType.LIST_CUSTOM_PROMPTS_RESPONSE)
    custom_prompts: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class EnteredReviewModeEvent(Event):
    type: EventType = field(default=EventType.ENTERED_REVIEW_MODE)
    review_request: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExitedReviewModeEvent(Event):
    type: EventType = field(default=EventType.EXITED_REVIEW_MODE)
    review_output: Optional[Dict[str, Any]] = None


# =============================================================================
# Serialization Helpers
# =============================================================================

# Map of event type -> event class
_EVENT_CLASSES: Dict[str, type] = {
    EventType.ERROR.value: ErrorEvent,
    EventType.STREAM_ERROR.value: StreamErrorEvent,
    EventType.BACKGROUND_EVENT.value: BackgroundEventEvent,
    EventType.TASK_STARTED.value: TaskStartedEvent,
    EventType.TASK_COMPLETE.value: TaskCompleteEvent,
    EventType.TURN_ABORTED.value: TurnAbortedEvent,
    EventType.SHUTDOWN_COMPLETE.value: ShutdownCompleteEvent,
    EventType.TOKEN_COUNT.value: TokenCountEvent,
    EventType.EXEC_COMMAND_BEGIN.value: ExecCommandBeginEvent,
    EventType.EXEC_COMMAND_END.value: ExecCommandEndEvent,
    EventType.EXEC_COMMAND_OUTPUT_DELTA.value: ExecCommandOutputDeltaEvent,
    EventType.EXEC_APPROVAL_REQUEST.value: ExecApprovalRequestEvent,
    EventType.PATCH_APPLY_BEGIN.value: PatchApplyBeginEvent,
    EventType.PATCH_APPLY_END.value: PatchApplyEndEvent,
    EventType.APPLY_PATCH_APPROVAL_REQUEST.value: ApplyPatchApprovalRequestEvent,
    EventType.TURN_DIFF.value: TurnDiffEvent,
    EventType.AGENT_MESSAGE.value: AgentMessageEvent,
    EventType.AGENT_MESSAGE_DELTA.value: AgentMessageDeltaEvent,
    EventType.AGENT_REASONING.value: AgentReasoningEvent,
    EventType.AGENT_REASONING_DELTA.value: AgentReasoningDeltaEvent,
    EventType.AGENT_REASONING_RAW_CONTENT.value: AgentReasoningRawContentEvent,
    EventType.AGENT_REASONING_RAW_CONTENT_DELTA.value: AgentReasoningRawContentDeltaEvent,
    EventType.AGENT_REASONING_SECTION_BREAK.value: AgentReasoningSectionBreakEvent,
    EventType.USER_MESSAGE.value: UserMessageEvent,
    EventType.PLAN_UPDATE.value: PlanUpdateEvent,
    EventType.MCP_TOOL_CALL_BEGIN.value: McpToolCallBeginEvent,
    EventType.MCP_TOOL_CALL_END.value: McpToolCallEndEvent,
    EventType.WEB_SEARCH_BEGIN.value: WebSearchBeginEvent,
    EventType.WEB_SEARCH_END.value: WebSearchEndEvent,
    EventType.SESSION_CONFIGURED.value: SessionConfiguredEvent,
    EventType.CONVERSATION_PATH.value: ConversationPathEvent,
    EventType.GET_HISTORY_ENTRY_RESPONSE.value: GetHistoryEntryResponseEvent,
    EventType.MCP_LIST_TOOLS_RESPONSE.value: McpListToolsResponseEvent,
    EventType.LIST_CUSTOM_PROMPTS_RESPONSE.value: ListCustomPromptsResponseEvent,
    EventType.ENTERED_REVIEW_MODE.value: EnteredReviewModeEvent,
    EventType.EXITED_REVIEW_MODE.value: ExitedReviewModeEvent,
}


def _build(cls: type, data: Dict[str, Any]) -> Any:
    """Instantiate a dataclass from a dict, dropping unknown keys."""
    known_fields = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known_fields})


def _enum_values(value: Any) -> Any:
    """Replace enum members nested in dicts/lists with their values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _enum_values(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_enum_values(v) for v in value]
    return value


def _replace_surrogates(value: Any) -> Any:
    """Replace lone surrogates (valid in JSON escapes, not in UTF-8) with "?"."""
    if isinstance(value, str):
        return value.encode("utf-8", "replace").decode("utf-8")
    if isinstance(value, dict):
        return {k: _replace_surrogates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace_surrogates(v) for v in value]
    return value


def serialize_event(event: Event) -> str:
    """Serialize an event to JSON string."""
    return event.to_json()


def event_from_dict(data: Dict[str, Any]) -> Event:
    """Build an event object from an already-decoded JSON object.

    Raises:
        ValueError: If the event type is missing or unknown.
    """
    event_type = data.get("type")

    if event_type not in _EVENT_CLASSES:
        raise ValueError(f"Unknown event type: {event_type}")

    event_class = _EVENT_CLASSES[event_type]

    data = dict(data)
    data["type"] = EventType(event_type)
    return _build(event_class, data)


def deserialize_event(json_str: str) -> Event:
    """Deserialize a JSON string to an event object.

    Args:
        json_str: JSON string representing an event.

    Returns:
        The deserialized event object.

    Raises:
        ValueError: If the event type is unknown or the payload is not an object.
        json.JSONDecodeError: If the JSON is invalid.
    """
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return event_from_dict(_replace_surrogates(data))


def create_event(event_type: EventType, **kwargs) -> Event:
    """Factory function to create an event by type.

    Args:
        event_type: The type of event to create.
        **kwargs: Event-specific fields.

    Returns:
        The created event object.
    """
    event_class = _EVENT_CLASSES.get(event_type.value)
    if not event_class:
        raise ValueError(f"Unknown event type: {event_type}")

    return event_class(**kwargs)
