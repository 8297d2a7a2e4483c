"""Tests for the event loop driver."""

import io
import json
import logging
from unittest.mock import Mock

from concise_exec.config import ExecConfig
from concise_exec.driver import read_events, run_event_loop
from concise_exec.events import (
    AgentMessageEvent,
    ErrorEvent,
    SessionConfiguredEvent,
    ShutdownCompleteEvent,
    TaskCompleteEvent,
)
from concise_exec.renderers.base import ControlSignal


def jsonl(*events) -> io.StringIO:
    return io.StringIO("".join(json.dumps(e) + "\n" for e in events))


class TestReadEvents:

    def test_reads_events_in_order(self):
        events = list(read_events(jsonl(
            {"type": "agent_message", "message": "hi"},
            {"type": "task_complete", "last_agent_message": "done"},
        )))
        assert isinstance(events[0], AgentMessageEvent)
        assert isinstance(events[1], TaskCompleteEvent)

    def test_skips_blank_and_bad_lines(self, caplog):
        stream = io.StringIO(
            '\n'
            '{"type": "error", "message": "a"}\n'
            '{oops\n'
            '{"type": "made_up"}\n'
            '"just a string"\n'
            '{"type": "error", "message": "b"}\n'
        )
        with caplog.at_level(logging.WARNING, logger="concise_exec.driver"):
            events = list(read_events(stream))
        assert [e.message for e in events] == ["a", "b"]
        assert "line 3" in caplog.text
        assert "line 4" in caplog.text
        assert "line 5" in caplog.text

    def test_skips_undecodable_line_in_binary_stream(self, caplog):
        stream = io.BytesIO(
            b'{"type": "agent_message", "message": "caf\xe9"}\n'
            b'{"type": "task_complete", "last_agent_message": "caf\xc3\xa9"}\n'
        )
        with caplog.at_level(logging.WARNING, logger="concise_exec.driver"):
            events = list(read_events(stream))
        assert len(events) == 1
        assert isinstance(events[0], TaskCompleteEvent)
        assert events[0].last_agent_message == "café"
        assert "Skipping undecodable line 1" in caplog.text

    def test_lone_surrogate_is_replaced(self, make_renderer, output_lines):
        events = list(read_events(io.BytesIO(
            b'{"type": "agent_message", "message": "bad \\ud800 char"}\n'
        )))
        assert events[0].message == "bad ? char"

        renderer = make_renderer()
        assert renderer.process_event(events[0]) is ControlSignal.CONTINUE
        assert output_lines()[-1] == "bad ? char"


class TestRunEventLoop:

    def _renderer(self, signals=None):
        renderer = Mock()
        renderer.process_event.side_effect = (
            lambda event: (signals or {}).get(type(event), ControlSignal.CONTINUE)
        )
        return renderer

    def test_summary_printed_once_before_first_session_event(self, tmp_path):
        renderer = self._renderer()
        config = ExecConfig(cwd=tmp_path)
        first = SessionConfiguredEvent(session_id="1", model="m")
        second = SessionConfiguredEvent(session_id="2", model="m")

        run_event_loop(renderer, [ErrorEvent(message="x"), first, second], config, "prompt")

        renderer.print_config_summary.assert_called_once_with(config, "prompt", first)
        names = [c[0] for c in renderer.mock_calls]
        assert names.index("print_config_summary") == 1
        assert renderer.process_event.call_count == 3

    def test_shutdown_stops_consumption(self, tmp_path):
        renderer = self._renderer({
            TaskCompleteEvent: ControlSignal.INITIATE_SHUTDOWN,
            ShutdownCompleteEvent: ControlSignal.SHUTDOWN,
        })
        request_shutdown = Mock()
        events = iter([
            TaskCompleteEvent(last_agent_message="ok"),
            ShutdownCompleteEvent(),
            ErrorEvent(message="never seen"),
        ])

        status = run_event_loop(
            renderer, events, ExecConfig(cwd=tmp_path), "p", request_shutdown=request_shutdown,
        )

        assert status is ControlSignal.SHUTDOWN
        request_shutdown.assert_called_once_with()
        assert renderer.process_event.call_count == 2
        assert next(events).message == "never seen"

    def test_shutdown_requested_once(self, tmp_path):
        renderer = self._renderer({TaskCompleteEvent: ControlSignal.INITIATE_SHUTDOWN})
        request_shutdown = Mock()
        status = run_event_loop(
            renderer,
            [TaskCompleteEvent(), AgentMessageEvent(message="late"), TaskCompleteEvent()],
            ExecConfig(cwd=tmp_path),
            "p",
            request_shutdown=request_shutdown,
        )
        assert status is ControlSignal.INITIATE_SHUTDOWN
        request_shutdown.assert_called_once_with()
        assert renderer.process_event.call_count == 3

    def test_stream_ends_before_completion(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="concise_exec.driver"):
            status = run_event_loop(
                self._renderer(), [AgentMessageEvent(message="hi")], ExecConfig(cwd=tmp_path), "p",
            )
        assert status is ControlSignal.CONTINUE
        assert "ended before the task completed" in caplog.text

    def test_with_concise_renderer(self, make_renderer, output_lines, tmp_path):
        renderer = make_renderer()
        events = read_events(jsonl(
            {"type": "session_configured", "session_id": "abc", "model": "m1"},
            {"type": "task_started"},
            {"type": "exec_command_begin", "call_id": "1", "command": ["pytest"]},
            {"type": "exec_command_end", "call_id": "1", "exit_code": 0},
            {"type": "task_complete", "last_agent_message": "green"},
            {"type": "shutdown_complete"},
        ))

        status = run_event_loop(renderer, events, ExecConfig(cwd=tmp_path), "run tests")

        assert status is ControlSignal.SHUTDOWN
        text = "\n".join(output_lines())
        assert "Session abc using model m1" in text
        assert "Running command: pytest" in text
        assert output_lines()[-1] == "green"
