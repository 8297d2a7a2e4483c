"""End-to-end tests for the concise-exec command line."""

import io
import json

import pytest

from concise_exec.cli import apply_cli_overrides, build_parser, main
from concise_exec.config import ExecConfig, SandboxPolicy


EVENTS = [
    {"type": "session_configured", "session_id": "sess", "model": "m1"},
    {"type": "exec_command_begin", "call_id": "1", "command": ["ls", "-la"]},
    {"type": "exec_command_output_delta", "call_id": "1", "chunk": "..."},
    {"type": "exec_command_end", "call_id": "1", "exit_code": 0, "duration_seconds": 0.01},
    {"type": "token_count", "info": {"total_token_usage": {"input_tokens": 40, "output_tokens": 2}}},
    {"type": "task_complete", "last_agent_message": "Listed the files."},
    {"type": "shutdown_complete"},
]


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text("".join(json.dumps(e) + "\n" for e in EVENTS), encoding="utf-8")
    return path


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.chdir(path)
    return path


def test_renders_events_file(events_file, workdir, capsys):
    code = main(["--events", str(events_file), "--color", "never", "list files"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Session sess using model m1" in out
    assert "sandbox: read-only" in out
    assert "Running command: ls -la" in out
    assert "Final result:" in out
    assert "Total tokens used: 42" in out
    assert "\x1b[" not in out


def test_transcript_and_last_message(events_file, workdir, tmp_path, capsys):
    transcript = tmp_path / "logs" / "run.log"
    last = tmp_path / "last.txt"

    code = main([
        "--events", str(events_file),
        "--transcript-log", str(transcript),
        "--output-last-message", str(last),
        "--color", "always",
        "list files",
    ])

    assert code == 0
    content = transcript.read_text(encoding="utf-8")
    assert "Prompt:" in content
    assert "\nlist files\n" in content
    assert "Final result:" in content
    assert "\x1b[" not in content
    assert last.read_text(encoding="utf-8") == "Listed the files."
    assert "\x1b[" in capsys.readouterr().out


def test_prompt_from_stdin(events_file, workdir, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("from stdin\n"))
    assert main(["--events", str(events_file), "--color", "never", "-"]) == 0
    assert "from stdin" in capsys.readouterr().out


def test_prompt_required_when_events_on_stdin(workdir):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_unopenable_transcript(events_file, workdir, tmp_path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    code = main([
        "--events", str(events_file),
        "--transcript-log", str(blocker / "run.log"),
        "prompt",
    ])
    assert code == 1
    assert "cannot open transcript log" in capsys.readouterr().err


def test_missing_events_file(workdir, tmp_path, capsys):
    code = main(["--events", str(tmp_path / "nope.jsonl"), "prompt"])
    assert code == 1
    assert "cannot read events" in capsys.readouterr().err


def test_incomplete_stream_exits_nonzero(workdir, tmp_path):
    path = tmp_path / "partial.jsonl"
    path.write_text(json.dumps(EVENTS[0]) + "\n", encoding="utf-8")
    assert main(["--events", str(path), "--color", "never", "prompt"]) == 1


def test_cli_overrides(tmp_path):
    config = ExecConfig(
        cwd=tmp_path,
        sandbox=SandboxPolicy(mode="read-only", writable_roots=["/data"]),
    )
    args = build_parser().parse_args(
        ["-m", "flag-model", "--sandbox", "workspace-write", "--color", "never", "p"]
    )
    config = apply_cli_overrides(config, args)
    assert config.model == "flag-model"
    assert config.sandbox.mode == "workspace-write"
    assert config.sandbox.writable_roots == ["/data"]
    assert config.color == "never"


def test_undecodable_line_is_skipped(workdir, tmp_path, capsys):
    path = tmp_path / "latin1.jsonl"
    path.write_bytes(
        b'{"type": "agent_message", "message": "caf\xe9"}\n'
        + "".join(json.dumps(e) + "\n" for e in EVENTS[5:]).encode("utf-8")
    )
    code = main(["--events", str(path), "--color", "never", "prompt"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Agent message:" not in out
    assert "Listed the files." in out
