"""Command-line entry point for concise-exec.

Renders a recorded or piped agent event stream as a concise transcript.

Usage:
    # Events piped from the engine, prompt given inline
    agent-engine --json "fix the tests" | concise-exec "fix the tests"

    # Events from a file, transcript mirrored to disk
    concise-exec --events run.jsonl --transcript-log logs/run.log "fix the tests"

    # Prompt read from stdin
    echo "fix the tests" | concise-exec --events run.jsonl -
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from concise_exec.config import SANDBOX_MODES, ExecConfig, SandboxPolicy, load_exec_config
from concise_exec.constants import APP_NAME, __version__
from concise_exec.driver import read_events, run_event_loop
from concise_exec.renderers.base import ControlSignal
from concise_exec.renderers.concise import ConciseRenderer
from concise_exec.terminal import COLOR_MODES, configure_utf8_output, resolve_color_mode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Render an agent event stream as a concise console transcript",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Event stream:
  One JSON object per line, e.g.
    {"type": "exec_command_begin", "call_id": "1", "command": ["echo", "hi"]}

Configuration:
  ~/.concise_exec/config.json, <workdir>/.concise_exec/config.json and
  CONCISE_EXEC_* environment variables; flags override all of them.
        """,
    )
    parser.add_argument(
        "prompt",
        nargs="?",
        help="Prompt the session was started with ('-' or omitted: read from stdin)"
    )
    parser.add_argument(
        "--events",
        default="-",
        metavar="FILE",
        help="JSON-lines event stream (default: stdin)"
    )
    parser.add_argument(
        "--transcript-log",
        metavar="PATH",
        help="Mirror the transcript to this file (overwritten)"
    )
    parser.add_argument(
        "--output-last-message",
        metavar="PATH",
        help="Write the agent's final message to this file"
    )
    parser.add_argument(
        "--color",
        choices=COLOR_MODES,
        help="Style console output (default: auto)"
    )
    parser.add_argument(
        "-C", "--cd",
        metavar="DIR",
        help="Working directory of the session (default: current directory)"
    )
    parser.add_argument(
        "-m", "--model",
        help="Model name shown in the summary"
    )
    parser.add_argument(
        "--sandbox",
        choices=SANDBOX_MODES,
        help="Sandbox mode shown in the summary"
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: .env)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging on stderr"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def apply_cli_overrides(config: ExecConfig, args: argparse.Namespace) -> ExecConfig:
    """Apply command-line flags on top of the loaded configuration."""
    if args.model:
        config.model = args.model
    if args.sandbox:
        config.sandbox = SandboxPolicy(
            mode=args.sandbox,
            writable_roots=config.sandbox.writable_roots,
            network_access=config.sandbox.network_access,
            exclude_tmpdir_env_var=config.sandbox.exclude_tmpdir_env_var,
            exclude_slash_tmp=config.sandbox.exclude_slash_tmp,
        )
    if args.transcript_log:
        config.transcript_log = args.transcript_log
    if args.output_last_message:
        config.output_last_message = args.output_last_message
    if args.color:
        config.color = args.color
    return config


def _read_prompt(args: argparse.Namespace, parser: argparse.ArgumentParser) -> str:
    if args.prompt is not None and args.prompt != "-":
        return args.prompt
    if args.events == "-":
        parser.error("the prompt must be given as an argument when events are read from stdin")
    return sys.stdin.read()


def main(argv: Optional[List[str]] = None) -> int:
    configure_utf8_output()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    load_dotenv(args.env_file)

    workspace = Path(args.cd).resolve() if args.cd else Path.cwd()
    config = apply_cli_overrides(load_exec_config(workspace), args)
    prompt = _read_prompt(args, parser)

    try:
        renderer = ConciseRenderer(
            with_ansi=resolve_color_mode(config.color),
            last_message_path=config.output_last_message,
            transcript_log_path=config.transcript_log,
        )
    except OSError as e:
        print(f"Error: cannot open transcript log {config.transcript_log}: {e}", file=sys.stderr)
        return 1

    # Bytes; read_events decodes each line
    if args.events == "-":
        stream = sys.stdin.buffer
    else:
        try:
            stream = open(args.events, "rb")
        except OSError as e:
            renderer.close()
            print(f"Error: cannot read events from {args.events}: {e}", file=sys.stderr)
            return 1

    try:
        status = run_event_loop(renderer, read_events(stream), config, prompt)
    except KeyboardInterrupt:
        logger.debug("Interrupted")
        return 130
    finally:
        renderer.close()
        if args.events != "-":
            stream.close()

    return 0 if status is not ControlSignal.CONTINUE else 1


if __name__ == "__main__":
    sys.exit(main())
