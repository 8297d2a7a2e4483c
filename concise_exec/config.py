"""Session configuration loading with layered precedence.

Provides the resolved configuration the concise renderer summarizes at
the start of a run, loaded from:
1. JSON configuration files (project-level and user-level)
2. Environment variable overrides
3. Built-in defaults

Configuration precedence (highest wins):
1. Environment variables (CONCISE_EXEC_*)
2. Project config (<workspace>/.concise_exec/config.json)
3. User config (~/.concise_exec/config.json)
4. Built-in defaults

Command-line flags are applied on top by the CLI.

Usage:
    from concise_exec.config import load_exec_config, create_config_summary_entries

    config = load_exec_config(workspace_path=Path.cwd())
    for key, value in create_config_summary_entries(config):
        print(f"{key}: {value}")

Environment Variables:
    CONCISE_EXEC_MODEL: Model name (default: gpt-5)
    CONCISE_EXEC_PROVIDER: Model provider id (default: openai)
    CONCISE_EXEC_APPROVAL_POLICY: untrusted|on-failure|on-request|never (default: never)
    CONCISE_EXEC_SANDBOX_MODE: read-only|workspace-write|danger-full-access
    CONCISE_EXEC_NETWORK_ACCESS: Allow network in workspace-write sandbox (default: false)
    CONCISE_EXEC_REASONING_EFFORT: Reasoning effort shown in the summary
    CONCISE_EXEC_REASONING_SUMMARY: Reasoning summary mode shown in the summary
    CONCISE_EXEC_TRANSCRIPT_LOG: Path of the plain-text transcript
    CONCISE_EXEC_OUTPUT_LAST_MESSAGE: Path receiving the final agent message
    CONCISE_EXEC_COLOR: always|never|auto (default: auto)
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, get_type_hints

from concise_exec.terminal import COLOR_MODES

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".concise_exec"
CONFIG_FILE_NAME = "config.json"

APPROVAL_POLICIES = ("untrusted", "on-failure", "on-request", "never")
SANDBOX_MODES = ("read-only", "workspace-write", "danger-full-access")


def _parse_bool(value: str) -> bool:
    """Parse boolean from string."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_value(value: str, target_type: Type) -> Any:
    """Parse environment variable value to target type."""
    # Extract inner type from Optional
    args = getattr(target_type, '__args__', ())
    if args and type(None) in args:
        inner_types = [a for a in args if a is not type(None)]
        if inner_types:
            target_type = inner_types[0]

    if target_type == bool:
        return _parse_bool(value)
    elif target_type == int:
        return int(value)
    elif target_type == float:
        return float(value)
    return value


@dataclass
class SandboxPolicy:
    """Sandbox the engine runs commands under.

    Attributes:
        mode: One of SANDBOX_MODES.
        writable_roots: Extra writable directories (workspace-write only).
        network_access: Whether commands may reach the network.
        exclude_tmpdir_env_var: Do not make $TMPDIR writable.
        exclude_slash_tmp: Do not make /tmp writable.
    """
    mode: str = "read-only"
    writable_roots: List[str] = field(default_factory=list)
    network_access: bool = False
    exclude_tmpdir_env_var: bool = False
    exclude_slash_tmp: bool = False

    def __post_init__(self):
        if self.mode not in SANDBOX_MODES:
            raise ValueError(
                f"sandbox mode must be one of {', '.join(SANDBOX_MODES)}, got {self.mode!r}"
            )

    def summary(self) -> str:
        """One-line description used in the config summary."""
        if self.mode != "workspace-write":
            return self.mode

        writable = ["workdir"]
        if not self.exclude_slash_tmp:
            writable.append("/tmp")
        if not self.exclude_tmpdir_env_var:
            writable.append("$TMPDIR")
        writable.extend(str(root) for root in self.writable_roots)

        summary = f"workspace-write [{', '.join(writable)}]"
        if self.network_access:
            summary += " (network access enabled)"
        return summary


@dataclass
class ExecConfig:
    """Resolved configuration of a non-interactive run.

    Attributes:
        model: Model the engine was asked to use.
        model_provider: Provider id of the model.
        approval_policy: When the engine asks before running commands.
        sandbox: Sandbox policy for commands.
        cwd: Working directory of the session.
        reasoning_effort: Reasoning effort, if the model supports it.
        reasoning_summary: Reasoning summary mode, if the model supports it.
        transcript_log: Where to mirror the console transcript, if anywhere.
        output_last_message: Where to write the final agent message, if anywhere.
        color: Console color mode, one of COLOR_MODES.
    """
    model: str = "gpt-5"
    model_provider: str = "openai"
    approval_policy: str = "never"
    sandbox: SandboxPolicy = field(default_factory=SandboxPolicy)
    cwd: Path = field(default_factory=Path.cwd)
    reasoning_effort: Optional[str] = None
    reasoning_summary: Optional[str] = None
    transcript_log: Optional[str] = None
    output_last_message: Optional[str] = None
    color: str = "auto"

    def __post_init__(self):
        """Validate configuration values."""
        if self.approval_policy not in APPROVAL_POLICIES:
            raise ValueError(
                f"approval_policy must be one of {', '.join(APPROVAL_POLICIES)}"
            )
        if self.color not in COLOR_MODES:
            raise ValueError(f"color must be one of {', '.join(COLOR_MODES)}")
        self.cwd = Path(self.cwd)


def create_config_summary_entries(config: ExecConfig) -> List[Tuple[str, str]]:
    """Ordered (key, value) pairs describing the session configuration."""
    entries = [
        ("workdir", str(config.cwd)),
        ("model", config.model),
        ("provider", config.model_provider),
        ("approval", config.approval_policy),
        ("sandbox", config.sandbox.summary()),
    ]
    if config.reasoning_effort is not None or config.reasoning_summary is not None:
        entries.append(("reasoning effort", config.reasoning_effort or "none"))
        entries.append(("reasoning summaries", config.reasoning_summary or "auto"))
    return entries


# Environment variable mapping
# Maps "section.field" paths to environment variable names
ENV_VAR_MAPPING: Dict[str, str] = {
    "model": "CONCISE_EXEC_MODEL",
    "model_provider": "CONCISE_EXEC_PROVIDER",
    "approval_policy": "CONCISE_EXEC_APPROVAL_POLICY",
    "sandbox.mode": "CONCISE_EXEC_SANDBOX_MODE",
    "sandbox.network_access": "CONCISE_EXEC_NETWORK_ACCESS",
    "reasoning_effort": "CONCISE_EXEC_REASONING_EFFORT",
    "reasoning_summary": "CONCISE_EXEC_REASONING_SUMMARY",
    "transcript_log": "CONCISE_EXEC_TRANSCRIPT_LOG",
    "output_last_message": "CONCISE_EXEC_OUTPUT_LAST_MESSAGE",
    "color": "CONCISE_EXEC_COLOR",
}


def _find_config_files(workspace_path: Optional[Path] = None) -> List[Path]:
    """Find configuration files in order of precedence (lowest first).

    Args:
        workspace_path: Path to project workspace. If None, only user config
            is searched.

    Returns:
        List of existing config file paths, ordered from lowest to highest
        precedence.
    """
    files = []

    user_config = Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if user_config.exists():
        files.append(user_config)

    if workspace_path:
        project_config = workspace_path / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if project_config.exists():
            files.append(project_config)

    return files


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base, returning new dict.

    Nested dictionaries are merged; lists and other types are replaced.
    """
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_field_type(dataclass_type: Type, field_name: str) -> Type:
    """Get the type of a field in a dataclass, or str as fallback."""
    try:
        hints = get_type_hints(dataclass_type)
        return hints.get(field_name, str)
    except Exception:
        return str


def _apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to config dict.

    Returns:
        New dictionary with environment overrides applied.
    """
    result = _deep_merge({}, config_dict)

    for path, env_var in ENV_VAR_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        parts = path.split(".")
        current = result
        for part in parts[:-1]:
            if isinstance(current.get(part), str):
                # "sandbox": "workspace-write" shorthand
                current[part] = {"mode": current[part]}
            elif not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        owner = SandboxPolicy if parts[0] == "sandbox" else ExecConfig
        target_type = _get_field_type(owner, parts[-1])

        try:
            current[parts[-1]] = _parse_env_value(env_value, target_type)
            logger.debug(f"Applied env override: {env_var}={env_value}")
        except (ValueError, TypeError) as e:
            logger.warning(f"Invalid value for {env_var}: {env_value} ({e})")

    return result


def _dict_to_sandbox_policy(data: Any) -> SandboxPolicy:
    """Convert the ``sandbox`` section to a SandboxPolicy.

    A bare string is accepted as shorthand for ``{"mode": <string>}``.
    """
    if isinstance(data, str):
        data = {"mode": data}
    if not isinstance(data, dict):
        logger.warning("Invalid 'sandbox' config (expected object or string), using defaults")
        return SandboxPolicy()

    valid_fields = {f.name for f in fields(SandboxPolicy)}
    unknown = set(data.keys()) - valid_fields
    if unknown:
        logger.warning(f"Unknown sandbox config keys (ignored): {unknown}")

    try:
        return SandboxPolicy(**{k: v for k, v in data.items() if k in valid_fields})
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid sandbox config values, using defaults: {e}")
        return SandboxPolicy()


def _dict_to_config(data: Dict[str, Any], workspace_path: Optional[Path] = None) -> ExecConfig:
    """Convert a merged config dict to ExecConfig.

    Unknown keys are logged and ignored; invalid values fall back to defaults.
    """
    valid_fields = {f.name for f in fields(ExecConfig)}
    unknown = set(data.keys()) - valid_fields
    if unknown:
        logger.warning(f"Unknown config keys (ignored): {unknown}")

    values = {k: v for k, v in data.items() if k in valid_fields and k != "sandbox"}
    values["sandbox"] = _dict_to_sandbox_policy(data.get("sandbox", {}))
    if "cwd" not in values and workspace_path is not None:
        values["cwd"] = workspace_path

    try:
        return ExecConfig(**values)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid config values, using defaults: {e}")
        if workspace_path is not None:
            return ExecConfig(sandbox=values["sandbox"], cwd=workspace_path)
        return ExecConfig(sandbox=values["sandbox"])


def load_exec_config(workspace_path: Optional[Path] = None) -> ExecConfig:
    """Load session configuration with layered precedence.

    Args:
        workspace_path: Project workspace, used for the project-level config
            file and as the default working directory.

    Returns:
        Merged ExecConfig instance.
    """
    merged: Dict[str, Any] = {}

    for config_file in _find_config_files(workspace_path):
        try:
            with open(config_file, encoding="utf-8") as f:
                file_config = json.load(f)

            if not isinstance(file_config, dict):
                logger.warning(f"Invalid config format in {config_file} (expected object)")
                continue

            merged = _deep_merge(merged, file_config)
            logger.debug(f"Loaded config from {config_file}")

        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in {config_file}: {e}")
        except PermissionError:
            logger.warning(f"Permission denied reading {config_file}")
        except OSError as e:
            logger.warning(f"Failed to load {config_file}: {e}")

    merged = _apply_env_overrides(merged)

    return _dict_to_config(merged, workspace_path)
