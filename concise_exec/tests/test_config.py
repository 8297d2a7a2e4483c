"""Tests for layered configuration loading."""

import json
from pathlib import Path

import pytest

from concise_exec.config import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    ExecConfig,
    SandboxPolicy,
    create_config_summary_entries,
    load_exec_config,
)


def write_config(root: Path, data) -> Path:
    path = root / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "workspace"
    path.mkdir()
    return path


class TestSandboxPolicy:

    def test_read_only(self):
        assert SandboxPolicy().summary() == "read-only"

    def test_full_access(self):
        assert SandboxPolicy(mode="danger-full-access").summary() == "danger-full-access"

    def test_workspace_write_defaults(self):
        assert SandboxPolicy(mode="workspace-write").summary() == (
            "workspace-write [workdir, /tmp, $TMPDIR]"
        )

    def test_workspace_write_with_roots_and_network(self):
        policy = SandboxPolicy(
            mode="workspace-write",
            writable_roots=["/data"],
            network_access=True,
            exclude_slash_tmp=True,
        )
        assert policy.summary() == (
            "workspace-write [workdir, $TMPDIR, /data] (network access enabled)"
        )

    def test_invalid_mode(self):
        with pytest.raises(ValueError, match="sandbox mode"):
            SandboxPolicy(mode="yolo")


class TestExecConfig:

    def test_invalid_approval_policy(self):
        with pytest.raises(ValueError, match="approval_policy"):
            ExecConfig(approval_policy="sometimes")

    def test_invalid_color(self):
        with pytest.raises(ValueError, match="color"):
            ExecConfig(color="rainbow")

    def test_cwd_coerced_to_path(self):
        assert ExecConfig(cwd="/srv").cwd == Path("/srv")


class TestSummaryEntries:

    def test_order_without_reasoning(self, tmp_path):
        config = ExecConfig(cwd=tmp_path)
        assert [key for key, _ in create_config_summary_entries(config)] == [
            "workdir", "model", "provider", "approval", "sandbox",
        ]

    def test_reasoning_entries(self, tmp_path):
        config = ExecConfig(cwd=tmp_path, reasoning_effort="high")
        entries = dict(create_config_summary_entries(config))
        assert entries["reasoning effort"] == "high"
        assert entries["reasoning summaries"] == "auto"


class TestLoadExecConfig:

    def test_defaults(self, workspace):
        config = load_exec_config(workspace)
        assert config.model == "gpt-5"
        assert config.sandbox.mode == "read-only"
        assert config.cwd == workspace
        assert config.color == "auto"

    def test_user_config(self, workspace, isolated_env):
        write_config(isolated_env, {"model": "user-model", "color": "never"})
        config = load_exec_config(workspace)
        assert config.model == "user-model"
        assert config.color == "never"

    def test_project_overrides_user(self, workspace, isolated_env):
        write_config(isolated_env, {"model": "user-model", "sandbox": {"network_access": True}})
        write_config(workspace, {"model": "project-model", "sandbox": {"mode": "workspace-write"}})
        config = load_exec_config(workspace)
        assert config.model == "project-model"
        assert config.sandbox.mode == "workspace-write"
        assert config.sandbox.network_access is True

    def test_env_overrides_files(self, workspace, monkeypatch):
        write_config(workspace, {"model": "project-model", "sandbox": "workspace-write"})
        monkeypatch.setenv("CONCISE_EXEC_MODEL", "env-model")
        monkeypatch.setenv("CONCISE_EXEC_NETWORK_ACCESS", "yes")
        config = load_exec_config(workspace)
        assert config.model == "env-model"
        assert config.sandbox.mode == "workspace-write"
        assert config.sandbox.network_access is True

    def test_env_sandbox_mode(self, workspace, monkeypatch):
        monkeypatch.setenv("CONCISE_EXEC_SANDBOX_MODE", "danger-full-access")
        assert load_exec_config(workspace).sandbox.mode == "danger-full-access"

    def test_invalid_json_is_skipped(self, workspace, caplog):
        path = workspace / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        path.parent.mkdir()
        path.write_text("{broken", encoding="utf-8")
        config = load_exec_config(workspace)
        assert config.model == "gpt-5"
        assert "Invalid JSON" in caplog.text

    def test_non_object_is_skipped(self, workspace, caplog):
        write_config(workspace, ["model"])
        assert load_exec_config(workspace).model == "gpt-5"
        assert "expected object" in caplog.text

    def test_unknown_keys_are_ignored(self, workspace, caplog):
        write_config(workspace, {"model": "m", "theme": "dark"})
        config = load_exec_config(workspace)
        assert config.model == "m"
        assert "theme" in caplog.text

    def test_invalid_values_fall_back_to_defaults(self, workspace, caplog):
        write_config(workspace, {"approval_policy": "sometimes", "sandbox": {"mode": "yolo"}})
        config = load_exec_config(workspace)
        assert config.approval_policy == "never"
        assert config.sandbox.mode == "read-only"
        assert config.cwd == workspace

    def test_explicit_cwd(self, workspace, tmp_path):
        write_config(workspace, {"cwd": str(tmp_path)})
        assert load_exec_config(workspace).cwd == tmp_path
