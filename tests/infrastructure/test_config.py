"""Tests for configuration module."""

import json
import pytest
from unittest.mock import patch

from aias.infrastructure.config import (
    GatewayConfig,
    PathValidationError,
    TerminalConfig,
    WebConfig,
    WorkspaceConfig,
    WorkspaceGuard,
    default_shell,
    load_config,
)


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/aias.json")
        assert config.log_level == "WARNING"
        assert config.web.host == "127.0.0.1"
        assert config.web.port == 23777
        assert config.terminal.max_terminals == 10
        assert config.terminal.max_buffer_lines == 1000
        assert config.terminal.idle_timeout == 3.0
        assert config.terminal.snapshot_lines == 5
        assert config.command.timeout == 30
        assert config.workspace.path_validation is True
        assert config.telemetry.endpoint == ""

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/aias.json")
        assert isinstance(config, GatewayConfig)
        assert isinstance(config.terminal, TerminalConfig)
        assert isinstance(config.web, WebConfig)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "aias.json"
        config_file.write_text(json.dumps({
            "log_level": "DEBUG",
            "terminal": {"max_terminals": 4, "idle_timeout": 1.5},
            "web": {"port": 9090},
            "workspace": {"root": str(tmp_path)},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.terminal.max_terminals == 4
        assert config.terminal.idle_timeout == 1.5
        assert config.terminal.max_lines == 100  # default preserved
        assert config.web.port == 9090
        assert config.workspace.root == str(tmp_path)

    def test_invalid_json_returns_defaults(self, tmp_path):
        config_file = tmp_path / "aias.json"
        config_file.write_text("not valid json{{{")
        assert load_config(path=str(config_file)).web.port == 23777

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "aias.json"
        config_file.write_text(json.dumps({"web": {"port": 3000, "unknown_key": 1}}))
        assert load_config(path=str(config_file)).web.port == 3000


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "aias.json"
        config_file.write_text(json.dumps({"web": {"port": 3000}}))
        with patch.dict("os.environ", {"AIAS_WEB_PORT": "4000"}):
            config = load_config(path=str(config_file))
        assert config.web.port == 4000

    def test_multi_word_keys_and_types(self):
        env = {
            "AIAS_TERMINAL_MAX_TERMINALS": "2",
            "AIAS_TERMINAL_IDLE_TIMEOUT": "0.5",
            "AIAS_WORKSPACE_PATH_VALIDATION": "false",
            "AIAS_TELEMETRY_INSECURE": "yes",
        }
        with patch.dict("os.environ", env):
            config = load_config(path="/nonexistent/aias.json")
        assert config.terminal.max_terminals == 2
        assert config.terminal.idle_timeout == 0.5
        assert config.workspace.path_validation is False
        assert config.telemetry.insecure is True

    def test_log_level_from_env(self):
        with patch.dict("os.environ", {"AIAS_LOG_LEVEL": "INFO"}):
            config = load_config(path="/nonexistent/aias.json")
        assert config.log_level == "INFO"


class TestWorkspaceGuard:
    def test_relative_path_resolved_under_root(self, tmp_path):
        guard = WorkspaceGuard(WorkspaceConfig(root=str(tmp_path)))
        assert guard.validate_path("src/app.py") == (tmp_path / "src/app.py").resolve()

    def test_root_itself_allowed(self, tmp_path):
        guard = WorkspaceGuard(WorkspaceConfig(root=str(tmp_path)))
        assert guard.validate_path(".", must_exist=True) == tmp_path.resolve()

    def test_escape_rejected(self, tmp_path):
        guard = WorkspaceGuard(WorkspaceConfig(root=str(tmp_path / "ws")))
        with pytest.raises(PathValidationError, match="outside the workspace"):
            guard.validate_path("../secrets")

    def test_missing_path_rejected(self, tmp_path):
        guard = WorkspaceGuard(WorkspaceConfig(root=str(tmp_path)))
        with pytest.raises(ValueError, match="does not exist"):
            guard.validate_path("missing", must_exist=True)

    def test_validation_disabled(self, tmp_path):
        guard = WorkspaceGuard(
            WorkspaceConfig(root=str(tmp_path / "ws"), path_validation=False)
        )
        assert guard.validate_path("../elsewhere", must_exist=True) == (
            tmp_path / "elsewhere"
        ).resolve()

    def test_empty_root_means_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert WorkspaceGuard(WorkspaceConfig()).root == tmp_path.resolve()


class TestDefaultShell:
    def test_windows(self):
        assert default_shell("Windows") == "powershell"

    @pytest.mark.parametrize("system", ["Linux", "Darwin"])
    def test_posix(self, system):
        assert default_shell(system) == "bash"
