"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from JSON files
- Provides typed access to all gateway settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config
- Owns workspace path validation and the default-shell platform probe

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import json
import logging
import os
import platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceConfig:
    """Workspace root that tool paths are resolved against."""
    root: str = ""
    path_validation: bool = True


@dataclass(frozen=True)
class TerminalConfig:
    """Interactive terminal session settings."""
    max_terminals: int = 10
    max_buffer_lines: int = 1000
    idle_timeout: float = 3.0
    poll_interval: float = 0.1
    snapshot_lines: int = 5
    wait_timeout: int = 30
    max_lines: int = 100


@dataclass(frozen=True)
class CommandConfig:
    """One-shot command execution settings."""
    timeout: int = 30


@dataclass(frozen=True)
class WebConfig:
    """HTTP API configuration."""
    host: str = "127.0.0.1"
    port: int = 23777


@dataclass(frozen=True)
class MCPConfig:
    """MCP server configuration."""
    server_name: str = "aias-executor"


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class GatewayConfig:
    """Root configuration for the gateway."""
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    command: CommandConfig = field(default_factory=CommandConfig)
    web: WebConfig = field(default_factory=WebConfig)
    mcp: MCPConfig = field(default_factory=MCPConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"


class PathValidationError(ValueError):
    """Raised when a path escapes the workspace or does not exist."""


class WorkspaceGuard:
    """Resolves tool paths against the workspace root."""

    def __init__(self, config: WorkspaceConfig) -> None:
        self.config = config
        self.root = Path(config.root or os.getcwd()).resolve()

    def validate_path(self, path: str, must_exist: bool = False) -> Path:
        resolved = (self.root / path).resolve()
        if not self.config.path_validation:
            return resolved

        if resolved != self.root and self.root not in resolved.parents:
            raise PathValidationError(f"Path {path} is outside the workspace")
        if must_exist and not resolved.exists():
            raise PathValidationError(f"Path does not exist: {path}")
        return resolved


def default_shell(system: Optional[str] = None) -> str:
    """Default interactive shell for the host platform."""
    system = system or platform.system()
    if system == "Windows":
        return "powershell"
    return "bash"


def _env_override(data: dict, prefix: str = "AIAS") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern AIAS_SECTION_KEY.
    For example: AIAS_WEB_PORT=9090, AIAS_TERMINAL_MAX_TERMINALS=4
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        parts = key[len(prefix) + 1:].lower().split("_", 1)
        if len(parts) == 2 and parts[0] in _SECTIONS:
            section, field_name = parts
            if section not in data:
                data[section] = {}
            data[section][field_name] = value
        else:
            data[key[len(prefix) + 1:].lower()] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    import dataclasses
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # Convert strings from the environment to the declared field type
    for f in dataclasses.fields(cls):
        if f.name in filtered and isinstance(filtered[f.name], str):
            if f.type == "int":
                filtered[f.name] = int(filtered[f.name])
            elif f.type == "float":
                filtered[f.name] = float(filtered[f.name])
            elif f.type == "bool":
                filtered[f.name] = filtered[f.name].lower() in ("true", "1", "yes")

    return cls(**filtered)


_SECTIONS = {
    "workspace": WorkspaceConfig,
    "terminal": TerminalConfig,
    "command": CommandConfig,
    "web": WebConfig,
    "mcp": MCPConfig,
    "telemetry": TelemetryConfig,
}


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "AIAS",
) -> GatewayConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (AIAS_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to aias.json in CWD.
        env_prefix: Environment variable prefix. Defaults to AIAS.
    """
    config_path = Path(path) if path else Path("aias.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    sections = {
        name: _build_sub_config(cls, data.get(name, {}))
        for name, cls in _SECTIONS.items()
    }
    return GatewayConfig(
        **sections,
        log_level=data.get("log_level", "WARNING"),
    )
