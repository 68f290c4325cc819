#!/usr/bin/env python3
"""
Configuration module for SSH Remote Commands MCP Server.

Centralizes environment variables, logging and request validation helpers.

Host topology is NOT configured here: it comes from the user's SSH config
(see ssh_config.py), which is read once at startup.
"""
import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Any


# =============================================================================
# Logging Setup
# =============================================================================

LOG_LEVEL = os.getenv("SSH_REMOTE_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# basicConfig writes to stderr, stdout belongs to the stdio transport
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger("ssh-remote-mcp")


# =============================================================================
# Environment Configuration
# =============================================================================

SERVER_NAME = "ssh-remote-commands"
SERVER_VERSION = "0.1.0"

DEFAULT_SSH_PORT = 22


def _default_config_path() -> str:
    return str(Path.home() / ".ssh" / "config")


@dataclass(frozen=True)
class ServerConfig:
    """Centralized server configuration from environment variables."""

    # Host registry source
    ssh_config_path: str = field(
        default_factory=lambda: os.getenv("SSH_REMOTE_CONFIG_PATH", _default_config_path())
    )

    # Client binaries
    ssh_binary: str = field(default_factory=lambda: os.getenv("SSH_REMOTE_SSH_BINARY", "ssh"))
    scp_binary: str = field(default_factory=lambda: os.getenv("SSH_REMOTE_SCP_BINARY", "scp"))
    ssh_options: Tuple[str, ...] = field(
        default_factory=lambda: tuple(shlex.split(os.getenv("SSH_REMOTE_SSH_OPTIONS", "")))
    )

    # Timeouts
    command_timeout: float = field(default_factory=lambda: float(os.getenv("SSH_REMOTE_COMMAND_TIMEOUT", "30")))
    script_timeout: float = field(default_factory=lambda: float(os.getenv("SSH_REMOTE_SCRIPT_TIMEOUT", "60")))
    kill_grace: float = field(default_factory=lambda: float(os.getenv("SSH_REMOTE_KILL_GRACE", "5")))

    # Remote side
    interpreter: str = field(default_factory=lambda: os.getenv("SSH_REMOTE_INTERPRETER", "bash"))


# Global config instance
config = ServerConfig()


# =============================================================================
# Validation Functions
# =============================================================================

def validate_required(arguments: dict, fields: Tuple[str, ...]) -> Tuple[bool, Optional[str]]:
    """Check that every required field is present and non-empty."""
    missing = [
        name for name in fields
        if arguments.get(name) is None or (isinstance(arguments.get(name), str) and not arguments[name].strip())
    ]
    if missing:
        return False, f"Missing required field(s): {', '.join(missing)}"
    return True, None


def validate_timeout(value: Any) -> Tuple[bool, Optional[str]]:
    """Timeouts must be positive numbers of seconds."""
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, f"Timeout must be a number of seconds, got {value!r}"
    if value <= 0:
        return False, f"Timeout must be greater than 0, got {value}"
    return True, None


def validate_flag(name: str, value: Any) -> Tuple[bool, Optional[str]]:
    """Flags must be real booleans, not truthy strings."""
    if not isinstance(value, bool):
        return False, f"{name} must be true or false, got {value!r}"
    return True, None


def validate_interpreter(value: Any) -> Tuple[bool, Optional[str]]:
    """Interpreter must be non-empty and free of shell metacharacters."""
    if not isinstance(value, str) or not value.strip():
        return False, "Interpreter cannot be empty"
    if any(c in value for c in "\n\r;|&`$'\""):
        return False, f"Interpreter contains shell metacharacters: {value!r}"
    return True, None


# =============================================================================
# Export All
# =============================================================================

__all__ = [
    # Configuration
    "config",
    "ServerConfig",
    "logger",
    "SERVER_NAME",
    "SERVER_VERSION",
    "DEFAULT_SSH_PORT",
    # Validation
    "validate_required",
    "validate_timeout",
    "validate_flag",
    "validate_interpreter",
]
