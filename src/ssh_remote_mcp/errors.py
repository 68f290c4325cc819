"""
Error taxonomy for the SSH Remote Commands MCP Server.

Hierarchy:
    SSHRemoteError
    ├── InvalidRequestError     - missing field, bad value
    │   └── HostNotFoundError   - alias absent from the host registry
    ├── MethodNotFoundError     - unknown tool name
    ├── ExecutionFailedError    - client failed to spawn, transfer exited nonzero
    ├── CommandTimeoutError     - command/script exceeded its deadline
    └── InternalServerError     - anything else, wrapped with context

Config load problems are not exceptions: they are logged and skipped.
"""
from typing import Any, Dict, Optional

from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ErrorData,
)


class SSHRemoteError(Exception):
    """Base class for errors surfaced to the calling agent."""

    code: int = INTERNAL_ERROR
    category: str = "internal_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_mcp_error(self) -> McpError:
        """Translate into the protocol-level error shape."""
        return McpError(
            ErrorData(
                code=self.code,
                message=self.message,
                data={"category": self.category, **self.details},
            )
        )


class InvalidRequestError(SSHRemoteError):
    code = INVALID_REQUEST
    category = "invalid_request"


class HostNotFoundError(InvalidRequestError):
    """Raised when an alias is not present in the host registry."""

    def __init__(self, alias: str) -> None:
        super().__init__(f"Host '{alias}' not found in SSH config", details={"host": alias})
        self.alias = alias


class MethodNotFoundError(SSHRemoteError):
    code = METHOD_NOT_FOUND
    category = "method_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}", details={"tool": name})
        self.name = name


class ExecutionFailedError(SSHRemoteError):
    category = "execution_failed"


class CommandTimeoutError(SSHRemoteError):
    """The child was terminated because its deadline expired."""

    category = "timeout"

    def __init__(self, message: str, *, timeout: float, details: Optional[Dict[str, Any]] = None) -> None:
        merged = {"timeout": timeout, "terminated": True, **(details or {})}
        super().__init__(message, details=merged)
        self.timeout = timeout


class InternalServerError(SSHRemoteError):
    category = "internal_error"


__all__ = [
    "SSHRemoteError",
    "InvalidRequestError",
    "HostNotFoundError",
    "MethodNotFoundError",
    "ExecutionFailedError",
    "CommandTimeoutError",
    "InternalServerError",
]
