#!/usr/bin/env python3
"""
Request Dispatcher - validates tool calls and routes them to the runner.

Each call is attempted exactly once. Domain errors are translated into
McpError at this boundary; anything unexpected becomes an InternalError.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from mcp.shared.exceptions import McpError

from .config import (
    config,
    logger,
    validate_flag,
    validate_interpreter,
    validate_required,
    validate_timeout,
)
from .errors import (
    InternalServerError,
    InvalidRequestError,
    MethodNotFoundError,
    SSHRemoteError,
)
from .hosts import HostRegistry
from .runner import DOWNLOAD, UPLOAD, ProcessRunner


# =============================================================================
# Tool Table
# =============================================================================

EXECUTE_COMMAND = "ssh_execute_command"
EXECUTE_SCRIPT = "ssh_execute_script"
LIST_HOSTS = "ssh_list_hosts"
GET_HOST_INFO = "ssh_get_host_info"
UPLOAD_FILE = "ssh_upload_file"
DOWNLOAD_FILE = "ssh_download_file"


@dataclass(frozen=True)
class ToolSpec:
    """Required fields and declared defaults for one tool."""
    name: str
    required: Tuple[str, ...] = ()
    defaults: Tuple[Tuple[str, Callable[[], Any]], ...] = ()

    def apply_defaults(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        resolved = dict(arguments)
        for key, default in self.defaults:
            if resolved.get(key) is None:
                resolved[key] = default()
        return resolved


TOOLS: Dict[str, ToolSpec] = {
    EXECUTE_COMMAND: ToolSpec(
        EXECUTE_COMMAND,
        required=("host", "command"),
        defaults=(("timeout", lambda: config.command_timeout), ("use_base64", lambda: False)),
    ),
    EXECUTE_SCRIPT: ToolSpec(
        EXECUTE_SCRIPT,
        required=("host", "script"),
        defaults=(("timeout", lambda: config.script_timeout), ("interpreter", lambda: config.interpreter)),
    ),
    LIST_HOSTS: ToolSpec(LIST_HOSTS),
    GET_HOST_INFO: ToolSpec(GET_HOST_INFO, required=("host",)),
    UPLOAD_FILE: ToolSpec(UPLOAD_FILE, required=("host", "local_path", "remote_path")),
    DOWNLOAD_FILE: ToolSpec(DOWNLOAD_FILE, required=("host", "remote_path", "local_path")),
}


# =============================================================================
# Dispatcher
# =============================================================================

class RequestDispatcher:
    """Routes validated tool calls against a loaded HostRegistry."""

    def __init__(self, registry: HostRegistry, runner: Optional[ProcessRunner] = None):
        self.registry = registry
        self.runner = runner or ProcessRunner()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
            EXECUTE_COMMAND: self.execute_command,
            EXECUTE_SCRIPT: self.execute_script,
            LIST_HOSTS: self.list_hosts,
            GET_HOST_INFO: self.get_host_info,
            UPLOAD_FILE: self.upload_file,
            DOWNLOAD_FILE: self.download_file,
        }

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Run one tool call and return its response payload.

        Raises:
            McpError: for every failure, carrying the category in its data.
        """
        try:
            return await self._dispatch(name, arguments)
        except SSHRemoteError as e:
            raise e.to_mcp_error() from e
        except McpError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected failure in {name}")
            raise InternalServerError(
                f"Tool execution failed: {e}", details={"tool": name}
            ).to_mcp_error() from e

    async def _dispatch(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        spec = TOOLS.get(name)
        if spec is None:
            raise MethodNotFoundError(name)

        if arguments is None:
            if spec.required:
                raise InvalidRequestError("Missing arguments", details={"tool": name})
            arguments = {}

        valid, error = validate_required(arguments, spec.required)
        if not valid:
            raise InvalidRequestError(error, details={"tool": name})

        resolved = spec.apply_defaults(arguments)
        if "host" in spec.required:
            # Fails before anything is spawned
            self.registry.lookup(resolved["host"])
        if "timeout" in resolved:
            valid, error = validate_timeout(resolved["timeout"])
            if not valid:
                raise InvalidRequestError(error, details={"tool": name})
        if "use_base64" in resolved:
            valid, error = validate_flag("use_base64", resolved["use_base64"])
            if not valid:
                raise InvalidRequestError(error, details={"tool": name})
        if "interpreter" in resolved:
            valid, error = validate_interpreter(resolved["interpreter"])
            if not valid:
                raise InvalidRequestError(error, details={"tool": name})

        logger.debug(f"Dispatching {name} for {resolved.get('host', '-')}")
        return await self._handlers[name](resolved)

    # -------------------------------------------------------------------------
    # Handlers (arguments already validated and defaulted)
    # -------------------------------------------------------------------------

    async def execute_command(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.runner.run_command(
            host=args["host"],
            command=args["command"],
            timeout=args["timeout"],
            encoded=args["use_base64"],
        )
        return result.to_dict()

    async def execute_script(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.runner.run_script(
            host=args["host"],
            script=args["script"],
            timeout=args["timeout"],
            interpreter=args["interpreter"],
        )
        return result.to_dict()

    async def list_hosts(self, args: Dict[str, Any]) -> Dict[str, Any]:
        hosts = [summary.to_dict() for summary in self.registry.list()]
        return {"hosts": hosts, "total": len(hosts)}

    async def get_host_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return self.registry.describe(args["host"])

    async def upload_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.runner.transfer(
            host=args["host"],
            local_path=args["local_path"],
            remote_path=args["remote_path"],
            direction=UPLOAD,
        )
        return result.to_dict()

    async def download_file(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.runner.transfer(
            host=args["host"],
            local_path=args["local_path"],
            remote_path=args["remote_path"],
            direction=DOWNLOAD,
        )
        return result.to_dict()


__all__ = [
    "EXECUTE_COMMAND",
    "EXECUTE_SCRIPT",
    "LIST_HOSTS",
    "GET_HOST_INFO",
    "UPLOAD_FILE",
    "DOWNLOAD_FILE",
    "TOOLS",
    "ToolSpec",
    "RequestDispatcher",
]
