"""
SSH Remote Commands MCP Server

Remote command, script and file-transfer tools driven by the user's SSH config.
"""

from .config import (
    config,
    ServerConfig,
    SERVER_NAME,
    SERVER_VERSION,
)
from .errors import (
    SSHRemoteError,
    InvalidRequestError,
    HostNotFoundError,
    MethodNotFoundError,
    ExecutionFailedError,
    CommandTimeoutError,
    InternalServerError,
)
from .hosts import HostRecord, HostSummary, HostRegistry
from .ssh_config import (
    ParseContext,
    SSHConfigParser,
    parse_ssh_config,
    load_host_registry,
)
from .runner import (
    ProcessRunner,
    CommandResult,
    ScriptResult,
    TransferResult,
    encode_payload,
)
from .dispatcher import RequestDispatcher
from .server import (
    ssh_execute_command,
    ssh_execute_script,
    ssh_list_hosts,
    ssh_get_host_info,
    ssh_upload_file,
    ssh_download_file,
    main,
)

__version__ = SERVER_VERSION
__all__ = [
    # Config
    "config",
    "ServerConfig",
    "SERVER_NAME",
    "SERVER_VERSION",
    # Errors
    "SSHRemoteError",
    "InvalidRequestError",
    "HostNotFoundError",
    "MethodNotFoundError",
    "ExecutionFailedError",
    "CommandTimeoutError",
    "InternalServerError",
    # Hosts
    "HostRecord",
    "HostSummary",
    "HostRegistry",
    "ParseContext",
    "SSHConfigParser",
    "parse_ssh_config",
    "load_host_registry",
    # Runner
    "ProcessRunner",
    "CommandResult",
    "ScriptResult",
    "TransferResult",
    "encode_payload",
    # Server
    "RequestDispatcher",
    "ssh_execute_command",
    "ssh_execute_script",
    "ssh_list_hosts",
    "ssh_get_host_info",
    "ssh_upload_file",
    "ssh_download_file",
    "main",
]
