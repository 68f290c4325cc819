#!/usr/bin/env python3
"""
SSH Remote Commands MCP Server

Runs commands, scripts and file transfers on hosts defined in the
user's SSH config (~/.ssh/config, Include directives honoured).
Connection details, keys and jump hosts are left to the ssh client.

Tools:
- ssh_execute_command: Run a single command on a host
- ssh_execute_script: Run a multi-line script (base64 encoded)
- ssh_list_hosts: List hosts from the SSH config
- ssh_get_host_info: Show everything known about one host
- ssh_upload_file: Copy a local file to a host via scp
- ssh_download_file: Copy a remote file to this machine via scp
"""

import json
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError

from .config import config, logger, SERVER_NAME, SERVER_VERSION
from .dispatcher import (
    DOWNLOAD_FILE,
    EXECUTE_COMMAND,
    EXECUTE_SCRIPT,
    GET_HOST_INFO,
    LIST_HOSTS,
    UPLOAD_FILE,
    RequestDispatcher,
)
from .ssh_config import load_host_registry


# =============================================================================
# MCP Server Setup
# =============================================================================

mcp = FastMCP(SERVER_NAME)


# Global dispatcher instance, built once from the SSH config
_dispatcher: Optional[RequestDispatcher] = None


def get_dispatcher() -> RequestDispatcher:
    """Get or create the dispatcher (loads the host registry on first use)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = RequestDispatcher(load_host_registry(config.ssh_config_path))
    return _dispatcher


async def _call(name: str, arguments: Dict[str, Any]) -> str:
    try:
        result = await get_dispatcher().dispatch(name, arguments)
    except McpError as e:
        # FastMCP reports tool failures as text, keep code and category in it
        raise ToolError(json.dumps({
            "code": e.error.code,
            "message": e.error.message,
            "data": e.error.data,
        }, indent=2)) from e
    return json.dumps(result, indent=2)


# =============================================================================
# MCP Tools
# =============================================================================

@mcp.tool()
async def ssh_execute_command(
    host: str,
    command: str,
    timeout: Optional[float] = None,
    use_base64: bool = False
) -> str:
    """
    Execute a command on a remote host via SSH using your SSH config.

    Parameters:
    - host (required): SSH host alias from your SSH config
    - command (required): Command to execute on the remote host
    - timeout (optional): Timeout in seconds (default: 30)
    - use_base64 (optional): Use base64 encoding for complex commands to avoid
      escaping issues (default: false)

    A nonzero exit code is reported with success=false, not as an error.
    """
    return await _call(EXECUTE_COMMAND, {
        "host": host,
        "command": command,
        "timeout": timeout,
        "use_base64": use_base64,
    })


@mcp.tool()
async def ssh_execute_script(
    host: str,
    script: str,
    timeout: Optional[float] = None,
    interpreter: Optional[str] = None
) -> str:
    """
    Execute a multi-line script on a remote host via SSH with base64 encoding.

    Parameters:
    - host (required): SSH host alias from your SSH config
    - script (required): Multi-line script to execute on the remote host
    - timeout (optional): Timeout in seconds (default: 60)
    - interpreter (optional): Script interpreter (default: bash)

    The response echoes only the first 3 lines of the script plus a line count.
    """
    return await _call(EXECUTE_SCRIPT, {
        "host": host,
        "script": script,
        "timeout": timeout,
        "interpreter": interpreter,
    })


@mcp.tool()
async def ssh_list_hosts() -> str:
    """
    List all available SSH hosts from your SSH config.

    Returns alias, hostname (alias if unset), user and port (22 if unset)
    for every host, plus the total.
    """
    return await _call(LIST_HOSTS, {})


@mcp.tool()
async def ssh_get_host_info(host: str) -> str:
    """
    Get detailed information about a specific SSH host.

    Includes identity file, proxy jump and every other option set in the
    host's block.
    """
    return await _call(GET_HOST_INFO, {"host": host})


@mcp.tool()
async def ssh_upload_file(host: str, local_path: str, remote_path: str) -> str:
    """
    Upload a file to a remote host via SCP.

    Parameters:
    - host (required): SSH host alias from your SSH config
    - local_path (required): Local file path
    - remote_path (required): Remote destination path
    """
    return await _call(UPLOAD_FILE, {
        "host": host,
        "local_path": local_path,
        "remote_path": remote_path,
    })


@mcp.tool()
async def ssh_download_file(host: str, remote_path: str, local_path: str) -> str:
    """
    Download a file from a remote host via SCP.

    Parameters:
    - host (required): SSH host alias from your SSH config
    - remote_path (required): Remote file path
    - local_path (required): Local destination path
    """
    return await _call(DOWNLOAD_FILE, {
        "host": host,
        "remote_path": remote_path,
        "local_path": local_path,
    })


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Run the MCP server."""
    logger.info(f"Starting {SERVER_NAME} MCP server v{SERVER_VERSION}")
    # Load the registry before serving so config problems show up at startup
    get_dispatcher()
    mcp.run()
    logger.info(f"{SERVER_NAME} MCP server stopped")


if __name__ == "__main__":
    main()
