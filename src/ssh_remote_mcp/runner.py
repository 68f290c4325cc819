#!/usr/bin/env python3
"""
Process Runner - runs the ssh/scp clients as child processes.

One child per call, launched without a local shell. Commands and scripts
race against a deadline; on expiry the child (and anything it spawned)
is terminated and the call fails with CommandTimeoutError. A nonzero
exit from a command or script is a normal result with success=False,
while a nonzero exit from a transfer is an ExecutionFailedError.
"""

import asyncio
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psutil

from .config import config, logger
from .errors import CommandTimeoutError, ExecutionFailedError


ENCODING_PLAIN = "plain"
ENCODING_BASE64 = "base64"

UPLOAD = "upload"
DOWNLOAD = "download"

SCRIPT_PREVIEW_LINES = 3


# =============================================================================
# Payload Encoding
# =============================================================================

def encode_payload(payload: str, interpreter: str = "bash") -> str:
    """Wrap *payload* in a base64 pipeline decoded on the remote side.

    The base64 alphabet contains no quotes, so single-quoting is safe.
    """
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return f"echo '{encoded}' | base64 -d | {interpreter}"


def script_preview(script: str) -> Tuple[str, int]:
    """First lines of a script for the response, and its line count."""
    lines = script.split("\n")
    preview = "\n".join(lines[:SCRIPT_PREVIEW_LINES])
    if len(lines) > SCRIPT_PREVIEW_LINES:
        preview += "\n..."
    return preview, len(lines)


# =============================================================================
# Results
# =============================================================================

@dataclass
class ProcessOutcome:
    """Raw outcome of a child that exited on its own."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass
class CommandResult:
    host: str
    command: str
    exit_code: int
    stdout: str
    stderr: str
    encoding: str
    interpreter: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        command = self.command
        if self.encoding == ENCODING_BASE64:
            command = f"[Base64 Encoded] {command}"
        data: Dict[str, Any] = {
            "host": self.host,
            "command": command,
            "exitCode": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "success": self.success,
            "encoding": self.encoding,
        }
        if self.interpreter is not None:
            data["interpreter"] = self.interpreter
        return data


@dataclass
class ScriptResult:
    host: str
    script: str
    interpreter: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        preview, line_count = script_preview(self.script)
        return {
            "host": self.host,
            "script": preview,
            "interpreter": self.interpreter,
            "exitCode": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "success": self.success,
            "encoding": ENCODING_BASE64,
            "lineCount": line_count,
        }


@dataclass
class TransferResult:
    host: str
    direction: str
    local_path: str
    remote_path: str
    stdout: str
    stderr: str

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"host": self.host}
        if self.direction == UPLOAD:
            data.update(localPath=self.local_path, remotePath=self.remote_path)
            message = "File uploaded successfully"
        else:
            data.update(remotePath=self.remote_path, localPath=self.local_path)
            message = "File downloaded successfully"
        data.update(
            success=True,
            message=message,
            stdout=self.stdout,
            stderr=self.stderr,
        )
        return data


# =============================================================================
# Process Runner
# =============================================================================

class ProcessRunner:
    """Launches ssh/scp children and collects their output."""

    def __init__(
        self,
        ssh_binary: Optional[str] = None,
        scp_binary: Optional[str] = None,
        ssh_options: Optional[Sequence[str]] = None,
        kill_grace: Optional[float] = None,
    ):
        self.ssh_binary = ssh_binary or config.ssh_binary
        self.scp_binary = scp_binary or config.scp_binary
        self.ssh_options = tuple(config.ssh_options if ssh_options is None else ssh_options)
        self.kill_grace = config.kill_grace if kill_grace is None else kill_grace

    # -------------------------------------------------------------------------
    # Commands and scripts
    # -------------------------------------------------------------------------

    async def run_command(
        self,
        host: str,
        command: str,
        timeout: float,
        encoded: bool = False,
        interpreter: Optional[str] = None,
    ) -> CommandResult:
        """Run one command on *host*; the alias must already be validated."""
        if encoded:
            interpreter = interpreter or config.interpreter
            remote_command = encode_payload(command, interpreter)
        else:
            interpreter = None
            remote_command = command

        outcome = await self._run_with_deadline(
            [self.ssh_binary, *self.ssh_options, host, remote_command],
            timeout,
            timeout_message=f"Command timed out after {timeout:g} seconds",
            failure_prefix="SSH execution failed",
            host=host,
        )
        return CommandResult(
            host=host,
            command=command,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            encoding=ENCODING_BASE64 if encoded else ENCODING_PLAIN,
            interpreter=interpreter,
        )

    async def run_script(
        self,
        host: str,
        script: str,
        timeout: float,
        interpreter: Optional[str] = None,
    ) -> ScriptResult:
        """Run a multi-line script; scripts are always base64 encoded."""
        interpreter = interpreter or config.interpreter
        outcome = await self._run_with_deadline(
            [self.ssh_binary, *self.ssh_options, host, encode_payload(script, interpreter)],
            timeout,
            timeout_message=f"Script timed out after {timeout:g} seconds",
            failure_prefix="SSH script execution failed",
            host=host,
        )
        return ScriptResult(
            host=host,
            script=script,
            interpreter=interpreter,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )

    # -------------------------------------------------------------------------
    # File transfer
    # -------------------------------------------------------------------------

    async def transfer(
        self,
        host: str,
        local_path: str,
        remote_path: str,
        direction: str,
    ) -> TransferResult:
        """Copy a file with scp. No deadline is applied to transfers."""
        remote_spec = f"{host}:{remote_path}"
        if direction == UPLOAD:
            paths = [local_path, remote_spec]
            failure_prefix = "SCP upload failed"
        elif direction == DOWNLOAD:
            paths = [remote_spec, local_path]
            failure_prefix = "SCP download failed"
        else:
            raise ValueError(f"Unknown transfer direction: {direction}")

        args = [self.scp_binary, *self.ssh_options, *paths]
        proc = await self._spawn(args, failure_prefix, host)
        stdout, stderr = await proc.communicate()
        outcome = self._outcome(proc, stdout, stderr)

        if not outcome.success:
            logger.error(f"{failure_prefix} for {host} (exit {outcome.exit_code}): {outcome.stderr}")
            raise ExecutionFailedError(
                f"{failure_prefix}: exit code {outcome.exit_code}: {outcome.stderr}",
                details={
                    "host": host,
                    "exitCode": outcome.exit_code,
                    "stdout": outcome.stdout,
                    "stderr": outcome.stderr,
                },
            )

        return TransferResult(
            host=host,
            direction=direction,
            local_path=local_path,
            remote_path=remote_path,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )

    # -------------------------------------------------------------------------
    # Process lifecycle
    # -------------------------------------------------------------------------

    async def _spawn(self, args: List[str], failure_prefix: str, host: str) -> asyncio.subprocess.Process:
        # SECURITY: argument list, no local shell
        try:
            return await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"{failure_prefix} for {host}: {e}")
            raise ExecutionFailedError(f"{failure_prefix}: {e}", details={"host": host}) from e

    async def _run_with_deadline(
        self,
        args: List[str],
        timeout: float,
        timeout_message: str,
        failure_prefix: str,
        host: str,
    ) -> ProcessOutcome:
        proc = await self._spawn(args, failure_prefix, host)
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{timeout_message} on {host}, terminating pid {proc.pid}")
            await self._terminate(proc)
            raise CommandTimeoutError(timeout_message, timeout=timeout, details={"host": host})
        return self._outcome(proc, stdout, stderr)

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """SIGTERM the child and its descendants, SIGKILL after the grace period."""
        try:
            children = psutil.Process(proc.pid).children(recursive=True)
        except psutil.Error:
            children = []

        for child in children:
            try:
                child.terminate()
            except psutil.Error:
                pass
        if proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass

        try:
            await asyncio.wait_for(proc.wait(), timeout=self.kill_grace)
        except asyncio.TimeoutError:
            logger.warning(f"pid {proc.pid} ignored SIGTERM, killing")
            self._kill_survivors(children)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        else:
            self._kill_survivors(children)

    @staticmethod
    def _kill_survivors(children: List[psutil.Process]) -> None:
        # Descendants can hold the output pipes open after the child exits
        _, alive = psutil.wait_procs(children, timeout=0)
        for child in alive:
            try:
                child.kill()
            except psutil.Error:
                pass

    @staticmethod
    def _outcome(proc: asyncio.subprocess.Process, stdout: Optional[bytes], stderr: Optional[bytes]) -> ProcessOutcome:
        return ProcessOutcome(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace").strip() if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace").strip() if stderr else "",
        )


__all__ = [
    "ENCODING_PLAIN",
    "ENCODING_BASE64",
    "UPLOAD",
    "DOWNLOAD",
    "encode_payload",
    "script_preview",
    "ProcessOutcome",
    "CommandResult",
    "ScriptResult",
    "TransferResult",
    "ProcessRunner",
]
