"""Pytest configuration and fixtures for ssh-remote-mcp tests."""

import os
import stat
import textwrap
import pytest
from pathlib import Path
from unittest.mock import patch, AsyncMock

# Set test environment variables before importing modules
os.environ.setdefault("SSH_REMOTE_LOG_LEVEL", "DEBUG")
os.environ.setdefault("SSH_REMOTE_KILL_GRACE", "1")


def write_executable(path: Path, body: str) -> Path:
    """Write a small /bin/sh script and mark it executable."""
    path.write_text("#!/bin/sh\n" + textwrap.dedent(body))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_ssh(tmp_path):
    """ssh stand-in: drops the alias and runs the command with the local shell."""
    return write_executable(tmp_path / "fake-ssh", """\
        shift
        exec /bin/sh -c "$1"
    """)


@pytest.fixture
def fake_scp(tmp_path):
    """scp stand-in that echoes its arguments and succeeds."""
    return write_executable(tmp_path / "fake-scp", """\
        echo "$@"
        echo "copied" >&2
    """)


@pytest.fixture
def failing_scp(tmp_path):
    """scp stand-in that always fails."""
    return write_executable(tmp_path / "failing-scp", """\
        echo "scp: /missing: No such file or directory" >&2
        exit 1
    """)


@pytest.fixture
def runner(fake_ssh, fake_scp):
    """ProcessRunner wired to the fake clients."""
    from ssh_remote_mcp.runner import ProcessRunner
    return ProcessRunner(ssh_binary=str(fake_ssh), scp_binary=str(fake_scp), ssh_options=(), kill_grace=1)


@pytest.fixture
def registry():
    """Small registry with one fully specified and one bare host."""
    from ssh_remote_mcp.ssh_config import parse_ssh_config
    return parse_ssh_config(textwrap.dedent("""\
        Host web
            HostName web.example.com
            User deploy
            Port 2222
            IdentityFile ~/.ssh/web_ed25519
            ForwardAgent yes

        Host bare
    """))


@pytest.fixture
def dispatcher(registry, runner):
    """Dispatcher over the sample registry and fake clients."""
    from ssh_remote_mcp.dispatcher import RequestDispatcher
    return RequestDispatcher(registry, runner)


@pytest.fixture
def mock_exec():
    """Mock asyncio.create_subprocess_exec with a process that exits 0."""
    with patch("asyncio.create_subprocess_exec") as mock_create:
        mock_proc = AsyncMock()
        mock_proc.pid = 4242
        mock_proc.returncode = 0
        mock_proc.communicate = AsyncMock(return_value=(b"output\n", b""))
        mock_create.return_value = mock_proc
        yield mock_create


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the home directory at a temp dir."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir
