"""
SSH config parser - builds the HostRegistry from ~/.ssh/config.

Supports ``Host`` blocks, the common connection keywords and recursive
``Include`` directives (plain paths and ``*`` globs, ``~`` expansion).
Parsing is permissive: a bad line is skipped, an unreadable include is
logged and skipped, and nothing here ever aborts server startup.

Known limitation: ``Host a b c`` registers only ``a``. The remaining
patterns are not expanded into additional aliases.
"""
import glob
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .config import config, logger
from .hosts import HostRecord, HostRegistry


# Keyword, then either "=" or whitespace, then the (possibly empty) value
DIRECTIVE_RE = re.compile(r"^(?P<key>[^\s=]+)(?:(?:\s*=\s*|\s+)(?P<value>.*))?$")

GLOB_CHARS = "*"


@dataclass
class ParseContext:
    """State threaded through one load, including every nested include."""
    base_dir: str
    visited: Set[str] = field(default_factory=set)
    hosts: Dict[str, HostRecord] = field(default_factory=dict)

    def for_file(self, path: str) -> "ParseContext":
        """Context for an included file: its own directory, shared state."""
        return ParseContext(base_dir=os.path.dirname(path), visited=self.visited, hosts=self.hosts)


@dataclass
class _PendingHost:
    """Host block under construction."""
    alias: str
    hostname: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None
    identity_file: Optional[str] = None
    proxy_jump: Optional[str] = None
    extra_properties: Dict[str, str] = field(default_factory=dict)

    def set(self, key: str, value: str) -> None:
        if key == "hostname":
            self.hostname = value
        elif key == "user":
            self.user = value
        elif key == "port":
            try:
                self.port = int(value)
            except ValueError:
                logger.warning(f"Ignoring non-numeric Port {value!r} for host {self.alias}")
                self.port = None
        elif key == "identityfile":
            self.identity_file = expand_home(value)
        elif key == "proxyjump":
            self.proxy_jump = value
        else:
            self.extra_properties[key] = value

    def freeze(self) -> HostRecord:
        return HostRecord(
            alias=self.alias,
            hostname=self.hostname,
            user=self.user,
            port=self.port,
            identity_file=self.identity_file,
            proxy_jump=self.proxy_jump,
            extra_properties=self.extra_properties,
        )


def expand_home(value: str) -> str:
    """Replace a leading ``~`` with the home directory."""
    if value == "~" or value.startswith("~/"):
        return str(Path.home()) + value[1:]
    return value


class SSHConfigParser:
    """Line-oriented SSH config parser with recursive includes."""

    def parse(self, text: str, context: ParseContext) -> List[HostRecord]:
        """Parse one document into ``context.hosts``.

        Returns the records committed while parsing this document and its
        includes, in commit order.
        """
        committed: List[HostRecord] = []
        current: Optional[_PendingHost] = None

        for line_no, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            match = DIRECTIVE_RE.match(line)
            if not match:
                logger.debug(f"Skipping malformed line {line_no}: {line!r}")
                continue
            key = match.group("key").lower()
            value = (match.group("value") or "").strip()

            if key == "include":
                # Included hosts must be able to override the open block
                if current:
                    committed.append(self._commit(current, context))
                    current = None
                if value:
                    committed.extend(self.include(value, context))
                continue

            if key == "host":
                if current:
                    committed.append(self._commit(current, context))
                current = self._start_host(value, line_no)
                continue

            if current is None or not value:
                # Global options and valueless keys are not tracked
                continue
            current.set(key, value)

        if current:
            committed.append(self._commit(current, context))
        return committed

    def include(self, value: str, context: ParseContext) -> List[HostRecord]:
        """Resolve an Include value and parse every file it names."""
        path = expand_home(value)
        if not os.path.isabs(path):
            path = os.path.join(context.base_dir, path)

        if any(c in path for c in GLOB_CHARS):
            try:
                files = sorted(glob.glob(path))
            except OSError as e:
                logger.warning(f"Could not expand glob pattern {path}: {e}")
                return []
            logger.info(f"Found {len(files)} files matching pattern: {path}")
        else:
            files = [path]

        committed: List[HostRecord] = []
        for file_path in files:
            committed.extend(self.parse_file(file_path, context))
        return committed

    def parse_file(self, path: Union[str, Path], context: ParseContext) -> List[HostRecord]:
        """Parse a file unless it was already seen in this load."""
        real_path = os.path.realpath(path)
        if real_path in context.visited:
            logger.warning(f"Skipping already included SSH config (include cycle?): {path}")
            return []
        context.visited.add(real_path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not load include file {path}: {e}")
            return []

        logger.debug(f"Loading SSH config from: {path}")
        return self.parse(text, context.for_file(os.path.abspath(path)))

    def _start_host(self, value: str, line_no: int) -> Optional[_PendingHost]:
        patterns = value.split()
        if not patterns:
            logger.debug(f"Host directive without alias on line {line_no}")
            return None
        if len(patterns) > 1:
            logger.debug(f"Host line {line_no}: registering {patterns[0]!r}, ignoring {patterns[1:]}")
        return _PendingHost(alias=patterns[0])

    def _commit(self, pending: _PendingHost, context: ParseContext) -> HostRecord:
        record = pending.freeze()
        if record.alias in context.hosts:
            logger.debug(f"Host {record.alias} redefined, later definition wins")
        context.hosts[record.alias] = record
        return record


def parse_ssh_config(text: str, base_dir: Union[str, Path] = ".") -> HostRegistry:
    """Parse config text (with includes relative to *base_dir*) into a registry."""
    context = ParseContext(base_dir=str(base_dir))
    SSHConfigParser().parse(text, context)
    return HostRegistry(context.hosts)


def load_host_registry(path: Optional[Union[str, Path]] = None) -> HostRegistry:
    """Build the registry from the primary SSH config file.

    A missing file yields an empty registry.
    """
    config_path = expand_home(str(path or config.ssh_config_path))
    if not os.path.isfile(config_path):
        logger.info(f"SSH config file not found at {config_path}")
        return HostRegistry()

    context = ParseContext(base_dir=os.path.dirname(os.path.abspath(config_path)))
    SSHConfigParser().parse_file(config_path, context)
    registry = HostRegistry(context.hosts)
    logger.info(f"Loaded {len(registry)} SSH hosts from {config_path}")
    return registry


__all__ = [
    "ParseContext",
    "SSHConfigParser",
    "expand_home",
    "parse_ssh_config",
    "load_host_registry",
]
