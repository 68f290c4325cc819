"""
Host registry: named SSH endpoints resolved from the user's SSH config.

The registry is built once by ssh_config.load_host_registry() and is
read-only afterwards, so concurrent tool calls can share it without locking.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .config import DEFAULT_SSH_PORT
from .errors import HostNotFoundError


@dataclass(frozen=True)
class HostRecord:
    """One ``Host`` block from the SSH config."""
    alias: str
    hostname: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None
    identity_file: Optional[str] = None
    proxy_jump: Optional[str] = None  # may name an alias that does not exist
    extra_properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.alias:
            raise ValueError("Host alias cannot be empty")
        # Freeze the property bag along with the record
        object.__setattr__(self, "extra_properties", MappingProxyType(dict(self.extra_properties)))

    @property
    def effective_hostname(self) -> str:
        return self.hostname or self.alias

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_SSH_PORT

    def to_dict(self) -> Dict[str, Any]:
        """Full record for diagnostics. Unset fields are omitted."""
        data: Dict[str, Any] = {"alias": self.alias}
        optional = (
            ("hostname", self.hostname),
            ("user", self.user),
            ("port", self.port),
            ("identityFile", self.identity_file),
            ("proxyJump", self.proxy_jump),
        )
        for key, value in optional:
            if value is not None:
                data[key] = value
        data["extraProperties"] = dict(self.extra_properties)
        return data


@dataclass(frozen=True)
class HostSummary:
    """Row of the host listing, with presentation defaults applied."""
    alias: str
    hostname: str
    user: Optional[str]
    port: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alias": self.alias,
            "hostname": self.hostname,
            "user": self.user,
            "port": self.port,
        }


class HostRegistry:
    """Immutable mapping of alias -> HostRecord."""

    def __init__(self, records: Optional[Mapping[str, HostRecord]] = None):
        self._records: Mapping[str, HostRecord] = MappingProxyType(dict(records or {}))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __contains__(self, alias: object) -> bool:
        return alias in self._records

    def __repr__(self) -> str:
        return f"HostRegistry({list(self._records)!r})"

    def get(self, alias: str) -> Optional[HostRecord]:
        """Exact-match lookup, None when absent."""
        return self._records.get(alias)

    def lookup(self, alias: str) -> HostRecord:
        """Exact-match lookup.

        No pattern expansion and no fallback to matching on hostname.

        Raises:
            HostNotFoundError: if the alias is not registered.
        """
        record = self._records.get(alias)
        if record is None:
            raise HostNotFoundError(alias)
        return record

    def list(self) -> List[HostSummary]:
        """Summaries in declaration order, defaults computed at read time."""
        return [
            HostSummary(
                alias=alias,
                hostname=record.effective_hostname,
                user=record.user,
                port=record.effective_port,
            )
            for alias, record in self._records.items()
        ]

    def describe(self, alias: str) -> Dict[str, Any]:
        """Full record including extra properties."""
        return self.lookup(alias).to_dict()


__all__ = [
    "HostRecord",
    "HostSummary",
    "HostRegistry",
]
