"""
Data models for circuit and stream listings.

Parsed from GETINFO circuit-status, stream-status and ns/id/<fingerprint>.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PathHop:
    """A relay in a circuit path ("$FINGERPRINT~nickname")."""

    fingerprint: str | None  # hex, without "$"
    nickname: str | None = None

    @property
    def label(self) -> str:
        """Nickname if known, fingerprint otherwise."""
        return self.nickname or self.fingerprint or "unknown"


@dataclass
class CircuitEntry:
    """A circuit from GETINFO circuit-status."""

    circuit_id: str
    status: str  # LAUNCHED, BUILT, EXTENDED, FAILED, CLOSED, ...
    path: list[PathHop] = field(default_factory=list)
    build_flags: list[str] = field(default_factory=list)
    purpose: str | None = None
    time_created: str | None = None

    @property
    def is_built(self) -> bool:
        """Check if the circuit is ready for use."""
        return self.status == "BUILT"


@dataclass
class RelayInfo:
    """Relay details from a router status entry (ns/id/<fingerprint>)."""

    fingerprint: str
    nickname: str | None = None
    address: str | None = None
    or_port: int | None = None
    flags: list[str] = field(default_factory=list)

    @property
    def endpoint(self) -> str:
        """Formatted address:port, or "unknown"."""
        if self.address is None:
            return "unknown"
        if self.or_port is None:
            return self.address
        return f"{self.address}:{self.or_port}"


@dataclass
class StreamEntry:
    """A stream from GETINFO stream-status."""

    stream_id: str
    status: str  # NEW, SENTCONNECT, SUCCEEDED, ...
    circuit_id: str  # "0" when not attached
    target: str


@dataclass
class CircuitSummary:
    """A built circuit with the details of its first hops."""

    circuit: CircuitEntry
    relays: list[RelayInfo] = field(default_factory=list)


@dataclass
class StreamSummary:
    """A stream with the circuit it is attached to."""

    stream: StreamEntry
    circuit: CircuitEntry | None = None
    path: list[str] = field(default_factory=list)
