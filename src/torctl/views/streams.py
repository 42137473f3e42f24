"""
Stream listing.

stream-status lines (control-spec section 4.1.2):

    <StreamID> <StreamStatus> <CircuitID> <Target>

Each stream is shown with the path of the circuit it is attached to, taken
from one extra circuit-status query.
"""

from __future__ import annotations

from torctl import output
from torctl.control.errors import TorctlError
from torctl.control.models import SessionConfig
from torctl.control.transport import Transport
from torctl.views.circuits import MAX_HOPS, fetch_circuit_status, getinfo_values, query
from torctl.views.models import StreamEntry, StreamSummary


def parse_stream_status(lines: list[str]) -> list[StreamEntry]:
    """Parse stream-status lines into stream entries."""
    streams = []
    for line in lines:
        parts = line.split(None, 3)
        if len(parts) < 4:
            output.debug(f"Skipping stream-status line: {line!r}")
            continue
        streams.append(
            StreamEntry(stream_id=parts[0], status=parts[1], circuit_id=parts[2], target=parts[3])
        )
    return streams


def fetch_streams(
    config: SessionConfig,
    transport: Transport | None = None,
) -> list[StreamSummary]:
    """
    Fetch open streams and the circuits carrying them.

    Raises:
        TorctlError: If Tor refused the query
    """
    output.explain("Fetching stream status from Tor")
    block = query(config, "GETINFO stream-status", transport=transport)
    if not block.is_ok:
        raise TorctlError(f"GETINFO stream-status failed: {block.status_code} {block.message}")

    streams = parse_stream_status(getinfo_values(block, "stream-status"))
    if not streams:
        return []

    circuits = {c.circuit_id: c for c in fetch_circuit_status(config, transport=transport)}
    summaries = []
    for stream in streams:
        circuit = circuits.get(stream.circuit_id)
        path = [hop.label for hop in circuit.path[:MAX_HOPS]] if circuit else []
        summaries.append(StreamSummary(stream=stream, circuit=circuit, path=path))
    return summaries


def render_streams(summaries: list[StreamSummary]) -> str:
    """Render streams as a numbered summary."""
    if not summaries:
        return "No open streams."

    lines = [f"Streams ({len(summaries)}):", ""]
    for i, summary in enumerate(summaries, 1):
        stream = summary.stream
        lines.append(f"  [{i}] Stream {stream.stream_id} {stream.status} -> {stream.target}")
        if summary.circuit is None:
            lines.append(f"      Circuit: {stream.circuit_id} (not found)")
        else:
            lines.append(f"      Circuit: {stream.circuit_id} ({summary.circuit.status})")
            if summary.path:
                lines.append(f"      Path: {' -> '.join(summary.path)}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")
