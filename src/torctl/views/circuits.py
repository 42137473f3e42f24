"""
Circuit listing.

Runs ``GETINFO circuit-status`` and then one ``GETINFO ns/id/<fingerprint>``
session per hop of every built circuit to find each relay's address.

circuit-status lines (control-spec section 4.1.1):

    <CircuitID> <CircStatus> [<Path>] [BUILD_FLAGS=...] [PURPOSE=...] [TIME_CREATED=...]

where Path is a comma-separated list of ``$FINGERPRINT~nickname`` entries.
"""

from __future__ import annotations

from dataclasses import replace

from torctl import output
from torctl.control.controller import run
from torctl.control.errors import TorctlError
from torctl.control.models import ReplyBlock, SessionConfig
from torctl.control.transport import Transport
from torctl.views.models import CircuitEntry, CircuitSummary, PathHop, RelayInfo

# Hops shown per circuit
MAX_HOPS = 3


def query(config: SessionConfig, command: str, transport: Transport | None = None) -> ReplyBlock:
    """
    Run a single informational command in its own session.

    Returns:
        The command's reply block

    Raises:
        TorctlError: If the session fails or the command got no reply
    """
    session_config = replace(config, commands=(command,), wait=False, quiet=True)
    result = run(session_config, transport=transport)
    if not result.command_replies:
        raise TorctlError(f"No reply to {command}")
    return result.command_replies[0]


def getinfo_values(block: ReplyBlock, key: str) -> list[str]:
    """
    Extract the value lines of a GETINFO key from a reply.

    Handles both ``250-key=value`` and ``250+key=`` data block replies.
    """
    prefix = f"{key}="
    for line in block.lines:
        if not line.text.startswith(prefix):
            continue
        if line.separator == "+":
            return [d for d in line.data if d]
        value = line.text[len(prefix) :]
        return [value] if value else []
    return []


def parse_path_hop(entry: str) -> PathHop:
    """
    Parse a LongName from a circuit path.

    Examples:
        $AAAA...~relay1 -> PathHop("AAAA...", "relay1")
        $AAAA...=relay1 -> PathHop("AAAA...", "relay1")
        $AAAA...        -> PathHop("AAAA...", None)
        relay1          -> PathHop(None, "relay1")
    """
    if not entry.startswith("$"):
        return PathHop(fingerprint=None, nickname=entry)

    entry = entry[1:]
    for sep in ("~", "="):
        if sep in entry:
            fingerprint, nickname = entry.split(sep, 1)
            return PathHop(fingerprint=fingerprint.upper(), nickname=nickname or None)
    return PathHop(fingerprint=entry.upper())


def parse_circuit_status(lines: list[str]) -> list[CircuitEntry]:
    """
    Parse circuit-status lines into circuit entries.

    Args:
        lines: Value lines of GETINFO circuit-status

    Returns:
        List of CircuitEntry, in reply order
    """
    circuits = []
    for line in lines:
        parts = line.split()
        if len(parts) < 2:
            output.debug(f"Skipping circuit-status line: {line!r}")
            continue

        circuit = CircuitEntry(circuit_id=parts[0], status=parts[1])
        for part in parts[2:]:
            if "=" in part and not part.startswith("$"):
                key, value = part.split("=", 1)
                if key == "BUILD_FLAGS":
                    circuit.build_flags = value.split(",")
                elif key == "PURPOSE":
                    circuit.purpose = value
                elif key == "TIME_CREATED":
                    circuit.time_created = value
            elif not circuit.path:
                circuit.path = [parse_path_hop(hop) for hop in part.split(",")]

        circuits.append(circuit)
    return circuits


def parse_router_status(fingerprint: str, lines: list[str]) -> RelayInfo:
    """
    Parse a router status entry from GETINFO ns/id/<fingerprint>.

    The "r" line ends with IP ORPort DirPort in both the full and the
    microdescriptor flavour:

        r <nickname> <identity> [<digest>] <date> <time> <IP> <ORPort> <DirPort>
    """
    relay = RelayInfo(fingerprint=fingerprint)
    for line in lines:
        parts = line.split()
        if not parts:
            continue
        if parts[0] == "r" and len(parts) >= 8:
            relay.nickname = parts[1]
            relay.address = parts[-3]
            try:
                relay.or_port = int(parts[-2])
            except ValueError:
                relay.or_port = None
        elif parts[0] == "s":
            relay.flags = parts[1:]
    return relay


def lookup_relay(
    config: SessionConfig,
    hop: PathHop,
    transport: Transport | None = None,
) -> RelayInfo:
    """Look up a relay's advertised address; unknown relays keep only their names."""
    if hop.fingerprint is None:
        return RelayInfo(fingerprint="", nickname=hop.nickname)

    key = f"ns/id/{hop.fingerprint}"
    block = query(config, f"GETINFO {key}", transport=transport)
    if not block.is_ok:
        output.verbose(f"No router status for {hop.label}: {block.message}")
        return RelayInfo(fingerprint=hop.fingerprint, nickname=hop.nickname)

    relay = parse_router_status(hop.fingerprint, getinfo_values(block, key))
    if relay.nickname is None:
        relay.nickname = hop.nickname
    return relay


def fetch_circuit_status(
    config: SessionConfig,
    transport: Transport | None = None,
) -> list[CircuitEntry]:
    """
    Fetch and parse GETINFO circuit-status.

    Raises:
        TorctlError: If Tor refused the query
    """
    output.explain("Fetching circuit status from Tor")
    block = query(config, "GETINFO circuit-status", transport=transport)
    if not block.is_ok:
        raise TorctlError(f"GETINFO circuit-status failed: {block.status_code} {block.message}")
    return parse_circuit_status(getinfo_values(block, "circuit-status"))


def fetch_circuits(
    config: SessionConfig,
    transport: Transport | None = None,
) -> list[CircuitSummary]:
    """
    Fetch built circuits and the details of their first hops.

    Args:
        config: Base session configuration (socket and password)
        transport: Transport override

    Returns:
        One CircuitSummary per built circuit
    """
    summaries = []
    for circuit in fetch_circuit_status(config, transport=transport):
        if not circuit.is_built:
            continue
        output.explain(f"Looking up relays of circuit {circuit.circuit_id}")
        relays = [lookup_relay(config, hop, transport=transport) for hop in circuit.path[:MAX_HOPS]]
        summaries.append(CircuitSummary(circuit=circuit, relays=relays))
    return summaries


def render_circuits(summaries: list[CircuitSummary]) -> str:
    """Render built circuits as a numbered summary."""
    if not summaries:
        return "No built circuits."

    lines = [f"Built circuits ({len(summaries)}):", ""]
    for i, summary in enumerate(summaries, 1):
        circuit = summary.circuit
        purpose = circuit.purpose or "unknown"
        lines.append(f"  [{i}] Circuit {circuit.circuit_id} ({purpose})")
        if circuit.time_created:
            lines.append(f"      Created: {circuit.time_created}")
        for n, relay in enumerate(summary.relays, 1):
            name = relay.nickname or "unnamed"
            fingerprint = relay.fingerprint or "-"
            lines.append(f"      {n}. {name:<20} {fingerprint:<40} {relay.endpoint}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")
