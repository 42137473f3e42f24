"""Circuit and stream listings built from control replies."""

from torctl.views.circuits import (
    fetch_circuits,
    lookup_relay,
    parse_circuit_status,
    parse_router_status,
    render_circuits,
)
from torctl.views.models import (
    CircuitEntry,
    CircuitSummary,
    PathHop,
    RelayInfo,
    StreamEntry,
    StreamSummary,
)
from torctl.views.streams import fetch_streams, parse_stream_status, render_streams

__all__ = [
    "CircuitEntry",
    "CircuitSummary",
    "PathHop",
    "RelayInfo",
    "StreamEntry",
    "StreamSummary",
    "fetch_circuits",
    "lookup_relay",
    "parse_circuit_status",
    "parse_router_status",
    "render_circuits",
    "fetch_streams",
    "parse_stream_status",
    "render_streams",
]
