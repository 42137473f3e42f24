"""
Control session pipeline.

Connect probe -> PROTOCOLINFO negotiation -> command session -> classification.
Every stage reads the same immutable SessionConfig; nothing is shared between
runs.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from torctl import output
from torctl.control.auth import negotiate
from torctl.control.errors import AuthFailed
from torctl.control.models import SessionConfig, SessionResult
from torctl.control.reply import classify
from torctl.control.session import read_confirmation, run_session
from torctl.control.transport import HexCodec, Transport, select_hex_codec, select_transport


def run(
    config: SessionConfig,
    transport: Transport | None = None,
    codec: HexCodec | None = None,
    confirm: Callable[[], object] = read_confirmation,
    sleep: Callable[[float], None] = time.sleep,
) -> SessionResult:
    """
    Run one complete control session.

    Args:
        config: Session configuration
        transport: Transport (selected for the descriptor if None)
        codec: Hex codec for cookie tokens (default codec if None)
        confirm: Operator confirmation callback used with ``config.wait``
        sleep: Delay function used between commands

    Returns:
        Classified SessionResult

    Raises:
        MissingDependency: If no transport can reach the descriptor
        ConnectionRefused: If the control socket is unreachable
        AuthNotConfigured: If Tor has no authentication method enabled
        AuthFailed: If Tor rejected AUTHENTICATE
    """
    if transport is None:
        transport = select_transport(config.descriptor)
    if codec is None:
        codec = select_hex_codec()

    output.explain(f"Checking that {config.descriptor} accepts connections")
    transport.probe(config.descriptor, config.probe_timeout)

    payload = negotiate(transport, config.descriptor, config.password, codec)

    raw = run_session(config, transport, payload, confirm=confirm, sleep=sleep)
    result = classify(raw, config.commands)

    auth_reply = result.auth_reply
    if auth_reply is None:
        raise AuthFailed("Tor closed the connection without answering AUTHENTICATE")
    if not auth_reply.is_ok:
        raise AuthFailed(f"Authentication failed: {auth_reply.status_code} {auth_reply.message}")

    outcome = "succeeded" if result.success else "failed"
    output.verbose(f"Session {outcome} ({result.ok_lines} OK lines)")
    return result
