"""
Command session.

One connection carries the whole session, written before anything is read:

    AUTHENTICATE <token>
    <command 1>
    ...
    <command n>
    QUIT

The server closes the connection after QUIT, so the replies are drained to
EOF in one go and classified afterwards.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable

from torctl import output
from torctl.control.models import AuthPayload, SessionConfig
from torctl.control.transport import Transport

# Minimum delay between commands on transports that drop fast lines
PACED_DELAY = 1.0


def parse_command_batch(text: str) -> tuple[str, ...]:
    """
    Split a ``|``-separated command string into a batch.

    Example:
        "GETCONF User | GETINFO version" -> ("GETCONF User", "GETINFO version")
    """
    return tuple(cmd.strip() for cmd in text.split("|") if cmd.strip())


def effective_delay(delay: float, transport: Transport) -> float:
    """Delay before each command, raised for transports needing line pacing."""
    if transport.requires_line_pacing:
        return max(delay, PACED_DELAY)
    return delay


def read_confirmation() -> str:
    """Block until the operator presses Enter on the controlling terminal."""
    print("Press Enter to close the connection...", file=sys.stderr)
    try:
        with open("/dev/tty", encoding="utf-8") as tty:
            return tty.readline()
    except OSError:
        return sys.stdin.readline()


def run_session(
    config: SessionConfig,
    transport: Transport,
    payload: AuthPayload,
    confirm: Callable[[], object] = read_confirmation,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Send AUTHENTICATE, the command batch and QUIT, then drain the replies.

    Args:
        config: Session configuration
        transport: Transport used to open the connection
        payload: AUTHENTICATE payload
        confirm: Called before QUIT when ``config.wait`` is set
        sleep: Called with the delay before each command

    Returns:
        Raw reply text of the whole session

    Raises:
        ConnectionRefused: If the control socket is unreachable or the connection drops
    """
    delay = effective_delay(config.delay, transport)

    output.explain(f"Sending {len(config.commands)} command(s) to {config.descriptor}")
    with transport.connect(config.descriptor) as conn:
        conn.write_line(payload.line)

        for command in config.commands:
            if delay > 0:
                sleep(delay)
            output.verbose(f"Sending: {command}")
            conn.write_line(command)

        if config.wait:
            confirm()

        conn.write_line("QUIT")
        raw = conn.read_all()

    output.debug(f"Received {len(raw)} bytes")
    return raw
