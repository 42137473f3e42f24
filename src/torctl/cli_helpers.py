"""
CLI helper functions for torctl.

These functions turn command-line arguments and environment variables into
the immutable SessionConfig shared by every stage of a session.
"""

from __future__ import annotations

import argparse
import os
import sys

from torctl import output
from torctl.control.descriptor import resolve_socket
from torctl.control.discovery import TorConfigLocator, discover_socket
from torctl.control.models import SessionConfig, SocketDescriptor
from torctl.control.session import parse_command_batch

# Default connect probe timeout (can be overridden with TORCTL_PROBE_TIMEOUT env var)
DEFAULT_PROBE_TIMEOUT = 5.0


def get_probe_timeout() -> float:
    """Get probe timeout from TORCTL_PROBE_TIMEOUT env var or use default."""
    env_timeout = os.environ.get("TORCTL_PROBE_TIMEOUT")
    if env_timeout:
        try:
            timeout = float(env_timeout)
            if timeout > 0:
                return timeout
        except ValueError:
            pass
        print(f"Warning: Invalid TORCTL_PROBE_TIMEOUT value: {env_timeout}", file=sys.stderr)
    return DEFAULT_PROBE_TIMEOUT


def non_negative_float(value: str) -> float:
    """argparse type for delays in seconds."""
    try:
        seconds = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number of seconds: {value!r}") from e
    if seconds < 0:
        raise argparse.ArgumentTypeError(f"delay must not be negative: {value}")
    return seconds


def resolve_descriptor(
    socket_arg: str | None,
    locator: TorConfigLocator | None = None,
) -> SocketDescriptor:
    """
    Resolve the control socket from -s, TORCTL_SOCKET or Tor's configuration.

    Args:
        socket_arg: Value of -s (None if not given)
        locator: Config file locator for autodiscovery

    Returns:
        SocketDescriptor

    Raises:
        InvalidSocket, InvalidPort, InvalidAddress: If the given value is malformed
    """
    value = socket_arg or os.environ.get("TORCTL_SOCKET")
    descriptor = resolve_socket(value)
    if descriptor is None:
        descriptor = discover_socket(locator)
    output.verbose(f"Control socket: {descriptor}")
    return descriptor


def command_batch(args: argparse.Namespace) -> tuple[str, ...]:
    """Command batch from -c, or the positional words joined by spaces."""
    if args.command_string:
        return parse_command_batch(args.command_string)
    return parse_command_batch(" ".join(args.words))


def build_session_config(
    args: argparse.Namespace,
    commands: tuple[str, ...] = (),
    locator: TorConfigLocator | None = None,
) -> SessionConfig:
    """Build the session configuration from parsed arguments."""
    return SessionConfig(
        descriptor=resolve_descriptor(args.socket, locator),
        commands=commands,
        password=args.password,
        delay=getattr(args, "delay", 0.0),
        wait=getattr(args, "wait", False),
        quiet=getattr(args, "quiet", False),
        probe_timeout=get_probe_timeout(),
    )
