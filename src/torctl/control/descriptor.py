"""
Socket descriptor resolution.

Turns the operator's ``-s`` argument (or an autodiscovered directive value)
into a typed descriptor:

    /run/tor/control          -> UnixSocket("/run/tor/control")
    unix:/run/tor/control     -> UnixSocket("/run/tor/control")
    9051                      -> TcpSocket("127.0.0.1", 9051)
    192.168.1.10:9051         -> TcpSocket("192.168.1.10", 9051)
"""

from __future__ import annotations

import os
import stat

from torctl.control.errors import InvalidAddress, InvalidPort, InvalidSocket
from torctl.control.models import SocketDescriptor, TcpSocket, UnixSocket

DEFAULT_CONTROL_HOST = "127.0.0.1"
DEFAULT_CONTROL_PORT = 9051
UNIX_PREFIX = "unix:"


def parse_port(port_str: str) -> int:
    """
    Parse and validate a TCP port.

    Args:
        port_str: Port as given on the command line

    Returns:
        Port number

    Raises:
        InvalidPort: If the port is not an integer in 1-65535
    """
    if not (port_str.isascii() and port_str.isdigit()):
        raise InvalidPort(f"Invalid port number: {port_str!r}")

    port = int(port_str)
    if port < 1 or port > 65535:
        raise InvalidPort(f"Port out of range (1-65535): {port}")

    return port


def parse_address(address: str) -> str:
    """
    Validate an IPv4 address in dotted-quad form.

    Host names are not resolved and IPv6 is not accepted.

    Raises:
        InvalidAddress: If the address is not four octets in 0-255
    """
    octets = address.split(".")
    if len(octets) != 4:
        raise InvalidAddress(f"Invalid IPv4 address: {address!r}")

    for octet in octets:
        if not (octet.isascii() and octet.isdigit()) or int(octet) > 255:
            raise InvalidAddress(f"Invalid IPv4 address: {address!r}")

    return address


def is_socket_node(path: str) -> bool:
    """Check if path exists and is a Unix socket."""
    try:
        return stat.S_ISSOCK(os.stat(path).st_mode)
    except OSError:
        return False


def resolve_socket(value: str | None) -> SocketDescriptor | None:
    """
    Resolve a ``[unix:]path`` or ``[addr:]port`` string to a descriptor.

    Args:
        value: Socket argument; empty or None means "try autodiscovery"

    Returns:
        UnixSocket or TcpSocket, or None for empty input

    Raises:
        InvalidSocket: If a Unix path is not an existing socket, or the value
            has neither form
        InvalidPort: If the TCP port is out of range
        InvalidAddress: If the TCP host is not a dotted quad
    """
    if not value:
        return None

    if value.startswith("/") or value.startswith(UNIX_PREFIX):
        path = value.removeprefix(UNIX_PREFIX)
        if not is_socket_node(path):
            raise InvalidSocket(f"Not a socket: {path}")
        return UnixSocket(path)

    if value[0].isdigit():
        if ":" in value:
            host, port_str = value.rsplit(":", 1)
        else:
            host, port_str = DEFAULT_CONTROL_HOST, value
        return TcpSocket(parse_address(host), parse_port(port_str))

    raise InvalidSocket(f"Invalid socket: {value!r} (expected [unix:]path or [addr:]port)")


def default_socket() -> TcpSocket:
    """Descriptor used when nothing else is configured."""
    return TcpSocket(DEFAULT_CONTROL_HOST, DEFAULT_CONTROL_PORT)
