"""Tor control protocol session engine."""

from torctl.control.controller import run
from torctl.control.descriptor import parse_address, parse_port, resolve_socket
from torctl.control.discovery import TorConfigLocator, discover_socket
from torctl.control.errors import (
    AuthFailed,
    AuthNotConfigured,
    ConnectionRefused,
    InvalidAddress,
    InvalidPort,
    InvalidSocket,
    MissingDependency,
    TorctlError,
)
from torctl.control.models import (
    AuthMethod,
    AuthPayload,
    CommandReply,
    ProtocolInfoReply,
    ReplyBlock,
    SessionConfig,
    SessionResult,
    SocketDescriptor,
    TcpSocket,
    UnixSocket,
)
from torctl.control.session import parse_command_batch
from torctl.control.transport import Connection, HexCodec, SocketTransport, Transport

__all__ = [
    # Pipeline
    "run",
    "parse_command_batch",
    # Sockets
    "resolve_socket",
    "parse_address",
    "parse_port",
    "discover_socket",
    "TorConfigLocator",
    "SocketDescriptor",
    "TcpSocket",
    "UnixSocket",
    # Transport
    "Connection",
    "Transport",
    "SocketTransport",
    "HexCodec",
    # Models
    "AuthMethod",
    "AuthPayload",
    "ProtocolInfoReply",
    "CommandReply",
    "ReplyBlock",
    "SessionConfig",
    "SessionResult",
    # Errors
    "TorctlError",
    "InvalidSocket",
    "InvalidPort",
    "InvalidAddress",
    "ConnectionRefused",
    "AuthNotConfigured",
    "AuthFailed",
    "MissingDependency",
]
