"""
Byte-stream transports to Tor's control socket.

The session engine only depends on the abstract ``Transport`` and
``Connection`` interfaces and on a ``HexCodec``; ``select_transport`` and
``select_hex_codec`` pick the concrete implementations at startup.
"""

from __future__ import annotations

import binascii
import socket
from abc import ABC, abstractmethod
from types import TracebackType

from torctl import output
from torctl.control.errors import ConnectionRefused, MissingDependency
from torctl.control.models import SocketDescriptor, UnixSocket

RECV_SIZE = 4096
LINE_ENDING = "\r\n"


class Connection(ABC):
    """A duplex, line-oriented connection to the control socket."""

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Send one command line (the line ending is appended)."""

    @abstractmethod
    def read_all(self) -> str:
        """Read until the server closes or resets the connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class Transport(ABC):
    """Opens connections to a socket descriptor."""

    # Some transports drop lines that arrive too quickly
    requires_line_pacing: bool = False

    @abstractmethod
    def probe(self, descriptor: SocketDescriptor, timeout: float) -> None:
        """
        Check that the endpoint accepts connections, without sending anything.

        Raises:
            ConnectionRefused: If the endpoint is unreachable
        """

    @abstractmethod
    def connect(self, descriptor: SocketDescriptor) -> Connection:
        """
        Open a connection for a control session.

        Raises:
            ConnectionRefused: If the endpoint is unreachable
        """


class SocketConnection(Connection):
    """
    Connection over a connected socket.

    Tor closes the connection as soon as it rejects AUTHENTICATE, while the
    rest of the batch may still be on its way. Once the peer has gone, later
    lines are dropped and ``read_all`` returns whatever arrived before the
    close, so the rejection still reaches the classifier.
    """

    def __init__(self, sock: socket.socket, descriptor: SocketDescriptor | None = None) -> None:
        self.sock = sock
        self.descriptor = descriptor
        self.peer_closed = False

    def write_line(self, line: str) -> None:
        if self.peer_closed:
            return
        try:
            self.sock.sendall((line + LINE_ENDING).encode("utf-8"))
        except (BrokenPipeError, ConnectionResetError):
            output.debug("Connection closed by peer, not sending remaining lines")
            self.peer_closed = True
        except OSError as e:
            raise ConnectionRefused(f"Connection to {self.descriptor} lost: {e}") from e

    def read_all(self) -> str:
        chunks = []
        while True:
            try:
                chunk = self.sock.recv(RECV_SIZE)
            except ConnectionResetError:
                output.debug("Connection reset by peer")
                break
            except OSError as e:
                raise ConnectionRefused(f"Connection to {self.descriptor} lost: {e}") from e
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def close(self) -> None:
        self.sock.close()


class SocketTransport(Transport):
    """Unix domain and TCP sockets with blocking I/O."""

    def _open(self, descriptor: SocketDescriptor, timeout: float | None) -> socket.socket:
        if isinstance(descriptor, UnixSocket):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            address: str | tuple[str, int] = descriptor.path
        else:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            address = (descriptor.host, descriptor.port)

        sock.settimeout(timeout)
        try:
            sock.connect(address)
        except OSError as e:
            sock.close()
            raise ConnectionRefused(f"Cannot connect to {descriptor}: {e}") from e
        return sock

    def probe(self, descriptor: SocketDescriptor, timeout: float) -> None:
        output.debug(f"Probing {descriptor} (timeout {timeout}s)")
        self._open(descriptor, timeout).close()

    def connect(self, descriptor: SocketDescriptor) -> Connection:
        output.debug(f"Connecting to {descriptor}")
        sock = self._open(descriptor, None)
        return SocketConnection(sock, descriptor)


class HexCodec(ABC):
    """Hex encoding used for cookie tokens."""

    @abstractmethod
    def encode(self, data: bytes) -> str:
        """Encode bytes as upper-case hex without separators."""

    @abstractmethod
    def decode(self, text: str) -> bytes:
        """Decode hex text back to bytes."""


class BinasciiHexCodec(HexCodec):
    """Hex codec backed by binascii."""

    def encode(self, data: bytes) -> str:
        return binascii.hexlify(data).decode("ascii").upper()

    def decode(self, text: str) -> bytes:
        return binascii.unhexlify(text)


def select_transport(descriptor: SocketDescriptor) -> Transport:
    """
    Pick a transport able to reach the descriptor.

    Raises:
        MissingDependency: If the platform lacks Unix domain sockets
    """
    if isinstance(descriptor, UnixSocket) and not hasattr(socket, "AF_UNIX"):
        raise MissingDependency("Unix domain sockets are not supported on this platform")
    return SocketTransport()


def select_hex_codec() -> HexCodec:
    """Pick the hex codec for cookie tokens."""
    return BinasciiHexCodec()
