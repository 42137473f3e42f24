"""
Test fixtures for torctl tests.

This module contains sample control-port transcripts and a scripted fake
transport that answers like a Tor control port.
"""

import socket
import threading
from collections.abc import Callable

from torctl.control.errors import ConnectionRefused
from torctl.control.models import SocketDescriptor
from torctl.control.transport import Connection, Transport

COOKIE_BYTES = bytes(range(32))
COOKIE_HEX = COOKIE_BYTES.hex().upper()

PROTOCOLINFO_COOKIE = (
    "250-PROTOCOLINFO 1\r\n"
    '250-AUTH METHODS=COOKIE,SAFECOOKIE COOKIEFILE="{cookie_file}"\r\n'
    '250-VERSION Tor="0.4.8.10"\r\n'
    "250 OK\r\n"
)

PROTOCOLINFO_PASSWORD = (
    "250-PROTOCOLINFO 1\r\n"
    "250-AUTH METHODS=HASHEDPASSWORD\r\n"
    '250-VERSION Tor="0.4.8.10"\r\n'
    "250 OK\r\n"
)

PROTOCOLINFO_NULL = (
    "250-PROTOCOLINFO 1\r\n"
    "250-AUTH METHODS=NULL\r\n"
    '250-VERSION Tor="0.4.8.10"\r\n'
    "250 OK\r\n"
)

PROTOCOLINFO_SAFECOOKIE = (
    "250-PROTOCOLINFO 1\r\n"
    '250-AUTH METHODS=SAFECOOKIE COOKIEFILE="/nonexistent/control_auth_cookie"\r\n'
    '250-VERSION Tor="0.4.8.10"\r\n'
    "250 OK\r\n"
)

FP1 = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
FP2 = "BBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB"
FP3 = "CCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCC"
FP4 = "DDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDDD"

CIRCUIT_STATUS_ONE_BUILT = (
    "250+circuit-status=\r\n"
    f"7 BUILT ${FP1}~guard1,${FP2}~middle1,${FP3}~exit1 "
    "BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL TIME_CREATED=2024-01-15T12:00:00.000000\r\n"
    f"8 EXTENDED ${FP1}~guard1 BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL\r\n"
    ".\r\n"
    "250 OK\r\n"
)

CIRCUIT_STATUS_EMPTY = "250-circuit-status=\r\n250 OK\r\n"

STREAM_STATUS = (
    "250+stream-status=\r\n"
    "12 SUCCEEDED 7 example.com:443\r\n"
    "13 NEW 0 check.torproject.org:80\r\n"
    ".\r\n"
    "250 OK\r\n"
)

RELAY_ADDRESSES = {
    FP1: ("guard1", "192.0.2.1", 9001),
    FP2: ("middle1", "192.0.2.2", 443),
    FP3: ("exit1", "192.0.2.3", 9001),
}


def ns_reply(fingerprint: str) -> str:
    """GETINFO ns/id/<fingerprint> reply for a known relay."""
    nickname, ip, port = RELAY_ADDRESSES[fingerprint]
    return (
        f"250+ns/id/{fingerprint}=\r\n"
        f"r {nickname} qqqqqqqqqqqqqqqqqqqqqqqqqqo u7u7u7u7u7u7u7u7u7u7u7u7u7s "
        f"2024-01-15 10:00:00 {ip} {port} 0\r\n"
        "s Fast Guard Running Stable Valid\r\n"
        "w Bandwidth=5000\r\n"
        ".\r\n"
        "250 OK\r\n"
    )


class FakeConnection(Connection):
    """Connection that records written lines and answers through a responder."""

    def __init__(self, responder: Callable[[list[str]], str]) -> None:
        self.responder = responder
        self.written: list[str] = []
        self.closed = False

    def write_line(self, line: str) -> None:
        self.written.append(line)

    def read_all(self) -> str:
        return self.responder(self.written)

    def close(self) -> None:
        self.closed = True


class FakeTor:
    """
    Scripted Tor control port.

    Answers PROTOCOLINFO with a fixed reply, accepts a single AUTHENTICATE
    line and answers commands from a table (510 for unknown ones).
    """

    def __init__(
        self,
        protocolinfo: str = PROTOCOLINFO_PASSWORD,
        accepted_auth: str = 'AUTHENTICATE "hunter2"',
        replies: dict[str, str] | None = None,
    ) -> None:
        self.protocolinfo = protocolinfo
        self.accepted_auth = accepted_auth
        self.replies = replies or {}

    def __call__(self, written: list[str]) -> str:
        if written and written[0] == "PROTOCOLINFO":
            return self.protocolinfo + "250 closing connection\r\n"

        if not written or written[0] != self.accepted_auth:
            return "515 Authentication failed: Password did not match\r\n"

        out = ["250 OK\r\n"]
        for line in written[1:]:
            if line == "QUIT":
                out.append("250 closing connection\r\n")
                break
            if line.startswith("GETINFO ns/id/"):
                fingerprint = line.rsplit("/", 1)[1]
                if fingerprint in RELAY_ADDRESSES:
                    out.append(ns_reply(fingerprint))
                else:
                    out.append(f'552 Unrecognized key "ns/id/{fingerprint}"\r\n')
                continue
            out.append(self.replies.get(line, f'510 Unrecognized command "{line}"\r\n'))
        return "".join(out)


class FakeTransport(Transport):
    """Transport handing out FakeConnections bound to one responder."""

    def __init__(
        self,
        responder: Callable[[list[str]], str] | None = None,
        refuse: bool = False,
        requires_line_pacing: bool = False,
    ) -> None:
        self.responder = responder or FakeTor()
        self.refuse = refuse
        self.requires_line_pacing = requires_line_pacing
        self.probes: list[SocketDescriptor] = []
        self.connections: list[FakeConnection] = []

    def probe(self, descriptor: SocketDescriptor, timeout: float) -> None:
        self.probes.append(descriptor)
        if self.refuse:
            raise ConnectionRefused(f"Cannot connect to {descriptor}: [Errno 111] refused")

    def connect(self, descriptor: SocketDescriptor) -> FakeConnection:
        conn = FakeConnection(self.responder)
        self.connections.append(conn)
        return conn

    @property
    def sessions(self) -> list[list[str]]:
        """Lines written on every non-PROTOCOLINFO connection."""
        return [c.written for c in self.connections if c.written[:1] != ["PROTOCOLINFO"]]


def read_until(conn: socket.socket, marker: bytes | None = None) -> bytes:
    """Read from a socket until marker was received or the peer closed."""
    data = b""
    while marker is None or marker not in data:
        chunk = conn.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


class ControlPortServer:
    """
    Unix-socket control port served from a thread.

    Accepted connections are handed to the handlers in order, one connection
    per handler. Whatever a handler returns is kept in ``received``.
    """

    def __init__(self, path: str, handlers: list[Callable[[socket.socket], bytes]]) -> None:
        self.handlers = handlers
        self.received: list[bytes] = []
        self.listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.listener.bind(path)
        self.listener.listen(len(handlers))
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self) -> None:
        for handler in self.handlers:
            conn, _ = self.listener.accept()
            with conn:
                self.received.append(handler(conn))

    def __enter__(self) -> "ControlPortServer":
        self.thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.thread.join(timeout=5)
        self.listener.close()


def drain(conn: socket.socket) -> bytes:
    """Handler for the connect probe: read until the client hangs up."""
    return read_until(conn)


def answer_protocolinfo(conn: socket.socket) -> bytes:
    """Handler answering PROTOCOLINFO with HASHEDPASSWORD."""
    data = read_until(conn, b"QUIT\r\n")
    conn.sendall((PROTOCOLINFO_PASSWORD + "250 closing connection\r\n").encode())
    return data


def answer_getconf_user(conn: socket.socket) -> bytes:
    """Handler accepting AUTHENTICATE, GETCONF User and QUIT."""
    data = read_until(conn, b"QUIT\r\n")
    conn.sendall(b"250 OK\r\n250 User=debian-tor\r\n250 closing connection\r\n")
    return data


def reject_authentication(conn: socket.socket) -> bytes:
    """Handler rejecting AUTHENTICATE and closing at once, like Tor does."""
    data = read_until(conn, b"\r\n")
    conn.sendall(b"515 Authentication failed: Password did not match\r\n")
    return data
