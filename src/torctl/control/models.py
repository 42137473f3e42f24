"""
Data models for control sessions.

This module contains dataclasses for socket descriptors, authentication
state, parsed control replies and the per-invocation session config and
result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

# Status code of a positive completion reply
OK_STATUS = "250"

# End of reply line ("250 OK"), as opposed to mid ("250-") and data ("250+") lines
_FINAL_LINE_RE = re.compile(r"^\d{3} ")


@dataclass(frozen=True)
class UnixSocket:
    """Control socket on the local filesystem."""

    path: str

    def __str__(self) -> str:
        return f"unix:{self.path}"


@dataclass(frozen=True)
class TcpSocket:
    """Control port reachable over TCP."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


SocketDescriptor = UnixSocket | TcpSocket


class AuthMethod(Enum):
    """Authentication methods advertised in a PROTOCOLINFO reply."""

    NULL = "NULL"
    COOKIE = "COOKIE"
    SAFECOOKIE = "SAFECOOKIE"
    HASHEDPASSWORD = "HASHEDPASSWORD"


@dataclass(frozen=True)
class ProtocolInfoReply:
    """Parsed PROTOCOLINFO reply."""

    methods: frozenset[AuthMethod] = frozenset()
    cookie_file: str | None = None
    tor_version: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """Everything needed to build the AUTHENTICATE payload."""

    protocol_info: ProtocolInfoReply
    password: str | None = None

    @property
    def methods(self) -> frozenset[AuthMethod]:
        """Methods advertised by Tor."""
        return self.protocol_info.methods

    @property
    def cookie_file(self) -> str | None:
        """Cookie file path advertised by Tor."""
        return self.protocol_info.cookie_file


@dataclass(frozen=True)
class AuthPayload:
    """Token sent with AUTHENTICATE (hex cookie, quoted password or empty)."""

    token: str = ""
    method: AuthMethod | None = None

    @property
    def line(self) -> str:
        """The AUTHENTICATE command line."""
        if not self.token:
            return "AUTHENTICATE"
        return f"AUTHENTICATE {self.token}"


@dataclass(frozen=True)
class CommandReply:
    """A single status line of a control reply (code, separator, text)."""

    status_code: str
    separator: str  # " " ends a reply, "-" continues it, "+" opens a data block
    text: str
    data: tuple[str, ...] = ()  # body of a "+" data block

    @property
    def is_ok(self) -> bool:
        """Check if this line carries the positive completion code."""
        return self.status_code == OK_STATUS

    @property
    def is_final(self) -> bool:
        """Check if this line ends its reply."""
        return self.separator == " "

    @property
    def is_event(self) -> bool:
        """Check if this line is an asynchronous event (6xx)."""
        return self.status_code.startswith("6")

    def render(self) -> str:
        """Render the line (and its data block) as sent on the wire."""
        lines = [f"{self.status_code}{self.separator}{self.text}"]
        if self.separator == "+":
            lines.extend("." + d if d.startswith(".") else d for d in self.data)
            lines.append(".")
        return "\n".join(lines)


@dataclass(frozen=True)
class ReplyBlock:
    """All lines of the reply to one command."""

    lines: tuple[CommandReply, ...]

    @property
    def status_code(self) -> str:
        """Status code of the terminal line."""
        return self.lines[-1].status_code if self.lines else ""

    @property
    def is_ok(self) -> bool:
        """Check if the reply completed successfully."""
        return self.status_code == OK_STATUS

    @property
    def is_complete(self) -> bool:
        """Check if the reply was terminated before the connection closed."""
        return bool(self.lines) and self.lines[-1].is_final

    @property
    def message(self) -> str:
        """Text of the terminal line."""
        return self.lines[-1].text if self.lines else ""


@dataclass(frozen=True)
class SessionConfig:
    """Immutable configuration of one control session."""

    descriptor: SocketDescriptor
    commands: tuple[str, ...]
    password: str | None = None
    delay: float = 0.0  # seconds before each command
    wait: bool = False  # wait for operator confirmation before QUIT
    quiet: bool = False
    probe_timeout: float = 5.0


@dataclass(frozen=True)
class SessionResult:
    """Classified outcome of a control session."""

    raw: str
    blocks: tuple[ReplyBlock, ...]
    commands: tuple[str, ...] = ()
    events: tuple[CommandReply, ...] = ()
    ok_lines: int = 0
    success: bool = False

    @property
    def auth_reply(self) -> ReplyBlock | None:
        """Reply to AUTHENTICATE."""
        return self.blocks[0] if self.blocks else None

    @property
    def command_replies(self) -> tuple[ReplyBlock, ...]:
        """Replies to the batch commands, in command order."""
        return self.blocks[1 : 1 + len(self.commands)]

    @property
    def quit_reply(self) -> ReplyBlock | None:
        """Reply to QUIT, if the server answered it."""
        index = 1 + len(self.commands)
        return self.blocks[index] if len(self.blocks) > index else None

    @property
    def user_text(self) -> str:
        """
        Raw reply text shown to the operator.

        Everything Tor sent after the end line of the AUTHENTICATE reply,
        unparsed, so unrecognized lines and events are shown as received.
        """
        lines = self.raw.replace("\r\n", "\n").split("\n")
        for i, line in enumerate(lines):
            if _FINAL_LINE_RE.match(line) and not line.startswith("6"):
                return "\n".join(lines[i + 1 :]).rstrip("\n")
        return ""

    @property
    def exit_code(self) -> int:
        """Process exit code for this result."""
        return 0 if self.success else 1
