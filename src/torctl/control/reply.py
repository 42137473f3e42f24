"""
Control reply parsing and session classification.

Reply lines have the form (control-spec section 2.3):

    250-PROTOCOLINFO 1          mid reply line
    250+circuit-status=         data reply line, body follows up to "."
    1 BUILT $AAAA~relay1,...
    .
    250 OK                      end of reply line
    650 CIRC 1 BUILT ...        asynchronous event
"""

from __future__ import annotations

import re

from torctl import output
from torctl.control.models import CommandReply, ReplyBlock, SessionResult

# Number of positive completion lines in a successful minimal session:
# AUTHENTICATE, the command's terminal line and QUIT
EXPECTED_OK_LINES = 3

_STATUS_LINE_RE = re.compile(r"^(\d{3})([ +-])(.*)$")


def parse_reply_lines(raw: str) -> tuple[list[CommandReply], list[CommandReply]]:
    """
    Parse raw reply text into status lines.

    Args:
        raw: Everything read from the connection

    Returns:
        Tuple of (reply lines, asynchronous event lines)
    """
    lines = raw.replace("\r\n", "\n").split("\n")
    replies: list[CommandReply] = []
    events: list[CommandReply] = []

    i = 0
    while i < len(lines):
        line = lines[i].rstrip("\r")
        i += 1
        if not line:
            continue

        match = _STATUS_LINE_RE.match(line)
        if match is None:
            output.debug(f"Ignoring malformed reply line: {line!r}")
            continue

        status_code, separator, text = match.groups()
        data: list[str] = []
        if separator == "+":
            # Data block ends with a lone "."; leading dots are escaped by doubling
            while i < len(lines):
                body_line = lines[i].rstrip("\r")
                i += 1
                if body_line == ".":
                    break
                data.append(body_line[1:] if body_line.startswith("..") else body_line)

        reply = CommandReply(status_code, separator, text, tuple(data))
        if reply.is_event:
            events.append(reply)
        else:
            replies.append(reply)

    return replies, events


def group_replies(lines: list[CommandReply]) -> list[ReplyBlock]:
    """
    Group status lines into one block per reply.

    A block ends at a line with a space separator. Lines left over when the
    connection closed form a final, incomplete block.
    """
    blocks: list[ReplyBlock] = []
    current: list[CommandReply] = []
    for line in lines:
        current.append(line)
        if line.is_final:
            blocks.append(ReplyBlock(tuple(current)))
            current = []
    if current:
        blocks.append(ReplyBlock(tuple(current)))
    return blocks


def count_ok_lines(lines: list[CommandReply]) -> int:
    """Count status lines carrying the positive completion code."""
    return sum(1 for line in lines if line.is_ok)


def classify(raw: str, commands: tuple[str, ...] = ()) -> SessionResult:
    """
    Classify a fully drained session reply.

    The session succeeded iff exactly three status lines carry code 250. A
    batch of several commands, or a reply made of several 250 lines (such as
    a multi-key GETINFO), yields more and is reported as a failure even when
    every command succeeded.

    Args:
        raw: Raw text of all replies (AUTHENTICATE, commands, QUIT)
        commands: The command batch, used to map replies to commands

    Returns:
        SessionResult
    """
    lines, events = parse_reply_lines(raw)
    ok_lines = count_ok_lines(lines)
    output.debug(f"Parsed {len(lines)} reply lines, {ok_lines} with status 250")

    return SessionResult(
        raw=raw,
        blocks=tuple(group_replies(lines)),
        commands=commands,
        events=tuple(events),
        ok_lines=ok_lines,
        success=ok_lines == EXPECTED_OK_LINES,
    )
