"""
Authentication negotiation.

Before a session, Tor is asked which authentication methods it accepts with a
short PROTOCOLINFO exchange on its own connection:

    250-PROTOCOLINFO 1
    250-AUTH METHODS=COOKIE,SAFECOOKIE COOKIEFILE="/run/tor/control.authcookie"
    250-VERSION Tor="0.4.8.10"
    250 OK

The reply decides the AUTHENTICATE payload: a hex dump of the cookie file, a
quoted password, or nothing at all.
"""

from __future__ import annotations

import os
import re

from torctl import output
from torctl.control.errors import AuthNotConfigured
from torctl.control.models import (
    AuthContext,
    AuthMethod,
    AuthPayload,
    ProtocolInfoReply,
    SocketDescriptor,
)
from torctl.control.reply import parse_reply_lines
from torctl.control.transport import HexCodec, Transport

# KEY=value or KEY="quoted \"value\""
_FIELD_RE = re.compile(r'([A-Za-z]+)=("(?:[^"\\]|\\.)*"|\S+)')


def _unquote(value: str) -> str:
    """Strip quotes and carriage returns from a QuotedString."""
    value = value.strip().rstrip("\r")
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _parse_fields(text: str) -> dict[str, str]:
    return {key.upper(): value for key, value in _FIELD_RE.findall(text)}


def parse_protocolinfo(raw: str) -> ProtocolInfoReply:
    """
    Parse a PROTOCOLINFO reply.

    Args:
        raw: Raw reply text (may include the QUIT reply)

    Returns:
        ProtocolInfoReply with advertised methods, cookie file and Tor version
    """
    methods: set[AuthMethod] = set()
    cookie_file: str | None = None
    tor_version: str | None = None

    lines, _ = parse_reply_lines(raw)
    for line in lines:
        if line.text.startswith("AUTH "):
            fields = _parse_fields(line.text[len("AUTH ") :])
            for token in fields.get("METHODS", "").split(","):
                token = token.strip().upper()
                if not token:
                    continue
                try:
                    methods.add(AuthMethod(token))
                except ValueError:
                    output.debug(f"Ignoring unknown auth method {token}")
            if "COOKIEFILE" in fields:
                cookie_file = _unquote(fields["COOKIEFILE"])

        elif line.text.startswith("VERSION "):
            fields = _parse_fields(line.text[len("VERSION ") :])
            if "TOR" in fields:
                tor_version = _unquote(fields["TOR"])

    return ProtocolInfoReply(
        methods=frozenset(methods),
        cookie_file=cookie_file or None,
        tor_version=tor_version,
    )


def query_protocolinfo(transport: Transport, descriptor: SocketDescriptor) -> ProtocolInfoReply:
    """
    Ask Tor for its authentication methods on a dedicated connection.

    Raises:
        ConnectionRefused: If the control socket is unreachable
    """
    output.explain("Asking Tor which authentication methods it accepts (PROTOCOLINFO)")
    with transport.connect(descriptor) as conn:
        conn.write_line("PROTOCOLINFO")
        conn.write_line("QUIT")
        raw = conn.read_all()

    info = parse_protocolinfo(raw)
    methods = ",".join(sorted(m.value for m in info.methods)) or "none"
    output.verbose(f"Auth methods: {methods}")
    if info.cookie_file:
        output.verbose(f"Cookie file: {info.cookie_file}")
    if info.tor_version:
        output.verbose(f"Tor version: {info.tor_version}")
    return info


def read_cookie(path: str | None) -> bytes | None:
    """Read the whole cookie file, or return None if it is not readable."""
    if not path or not os.access(path, os.R_OK):
        return None
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        output.verbose(f"Cannot read cookie file {path}: {e}")
        return None


def build_auth_payload(context: AuthContext, codec: HexCodec) -> AuthPayload:
    """
    Select the authentication method and build the AUTHENTICATE payload.

    Methods are tried in this order: cookie (when the cookie file is readable),
    then password (when one was supplied). SAFECOOKIE is never used. When
    nothing applies the payload is empty and Tor will reject AUTHENTICATE.

    Args:
        context: PROTOCOLINFO reply plus the caller's password
        codec: Hex codec for the cookie token

    Returns:
        AuthPayload

    Raises:
        AuthNotConfigured: If Tor advertises only the NULL method
    """
    methods = context.methods

    if methods == frozenset({AuthMethod.NULL}):
        raise AuthNotConfigured(
            "Tor's control port has no authentication configured. "
            "Enable 'CookieAuthentication 1' or set 'HashedControlPassword' in torrc."
        )

    if AuthMethod.COOKIE in methods:
        cookie = read_cookie(context.cookie_file)
        if cookie is not None:
            output.debug(f"Using {len(cookie)}-byte cookie from {context.cookie_file}")
            return AuthPayload(codec.encode(cookie), AuthMethod.COOKIE)

    if AuthMethod.HASHEDPASSWORD in methods and context.password is not None:
        output.debug("Using password authentication")
        return AuthPayload(f'"{context.password}"', AuthMethod.HASHEDPASSWORD)

    if AuthMethod.SAFECOOKIE in methods:
        output.verbose("SAFECOOKIE authentication is not supported")
    output.verbose("No usable authentication method found")
    return AuthPayload()


def negotiate(
    transport: Transport,
    descriptor: SocketDescriptor,
    password: str | None,
    codec: HexCodec,
) -> AuthPayload:
    """Run PROTOCOLINFO and build the AUTHENTICATE payload."""
    info = query_protocolinfo(transport, descriptor)
    return build_auth_payload(AuthContext(info, password), codec)
