"""Exceptions raised by the control session engine."""


class TorctlError(Exception):
    """Base class for all torctl errors."""


class InvalidSocket(TorctlError):
    """Socket argument is neither a usable Unix socket nor a TCP port."""


class InvalidPort(TorctlError):
    """TCP port is not an integer in 1-65535."""


class InvalidAddress(TorctlError):
    """TCP host is not an IPv4 dotted quad."""


class ConnectionRefused(TorctlError):
    """Control socket is unreachable."""


class AuthNotConfigured(TorctlError):
    """Tor advertises no authentication method (NULL only)."""


class AuthFailed(TorctlError):
    """No usable credential was found or Tor rejected AUTHENTICATE."""


class MissingDependency(TorctlError):
    """The environment lacks a capability the session needs."""
