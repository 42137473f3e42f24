"""
Control socket autodiscovery.

When no socket is given, Tor's own configuration is inspected for the first
``ControlPort`` or ``ControlSocket`` directive. Config files are located from
the service manager's unit files, from ``tor --verify-config`` output and from
well-known default paths. Everything here is best-effort: any failure falls
through to the default control port 127.0.0.1:9051.
"""

from __future__ import annotations

import re
import shlex
import subprocess
from pathlib import Path

from torctl import output
from torctl.control.descriptor import default_socket, resolve_socket
from torctl.control.errors import TorctlError
from torctl.control.models import SocketDescriptor

SERVICE_DIRS = [
    Path("/etc/systemd/system"),
    Path("/lib/systemd/system"),
    Path("/usr/lib/systemd/system"),
]
SERVICE_NAMES = ["tor@default.service", "tor.service"]

DEFAULT_TORRC_PATHS = [
    Path("/etc/tor/torrc"),
    Path("/usr/local/etc/tor/torrc"),
]

# Options on a tor command line that name a config file
_TORRC_OPTIONS = {"-f", "--torrc-file", "--defaults-torrc"}

# tor --verify-config: 'Read configuration file "/etc/tor/torrc".'
_READ_CONFIG_RE = re.compile(r'Read configuration file "([^"]+)"')

_DIRECTIVES = {"controlport", "controlsocket"}

# Directive values that do not name a reachable socket
_UNDIALLABLE = {"0", "auto"}


class TorConfigLocator:
    """Locates Tor configuration files on this host."""

    def __init__(
        self,
        service_dirs: list[Path] | None = None,
        default_paths: list[Path] | None = None,
        tor_binary: str = "tor",
        timeout: float = 10.0,
    ) -> None:
        self.service_dirs = SERVICE_DIRS if service_dirs is None else service_dirs
        self.default_paths = DEFAULT_TORRC_PATHS if default_paths is None else default_paths
        self.tor_binary = tor_binary
        self.timeout = timeout

    def locate(self) -> list[Path]:
        """
        Return candidate config files in scan order, without duplicates.

        Returns:
            Paths from service files, then ``tor --verify-config``, then defaults
        """
        candidates = self.from_service_files() + self.from_verify_config() + self.default_paths
        seen: set[Path] = set()
        paths = []
        for path in candidates:
            if path not in seen:
                seen.add(path)
                paths.append(path)
        return paths

    def from_service_files(self) -> list[Path]:
        """Collect torrc paths passed on ExecStart lines of tor's unit files."""
        paths: list[Path] = []
        for service_dir in self.service_dirs:
            for name in SERVICE_NAMES:
                unit = service_dir / name
                try:
                    content = unit.read_text()
                except OSError:
                    continue
                output.debug(f"Reading service file {unit}")
                for line in content.splitlines():
                    line = line.strip()
                    if line.startswith("ExecStart="):
                        paths.extend(parse_torrc_arguments(line.removeprefix("ExecStart=")))
        return paths

    def from_verify_config(self) -> list[Path]:
        """Ask tor which config files it reads."""
        try:
            result = subprocess.run(
                [self.tor_binary, "--verify-config"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            output.verbose(f"Could not run {self.tor_binary} --verify-config: {e}")
            return []

        return [Path(m) for m in _READ_CONFIG_RE.findall(result.stdout + result.stderr)]


def parse_torrc_arguments(command_line: str) -> list[Path]:
    """
    Extract config file paths from a tor command line.

    Example:
        /usr/bin/tor --defaults-torrc /usr/share/tor/tor-service-defaults-torrc -f /etc/tor/torrc
        -> [/usr/share/tor/tor-service-defaults-torrc, /etc/tor/torrc]
    """
    try:
        words = shlex.split(command_line)
    except ValueError:
        return []

    paths = []
    for option, value in zip(words, words[1:]):
        if option in _TORRC_OPTIONS:
            paths.append(Path(value))
    return paths


def parse_control_directive(line: str) -> str | None:
    """
    Parse a torrc line into a socket argument for the resolver.

    Returns:
        ``[unix:]path`` or ``[addr:]port`` string, or None if the line is not a
        dialable ControlPort/ControlSocket directive
    """
    line = line.split("#", 1)[0].strip()
    parts = line.split(None, 1)
    if len(parts) != 2 or parts[0].lower() not in _DIRECTIVES:
        return None

    keyword = parts[0].lower()
    value = parts[1].strip()
    # ControlPort unix:"/path with space" GroupWritable
    if value.startswith('unix:"') or value.startswith('"'):
        prefix, _, rest = value.partition('"')
        value = prefix + rest.split('"', 1)[0]
    else:
        value = value.split()[0]

    if value.lower() in _UNDIALLABLE:
        return None

    if keyword == "controlsocket" and not value.startswith("unix:"):
        value = f"unix:{value}"
    return value


def find_control_directive(paths: list[Path]) -> str | None:
    """
    Find the first ControlPort/ControlSocket value in the given files.

    Unreadable files are skipped.
    """
    for path in paths:
        try:
            content = path.read_text()
        except (OSError, UnicodeDecodeError):
            output.debug(f"Skipping unreadable config file {path}")
            continue

        for line in content.splitlines():
            value = parse_control_directive(line)
            if value is not None:
                output.verbose(f"Found control socket {value} in {path}")
                return value
    return None


def discover_socket(locator: TorConfigLocator | None = None) -> SocketDescriptor:
    """
    Find Tor's control socket from its configuration.

    Args:
        locator: Config file locator (system default if None)

    Returns:
        Discovered descriptor, or 127.0.0.1:9051 if nothing usable is found
    """
    output.explain("Looking for Tor's control socket in its configuration files")
    if locator is None:
        locator = TorConfigLocator()

    value = find_control_directive(locator.locate())
    if value is not None:
        try:
            descriptor = resolve_socket(value)
        except TorctlError as e:
            output.verbose(f"Ignoring configured control socket: {e}")
        else:
            if descriptor is not None:
                return descriptor

    descriptor = default_socket()
    output.verbose(f"Using default control socket {descriptor}")
    return descriptor
