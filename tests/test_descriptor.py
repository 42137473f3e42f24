"""Tests for socket descriptor resolution."""

import os
import socket
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from torctl.control.descriptor import parse_address, parse_port, resolve_socket
from torctl.control.errors import InvalidAddress, InvalidPort, InvalidSocket
from torctl.control.models import TcpSocket, UnixSocket


@pytest.fixture
def unix_socket() -> Iterator[str]:
    """A bound Unix socket in a short temporary directory."""
    # Unix socket paths are limited to ~100 bytes, so avoid pytest's long tmp_path
    with tempfile.TemporaryDirectory(prefix="tc") as tmpdir:
        path = os.path.join(tmpdir, "control")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(path)
        try:
            yield path
        finally:
            sock.close()


class TestParsePort:
    """Tests for parse_port function."""

    @pytest.mark.parametrize("value,expected", [("1", 1), ("9051", 9051), ("65535", 65535)])
    def test_valid_ports(self, value: str, expected: int) -> None:
        """Test ports inside 1-65535 are accepted."""
        assert parse_port(value) == expected

    @pytest.mark.parametrize("value", ["0", "65536", "-1", "abc", "", "90 51"])
    def test_invalid_ports(self, value: str) -> None:
        """Test out-of-range and non-numeric ports are rejected."""
        with pytest.raises(InvalidPort):
            parse_port(value)


class TestParseAddress:
    """Tests for parse_address function."""

    @pytest.mark.parametrize("value", ["127.0.0.1", "0.0.0.0", "255.255.255.255", "10.1.2.3"])
    def test_valid_addresses(self, value: str) -> None:
        """Test dotted quads with octets in 0-255 are accepted."""
        assert parse_address(value) == value

    @pytest.mark.parametrize(
        "value", ["256.0.0.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "localhost", "::1", "1..2.3"]
    )
    def test_invalid_addresses(self, value: str) -> None:
        """Test malformed hosts are rejected."""
        with pytest.raises(InvalidAddress):
            parse_address(value)


class TestResolveSocket:
    """Tests for resolve_socket function."""

    def test_empty_input_means_autodiscovery(self) -> None:
        """Test empty input produces no descriptor."""
        assert resolve_socket("") is None
        assert resolve_socket(None) is None

    def test_bare_port(self) -> None:
        """Test a bare port defaults to localhost."""
        assert resolve_socket("9051") == TcpSocket("127.0.0.1", 9051)

    def test_address_and_port(self) -> None:
        """Test addr:port is split on the last colon."""
        assert resolve_socket("192.168.1.10:9151") == TcpSocket("192.168.1.10", 9151)

    def test_bad_port(self) -> None:
        """Test an out-of-range port fails with InvalidPort."""
        with pytest.raises(InvalidPort):
            resolve_socket("127.0.0.1:65536")

    def test_bad_address(self) -> None:
        """Test a malformed host fails with InvalidAddress."""
        with pytest.raises(InvalidAddress):
            resolve_socket("256.0.0.1:9051")

    def test_unix_socket_path(self, unix_socket: str) -> None:
        """Test an existing socket node is accepted with or without prefix."""
        assert resolve_socket(unix_socket) == UnixSocket(unix_socket)
        assert resolve_socket(f"unix:{unix_socket}") == UnixSocket(unix_socket)

    def test_missing_unix_socket(self, tmp_path: Path) -> None:
        """Test a non-existent path fails with InvalidSocket."""
        with pytest.raises(InvalidSocket):
            resolve_socket(str(tmp_path / "missing"))

    def test_regular_file_is_not_a_socket(self, tmp_path: Path) -> None:
        """Test a path that exists but is not a socket fails."""
        path = tmp_path / "torrc"
        path.write_text("ControlPort 9051\n")
        with pytest.raises(InvalidSocket):
            resolve_socket(f"unix:{path}")

    def test_unrecognized_form(self) -> None:
        """Test host names and other forms are rejected."""
        with pytest.raises(InvalidSocket):
            resolve_socket("localhost:9051")

    def test_descriptor_str(self) -> None:
        """Test descriptors render back to socket arguments."""
        assert str(TcpSocket("127.0.0.1", 9051)) == "127.0.0.1:9051"
        assert str(UnixSocket("/run/tor/control")) == "unix:/run/tor/control"
