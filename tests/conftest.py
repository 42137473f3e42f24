"""Shared pytest fixtures for torctl tests."""

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest
from fixtures import COOKIE_BYTES

from torctl import output


@pytest.fixture(autouse=True)
def reset_output() -> Iterator[None]:
    """Keep verbosity settings from leaking between tests."""
    yield
    output.configure()


@pytest.fixture
def cookie_file(tmp_path: Path) -> Path:
    """A readable 32-byte control auth cookie."""
    path = tmp_path / "control_auth_cookie"
    path.write_bytes(COOKIE_BYTES)
    return path


@pytest.fixture
def control_path() -> Iterator[str]:
    """Path for a Unix control socket (kept short for the sun_path limit)."""
    with tempfile.TemporaryDirectory(prefix="torctl-") as tmp:
        yield os.path.join(tmp, "control")
