"""Shared pytest fixtures for wagate tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from wagate.sessions.registry import SessionRegistry  # noqa: E402

from .fakes import FakeWacap, RecordingChannel  # noqa: E402


@pytest.fixture
def registry():
    """Fresh registry per test - no shared status map."""
    return SessionRegistry()


@pytest.fixture
def wacap():
    return FakeWacap()


@pytest.fixture
def channel():
    return RecordingChannel()
