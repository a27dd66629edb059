"""Pytest fixtures for servicegraph tests."""

import pytest

from servicegraph import Container, ContainerConfig, Token
from servicegraph.testing import LifecycleLog, make_service_class


@pytest.fixture
def container():
    """Provide a fresh container with lifecycle logging off."""
    return Container(ContainerConfig(lifecycle_logging=False))


@pytest.fixture
def log():
    """Provide a shared lifecycle log."""
    events = LifecycleLog()
    yield events
    events.clear()


@pytest.fixture
def tokens():
    """Provide a fresh set of tokens for the common scenario services."""
    class Tokens:
        LOGGER = Token("Logger")
        REPO = Token("Repo")
        CONN = Token("Conn")
        CACHE = Token("Cache")
    return Tokens


@pytest.fixture
def service_classes(log):
    """Provide tracked service classes sharing one lifecycle log."""
    return {
        name: make_service_class(name, log)
        for name in ("Logger", "Repo", "Conn", "Cache", "X", "Y", "Z")
    }
