"""
Pytest configuration for castnet tests.

Configures pytest-asyncio markers and provides shared socket helpers.
"""

import asyncio
import socket
import time
from typing import Callable

import pytest

from castnet.env import Env
from castnet.errors import JoinError
from castnet.logging import LoggingConfig
from castnet.multicast import MulticastEndpoint


TEST_GROUP = "239.1.1.1"


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="error")
    yield
    config.update(log_level="error")


@pytest.fixture
def find_free_port() -> Callable[[], int]:
    def find() -> int:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            probe.bind(("", 0))
            return probe.getsockname()[1]

    return find


@pytest.fixture
def test_env() -> Env:
    return Env(
        CASTNET_RECEIVE_POLL_INTERVAL="0.05s",
        CASTNET_LOG_LEVEL="error",
    )


@pytest.fixture
def multicast_interface(find_free_port) -> str:
    """
    Interface address the host can join TEST_GROUP with. Tests that need
    a real multicast membership are skipped when there is none.
    """
    for interface in ("127.0.0.1", "0.0.0.0"):
        try:
            endpoint = MulticastEndpoint.create(
                interface,
                TEST_GROUP,
                find_free_port(),
            )

        except JoinError:
            continue

        endpoint.close()
        return interface

    pytest.skip("host cannot join a multicast group")


@pytest.fixture
def wait_for() -> Callable:
    async def wait(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            if predicate():
                return True

            await asyncio.sleep(0.01)

        return predicate()

    return wait
