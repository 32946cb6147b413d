#!/usr/bin/env python3
"""Pytest fixtures for miio-cli tests.

Provides a device token, a fake UDP device on localhost, matching
endpoint and retry policy, and a sleep recorder for retry delays.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from conftest_device import FakeDevice
from miiocli.endpoint import DeviceEndpoint, RetryPolicy

TOKEN_HEX = "0123456789abcdef0123456789abcdef"


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def token() -> bytes:
    """Return the 16-byte test token."""
    return bytes.fromhex(TOKEN_HEX)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    """Create a fresh SleepRecorder."""
    return SleepRecorder()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with short timeouts suitable for localhost tests."""
    return RetryPolicy(attempts=3, delay=0.01, timeout=0.2)


@pytest_asyncio.fixture
async def fake_device(token: bytes) -> AsyncGenerator[FakeDevice, None]:
    """Start a FakeDevice on an ephemeral localhost port."""
    loop = asyncio.get_running_loop()
    transport, device = await loop.create_datagram_endpoint(
        lambda: FakeDevice(token),
        local_addr=("127.0.0.1", 0),
    )
    yield device
    transport.close()


@pytest.fixture
def device_endpoint(fake_device: FakeDevice, token: bytes) -> DeviceEndpoint:
    """Endpoint pointing at the fake device."""
    return DeviceEndpoint(address="127.0.0.1", token=token, port=fake_device.port)
