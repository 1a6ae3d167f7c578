"""Shared fixtures for poolparty tests."""

import pytest

from poolparty.pool import PoolConfig
from poolparty.providers import CappedEndpoint, InMemoryProvider


class FakeTime:
    """Manual wall clock; sleeping advances it instantly."""

    def __init__(self, start_ms: float = 0.0):
        self.now = start_ms
        self.sleeps = []

    def now_ms(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds * 1000


@pytest.fixture
def config():
    return PoolConfig.for_testing()


@pytest.fixture
def endpoint(config):
    return CappedEndpoint(capacity=config.max_slots)


@pytest.fixture
def provider(endpoint):
    return InMemoryProvider(endpoint, owner="local")


@pytest.fixture
def fake_time():
    return FakeTime(start_ms=1_000_000.0)
