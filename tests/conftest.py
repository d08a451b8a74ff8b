# Test configuration
import os
import random

import httpx
import pytest

# Test environment variables
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_FORMAT_TYPE", "simple")
os.environ.setdefault("REAPER_ENABLED", "false")

from service_registry.main import create_app  # noqa: E402
from service_registry.registry import Registry  # noqa: E402
from service_registry.types import ServiceIdentity  # noqa: E402

BASE_URL = "http://registry.test"


class FakeClock:
    """Manually advanced time source, in epoch seconds"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return Registry(clock=clock, rng=random.Random(1234))


@pytest.fixture
def search_v1():
    return ServiceIdentity("search", "v1")


@pytest.fixture
def app(clock):
    return create_app(clock=clock, rng=random.Random(1234), reaper_enabled=False)


@pytest.fixture
async def http_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client
