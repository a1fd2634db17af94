"""Shared fakes for the revalidation tests."""
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from revalidate.config import Settings
from revalidate.models.schemas import ClockEstimate, FreshnessConfig
from revalidate.services.clock import ClockSynchronizer
from revalidate.services.events import EventBus
from revalidate.services.navigation import NavigationCoordinator
from revalidate.services.refresh import RefreshScheduler

START = 1_000_000.0

RESOLVED = ClockEstimate(offset_ms=0, latency_ms=0, is_first_measurement=False)


class FakeClock:
    """Millisecond clock moved by hand."""
    
    def __init__(self, now: float = START):
        self.now = now
        
    def __call__(self) -> float:
        return self.now
    
    def advance(self, ms: float):
        self.now += ms


class FakeNavigator:
    """Navigation API recording every call."""
    
    def __init__(self, path: str = "/mock-path"):
        self.path = path
        self.events = EventBus()
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.replace_error = None
        
    async def replace(self, path: str, *, skip_client_cache: bool = False, scroll: bool = True):
        self.calls.append(("replace", path, {"skip_client_cache": skip_client_cache, "scroll": scroll}))
        if self.replace_error is not None:
            raise self.replace_error
        
    async def prefetch(self, path: str, *, skip_client_cache: bool = False):
        self.calls.append(("prefetch", path, {"skip_client_cache": skip_client_cache}))
        
    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


def make_config(**overrides) -> FreshnessConfig:
    fields = {"dedupingInterval": 0, "expires": 1, "revalidateIfStale": True}
    fields.update(overrides)
    return FreshnessConfig.model_validate(fields)


def make_scheduler(navigator, now, estimate: ClockEstimate = RESOLVED, **overrides) -> RefreshScheduler:
    navigation = NavigationCoordinator(navigator.events, lambda: navigator.path)
    navigation.mount()
    return RefreshScheduler(
        navigator,
        navigation,
        make_config(**overrides),
        lambda: estimate,
        now=now,
    )


def make_clock(now, timestamp=None, *, status: int = 200, config: Settings = None, requests=None):
    """Clock synchronizer answered by an in-process transport."""
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        server_time = now() if timestamp is None else timestamp
        return httpx.Response(status, json={"timestamp": server_time})
    
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ClockSynchronizer(
        "http://origin.test/swr",
        client=client,
        config=config or Settings(environment="production"),
        now=now,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def navigator():
    return FakeNavigator()


@pytest.fixture
def production():
    return Settings(environment="production")
