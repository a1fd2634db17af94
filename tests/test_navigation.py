"""Tests for the event bus, navigation coordinator and HTTP navigator."""
import httpx
import pytest

from revalidate.services.events import (
    TRANSITION_COMPLETE,
    TRANSITION_ERROR,
    TRANSITION_START,
    EventBus,
)
from revalidate.services.navigation import NavigationCoordinator
from revalidate.services.navigator import HttpNavigator


def page_payload(path: str, time: float = 1) -> dict:
    return {
        "path": path,
        "props": {"swr": {"expires": 0, "dedupingInterval": 10, "time": time}, "title": path},
        "revalidate": 5,
    }


def make_navigator(requests: list, fail: bool = False) -> HttpNavigator:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        if fail:
            return httpx.Response(500)
        path = request.url.path[len("/pages"):] or "/"
        return httpx.Response(200, json=page_payload(path, time=len(requests)))
    
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpNavigator("/home", "http://origin.test", client=client)


def test_event_bus_disposer():
    """Test that a disposer removes exactly its own registration."""
    bus = EventBus()
    received = []
    
    dispose = bus.subscribe("focus", lambda: received.append("a"))
    bus.subscribe("focus", lambda: received.append("b"))
    bus.emit("focus")
    
    dispose()
    dispose()
    bus.emit("focus")
    
    assert received == ["a", "b", "b"]
    assert bus.listener_count("focus") == 1


def test_coordinator_tracks_transitions():
    """Test that only transitions to another path count."""
    bus = EventBus()
    coordinator = NavigationCoordinator(bus, lambda: "/home")
    coordinator.mount()
    
    bus.emit(TRANSITION_START, "/home")
    assert coordinator.is_transitioning is False
    
    bus.emit(TRANSITION_START, "/about")
    assert coordinator.is_transitioning is True
    
    bus.emit(TRANSITION_COMPLETE, "/about")
    assert coordinator.is_transitioning is False
    
    bus.emit(TRANSITION_START, "/about")
    bus.emit(TRANSITION_ERROR, "/about")
    assert coordinator.is_transitioning is False


def test_coordinator_preempts_synchronously():
    """Test that preempt hooks run inside the start signal."""
    bus = EventBus()
    coordinator = NavigationCoordinator(bus, lambda: "/home")
    coordinator.mount()
    preempted = []
    dispose = coordinator.on_preempt(lambda: preempted.append(True))
    
    bus.emit(TRANSITION_START, "/about")
    assert preempted == [True]
    
    dispose()
    bus.emit(TRANSITION_START, "/contact")
    assert preempted == [True]


def test_coordinator_subscribes_once():
    """Test one registration per lifecycle signal, removed on unmount."""
    bus = EventBus()
    coordinator = NavigationCoordinator(bus, lambda: "/home")
    
    coordinator.mount()
    coordinator.mount()
    for event in (TRANSITION_START, TRANSITION_COMPLETE, TRANSITION_ERROR):
        assert bus.listener_count(event) == 1
        
    coordinator.unmount()
    for event in (TRANSITION_START, TRANSITION_COMPLETE, TRANSITION_ERROR):
        assert bus.listener_count(event) == 0
    assert coordinator.mounted is False


@pytest.mark.asyncio
async def test_replace_loads_page_and_signals():
    """Test that replace swaps the page between start and complete signals."""
    requests = []
    navigator = make_navigator(requests)
    signals = []
    pages = []
    navigator.events.subscribe(TRANSITION_START, lambda path: signals.append(("start", path)))
    navigator.events.subscribe(TRANSITION_COMPLETE, lambda path: signals.append(("complete", path)))
    navigator.on_page(pages.append)
    
    await navigator.replace("/about", scroll=False)
    
    assert requests == ["/pages/about"]
    assert signals == [("start", "/about"), ("complete", "/about")]
    assert navigator.path == "/about"
    assert navigator.page.props["title"] == "/about"
    assert navigator.scroll_reset is False
    assert [page.path for page in pages] == ["/about"]


@pytest.mark.asyncio
async def test_prefetch_fills_client_cache():
    """Test that a prefetched page is reused unless the cache is skipped."""
    requests = []
    navigator = make_navigator(requests)
    
    await navigator.prefetch("/home", skip_client_cache=True)
    assert navigator.path == "/home"
    assert navigator.page is None
    
    await navigator.replace("/home")
    assert len(requests) == 1
    
    await navigator.replace("/home", skip_client_cache=True)
    assert len(requests) == 2
    assert navigator.page.props["swr"]["time"] == 2


@pytest.mark.asyncio
async def test_replace_failure_signals_error():
    """Test that a failed load emits the error signal and re-raises."""
    navigator = make_navigator([], fail=True)
    errors = []
    navigator.events.subscribe(TRANSITION_ERROR, errors.append)
    
    with pytest.raises(httpx.HTTPStatusError):
        await navigator.replace("/about")
        
    assert errors == ["/about"]
    assert navigator.path == "/home"
