"""HTTP client navigating between pages served by the origin."""
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from revalidate.config import settings
from revalidate.models.schemas import PageResponse
from revalidate.services.events import (
    TRANSITION_COMPLETE,
    TRANSITION_ERROR,
    TRANSITION_START,
    EventBus,
)

logger = logging.getLogger(__name__)


class HttpNavigator:
    """
    Navigation API over the origin's page endpoint.

    Keeps a client-side page cache keyed by path. ``replace`` swaps the
    current page and emits the transition lifecycle signals on ``events``;
    ``prefetch`` only fills the cache.
    """

    def __init__(
        self,
        path: str,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        events: Optional[EventBus] = None,
    ):
        self.base_url = (base_url or settings.origin_base_url).rstrip("/")
        self.timeout = httpx.Timeout(settings.http_timeout)
        self.client = client
        self.events = events or EventBus()
        self.page: Optional[PageResponse] = None
        self.scroll_reset = False
        self._path = path
        self._client_cache: Dict[str, PageResponse] = {}
        self._page_listeners: List[Callable[[PageResponse], Any]] = []

    @property
    def path(self) -> str:
        return self._path

    def on_page(self, listener: Callable[[PageResponse], Any]) -> Callable[[], None]:
        """Register a callback receiving each page made current by ``replace``."""
        self._page_listeners.append(listener)

        def dispose():
            if listener in self._page_listeners:
                self._page_listeners.remove(listener)

        return dispose

    async def replace(self, path: str, *, skip_client_cache: bool = False, scroll: bool = True):
        """
        Make ``path`` the current page.

        Args:
            path: Page path to show
            skip_client_cache: Always fetch from the origin
            scroll: Whether the viewport should be reset to the top
        """
        self.events.emit(TRANSITION_START, path)
        try:
            page = await self._load(path, skip_client_cache)
        except Exception:
            self.events.emit(TRANSITION_ERROR, path)
            raise

        self._path = path
        self.page = page
        self.scroll_reset = scroll
        self.events.emit(TRANSITION_COMPLETE, path)
        for listener in list(self._page_listeners):
            listener(page)

    async def prefetch(self, path: str, *, skip_client_cache: bool = False):
        """Load ``path`` into the client cache without showing it."""
        await self._load(path, skip_client_cache)

    async def _load(self, path: str, skip_client_cache: bool) -> PageResponse:
        if not skip_client_cache and path in self._client_cache:
            return self._client_cache[path]
        page = await self._fetch(path)
        self._client_cache[path] = page
        return page

    async def _fetch(self, path: str) -> PageResponse:
        url = f"{self.base_url}/pages/{path.lstrip('/')}"
        if self.client is not None:
            response = await self.client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        response.raise_for_status()
        return PageResponse.model_validate(response.json())
