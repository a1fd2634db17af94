"""Generation-time transform attaching staleness metadata to static pages."""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from revalidate.models.schemas import PageResponse, SwrMetadata
from revalidate.util.timing import now_ms, timer

logger = logging.getLogger(__name__)


@dataclass
class StaticProps:
    """What a page generator returns."""
    props: Dict[str, Any]
    revalidate: Union[int, float, bool, None] = None
    swr: Dict[str, Any] = field(default_factory=dict)


PageGenerator = Callable[[str], Awaitable[StaticProps]]
RevalidatingGenerator = Callable[[str], Awaitable[PageResponse]]


class PageNotFound(KeyError):
    """No generator is registered for the path."""


def normalize_path(path: str) -> str:
    return "/" + path.strip("/")


def get_static_props_revalidate(generator: PageGenerator) -> RevalidatingGenerator:
    """
    Wrap a page generator so its output carries ``swr`` metadata.
    
    ``expires`` leaves slack for two regeneration periods past the end of
    generation, ``dedupingInterval`` is the time generation took (plus any
    extra requested by the page) and ``time`` is when generation started.
    
    Args:
        generator: Async callable producing ``StaticProps`` for a path
        
    Returns:
        Async callable producing a ``PageResponse`` for a path
    """
    async def generate(path: str) -> PageResponse:
        async with timer(f"generate {path}") as watch:
            result = await generator(path)
        start = watch.started_at
        now = now_ms()
        duration = now - start
        
        swr = dict(result.swr or {})
        revalidate_f = swr.pop("revalidate_f", None)
        extra_deduping = swr.pop("dedupingInterval", None) or 0
        
        period = result.revalidate
        periodic = isinstance(period, (int, float)) and not isinstance(period, bool) and period != 0
        expires = (period * 1000 + now) * 2 - start if periodic else 0
        
        if revalidate_f:
            revalidate = revalidate_f
        elif periodic:
            revalidate = math.floor(duration / 1000 + period)
        else:
            revalidate = False
            
        fields = {"expires": expires, "dedupingInterval": duration + extra_deduping, "time": start}
        fields.update(swr)
        metadata = SwrMetadata.model_validate(fields)
        props = {"swr": metadata.model_dump(by_alias=True), **result.props}
        return PageResponse(path=path, props=props, revalidate=revalidate)
    
    return generate


class PageRegistry:
    """Paths mapped to revalidating page generators."""
    
    def __init__(self):
        self._pages: Dict[str, RevalidatingGenerator] = {}
        self._default: Optional[RevalidatingGenerator] = None
        
    def register(self, path: str, generator: Optional[PageGenerator] = None):
        """
        Register a generator for ``path``; usable as a decorator.
        
        Args:
            path: Page path
            generator: Async callable producing ``StaticProps``
        """
        def decorator(func: PageGenerator) -> PageGenerator:
            self._pages[normalize_path(path)] = get_static_props_revalidate(func)
            return func
        
        if generator is not None:
            return decorator(generator)
        return decorator
    
    def register_default(self, generator: PageGenerator) -> PageGenerator:
        """Register the generator used for paths without their own."""
        self._default = get_static_props_revalidate(generator)
        return generator
    
    def __len__(self) -> int:
        return len(self._pages) + (1 if self._default is not None else 0)
    
    @property
    def has_default(self) -> bool:
        return self._default is not None
    
    def resolve(self, path: str) -> Optional[RevalidatingGenerator]:
        return self._pages.get(normalize_path(path), self._default)
    
    async def generate(self, path: str) -> PageResponse:
        """Generate the page at ``path``."""
        path = normalize_path(path)
        generator = self.resolve(path)
        if generator is None:
            raise PageNotFound(path)
        return await generator(path)
    
    def clear(self):
        self._pages.clear()
        self._default = None


# Global page registry
pages = PageRegistry()
