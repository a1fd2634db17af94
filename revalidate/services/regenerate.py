"""Background regeneration of stale pages."""
import asyncio
import logging
from revalidate.cache.redis import PageCache, cache, make_key
from revalidate.models.schemas import PageResponse
from revalidate.services.static_props import PageRegistry, normalize_path, pages

logger = logging.getLogger(__name__)


class RegenerationManager:
    """Regenerates pages and keeps at most one background regeneration per path."""
    
    def __init__(self, registry: PageRegistry = pages, page_cache: PageCache = cache):
        """Initialize regeneration manager."""
        self.registry = registry
        self.cache = page_cache
        self.pending_regenerations = set()
        
    async def regenerate(self, path: str) -> PageResponse:
        """
        Generate ``path`` now and store the result.
        
        Args:
            path: Page path
            
        Returns:
            The freshly generated page
        """
        path = normalize_path(path)
        page = await self.registry.generate(path)
        await self.cache.set(make_key("page", path), page.model_dump(), page.revalidate)
        return page
    
    def schedule_regeneration(self, path: str):
        """
        Schedule a background regeneration for a stale page.
        
        Args:
            path: Page path
        """
        path = normalize_path(path)
        # Avoid duplicate regeneration tasks
        if path in self.pending_regenerations:
            return
            
        self.pending_regenerations.add(path)
        asyncio.create_task(self._do_regenerate(path))
        
    async def _do_regenerate(self, path: str):
        """Execute background regeneration."""
        try:
            await self.regenerate(path)
        except Exception as e:
            logger.error("Error regenerating page %s: %s", path, e)
        finally:
            self.pending_regenerations.discard(path)


# Global regeneration manager
regeneration_manager = RegenerationManager()
