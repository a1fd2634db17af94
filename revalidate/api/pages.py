"""Page endpoint serving generated pages with incremental regeneration."""
from fastapi import APIRouter, HTTPException
from revalidate.cache.redis import cache, make_key
from revalidate.models.schemas import PageResponse
from revalidate.services.regenerate import regeneration_manager
from revalidate.services.static_props import normalize_path, pages

router = APIRouter()


@router.get("/pages/{path:path}", response_model=PageResponse)
async def get_page(path: str):
    """
    Get a generated page.
    
    Serves the cached page while it is fresh. A stale page is still served
    but triggers a background regeneration; a miss generates synchronously.
    
    Args:
        path: Page path
    """
    page_path = normalize_path(path)
    if pages.resolve(page_path) is None:
        raise HTTPException(status_code=404, detail="Page not found")
        
    cache_key = make_key("page", page_path)
    cached_page, needs_regeneration = await cache.get(cache_key)
    
    if cached_page is not None:
        if needs_regeneration:
            regeneration_manager.schedule_regeneration(page_path)
        return cached_page
    
    # Cache miss - generate now
    return await regeneration_manager.regenerate(page_path)
