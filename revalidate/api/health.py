"""Health check endpoint."""
import time
from fastapi import APIRouter
from revalidate.cache.redis import cache
from revalidate.models.schemas import HealthResponse
from revalidate.services.regenerate import regeneration_manager
from revalidate.services.static_props import pages

router = APIRouter()

START_TIME = time.time()


async def _redis_connected() -> bool:
    if not cache.redis:
        return False
    try:
        await cache.redis.ping()
    except Exception:
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Report whether the origin can serve and regenerate pages.
    
    Degraded when the page cache is unreachable (every request then
    regenerates) or when no page generator is registered.
    """
    redis_connected = await _redis_connected()
    pages_registered = len(pages)
    
    return HealthResponse(
        status="ok" if redis_connected and pages_registered else "degraded",
        redis_connected=redis_connected,
        pages_registered=pages_registered,
        has_default_page=pages.has_default,
        pending_regenerations=sorted(regeneration_manager.pending_regenerations),
        uptime_seconds=time.time() - START_TIME,
    )
