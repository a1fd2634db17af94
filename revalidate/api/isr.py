"""On-demand regeneration endpoint."""
import logging
from fastapi import APIRouter, HTTPException
from revalidate.models.schemas import RegenerateRequest, RegenerateResponse
from revalidate.services.regenerate import regeneration_manager
from revalidate.services.static_props import pages

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/isr", response_model=RegenerateResponse)
async def revalidate_page(request: RegenerateRequest):
    """
    Regenerate a page right away.
    
    Args:
        request: Body naming the page path
    """
    if pages.resolve(request.path) is None:
        raise HTTPException(status_code=404, detail="Page not found")
        
    try:
        await regeneration_manager.regenerate(request.path)
    except Exception as e:
        logger.error("Error revalidating %s: %s", request.path, e)
        raise HTTPException(status_code=500, detail="Error revalidating")
        
    return RegenerateResponse(revalidated=True)
