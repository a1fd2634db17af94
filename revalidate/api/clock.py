"""Freshness probe endpoint used by clients to estimate clock offset."""
from fastapi import APIRouter
from revalidate.config import settings
from revalidate.models.schemas import ClockResponse
from revalidate.util.timing import now_ms

router = APIRouter()


@router.get(settings.swr_path, response_model=ClockResponse)
async def server_time():
    """Current server time in milliseconds."""
    return ClockResponse(timestamp=now_ms())
