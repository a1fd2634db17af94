"""Pydantic schemas for page metadata, clock estimates and API payloads."""
from typing import Any, Callable, Dict, List, Optional, Union
from pydantic import BaseModel, Field


RefreshInterval = Union[float, Callable[[Dict[str, Any]], float], None]


class SwrMetadata(BaseModel):
    """Staleness metadata attached to a generated page."""
    expires: float = 0
    deduping_interval: float = Field(0, alias="dedupingInterval")
    time: float = 0
    
    class Config:
        """Pydantic config."""
        populate_by_name = True
        extra = "allow"


class FreshnessConfig(BaseModel):
    """
    Revalidation settings of one rendered page.
    
    Built from the ``swr`` block of the page props. Immutable; a new
    instance replaces the old one whenever new props arrive.
    """
    expires: Optional[float] = None
    deduping_interval: Optional[float] = Field(None, alias="dedupingInterval")
    refresh_interval: RefreshInterval = Field(0, alias="refreshInterval")
    revalidate_if_stale: bool = Field(True, alias="revalidateIfStale")
    revalidate_on_mount: bool = Field(True, alias="revalidateOnMount")
    revalidate_on_focus: bool = Field(True, alias="revalidateOnFocus")
    swr_path: Optional[str] = Field(None, alias="swrPath")
    time: float = 0
    
    class Config:
        """Pydantic config."""
        populate_by_name = True
        frozen = True
        extra = "ignore"
        arbitrary_types_allowed = True
        
    @classmethod
    def from_props(cls, props: Optional[Dict[str, Any]]) -> "FreshnessConfig":
        """Read the config from page props, falling back to defaults."""
        swr = (props or {}).get("swr") or {}
        return cls.model_validate(swr)


class ClockEstimate(BaseModel):
    """Client/server clock offset and round-trip latency, in milliseconds."""
    offset_ms: float
    latency_ms: float = Field(ge=0)
    is_first_measurement: bool = True
    
    class Config:
        """Pydantic config."""
        frozen = True


class ClockResponse(BaseModel):
    """Freshness probe response."""
    timestamp: float


class RegenerateRequest(BaseModel):
    """On-demand regeneration request."""
    path: str


class RegenerateResponse(BaseModel):
    """On-demand regeneration result."""
    revalidated: bool


class PageResponse(BaseModel):
    """A generated page as served to clients."""
    path: str
    props: Dict[str, Any]
    revalidate: Union[int, bool] = False


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    redis_connected: bool
    pages_registered: int = 0
    has_default_page: bool = False
    pending_regenerations: List[str] = []
    uptime_seconds: float
