"""Client/server clock synchronization through a single timing probe."""
import asyncio
import logging
from typing import Callable, List, Optional

import httpx

from revalidate.config import Settings, settings as default_settings
from revalidate.models.schemas import ClockEstimate
from revalidate.util.timing import now_ms

logger = logging.getLogger(__name__)


def default_estimate(config: Settings = default_settings) -> ClockEstimate:
    """Estimate assumed before the probe resolves; the offset errs on the stale-safe side."""
    return ClockEstimate(
        offset_ms=config.default_clock_offset_ms,
        latency_ms=config.default_latency_ms,
        is_first_measurement=True,
    )


class ClockSynchronizer:
    """
    Estimates clock offset and latency against the origin.
    
    One probe per mount, no retries. The estimate is replaced exactly once,
    by whichever outcome (success or failure) resolves first.
    """
    
    def __init__(
        self,
        probe_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        config: Settings = default_settings,
        now: Callable[[], float] = now_ms,
    ):
        self.probe_url = probe_url or config.origin_base_url.rstrip("/") + config.swr_path
        self.client = client
        self.config = config
        self.now = now
        self.estimate = default_estimate(config)
        self._resolved = False
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[ClockEstimate], None]] = []
        
    @property
    def resolved(self) -> bool:
        return self._resolved
    
    def on_resolved(self, listener: Callable[[ClockEstimate], None]) -> Callable[[], None]:
        """Register a callback receiving the estimate once the probe resolves."""
        self._listeners.append(listener)
        
        def dispose():
            if listener in self._listeners:
                self._listeners.remove(listener)
                
        return dispose
    
    def start(self) -> asyncio.Task:
        """Launch the probe on the running loop; later calls return the same task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.synchronize())
        return self._task
    
    def cancel(self):
        """Abandon an outstanding probe and drop the listeners."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._listeners.clear()
        
    async def synchronize(self) -> ClockEstimate:
        """
        Probe the origin once and resolve the estimate.
        
        Returns:
            The resolved estimate (the existing one if already resolved)
        """
        if self._resolved:
            return self.estimate
        
        sent_at = self.now()
        server_time: Optional[float] = None
        try:
            server_time = await self._probe()
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
            if not self.config.production_like:
                logger.warning("Clock probe to %s failed: %s", self.probe_url, e)
        received_at = self.now()
        
        offset = received_at - server_time if server_time else 0
        latency = max(0.0, received_at - sent_at)
        return self._resolve(ClockEstimate(
            offset_ms=offset,
            latency_ms=latency,
            is_first_measurement=False,
        ))
        
    async def _probe(self) -> Optional[float]:
        if self.client is not None:
            response = await self.client.get(self.probe_url)
        else:
            timeout = httpx.Timeout(self.config.http_timeout)
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(self.probe_url)
        response.raise_for_status()
        timestamp = response.json().get("timestamp")
        return float(timestamp) if timestamp else None
    
    def _resolve(self, estimate: ClockEstimate) -> ClockEstimate:
        if self._resolved:
            return self.estimate
        self._resolved = True
        self.estimate = estimate
        logger.debug(
            "Clock resolved: offset=%.1fms latency=%.1fms",
            estimate.offset_ms,
            estimate.latency_ms,
        )
        for listener in list(self._listeners):
            listener(estimate)
        return estimate
