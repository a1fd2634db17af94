"""Timing utilities."""
import logging
import time
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Current wall-clock time in milliseconds."""
    return time.time() * 1000


class Stopwatch:
    """Elapsed time of a timed block, in milliseconds."""
    
    def __init__(self, started_at: float):
        self.started_at = started_at
        self.elapsed_ms = 0.0


@asynccontextmanager
async def timer(label: str):
    """
    Context manager for timing async operations.
    
    Args:
        label: Description of the operation
        
    Yields:
        Stopwatch whose ``elapsed_ms`` is set when the block exits
    """
    watch = Stopwatch(now_ms())
    try:
        yield watch
    finally:
        watch.elapsed_ms = now_ms() - watch.started_at
        logger.debug("[TIMING] %s: %.3fs", label, watch.elapsed_ms / 1000)
