"""Redis page cache with incremental-regeneration semantics."""
import json
import time
from typing import Optional, Any, Dict, Union
import redis.asyncio as redis
from revalidate.config import settings


class PageCache:
    """Redis-based store of generated pages, served stale while they regenerate."""
    
    def __init__(self):
        """Initialize Redis connection."""
        self.redis: Optional[redis.Redis] = None
        
    async def connect(self):
        """Establish Redis connection."""
        self.redis = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            decode_responses=True,
        )
        
    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self.redis = None
            
    async def get(self, key: str) -> tuple[Optional[Dict[str, Any]], bool]:
        """
        Get a cached page with stale-while-revalidate semantics.
        
        Args:
            key: Cache key
            
        Returns:
            Tuple of (page, needs_regeneration)
            - page: The cached page (or None if not found)
            - needs_regeneration: True if the page is past its revalidate
              period but within the stale grace period
        """
        if not self.redis:
            return None, False
            
        raw = await self.redis.get(key)
        if not raw:
            return None, False
            
        try:
            cached = json.loads(raw)
            generated_at = cached.get("generated_at", 0)
            revalidate = cached.get("revalidate")
            page = cached["page"]
        except (json.JSONDecodeError, KeyError, AttributeError):
            return None, False
            
        # Pages without a revalidate period never go stale
        if not revalidate:
            return page, False
            
        age = time.time() - generated_at
        if age <= revalidate:
            return page, False
            
        stale_max_age = revalidate * settings.stale_ttl_multiplier
        if age <= stale_max_age:
            return page, True
            
        # Too old, treat as miss
        return None, False
    
    async def set(self, key: str, page: Dict[str, Any], revalidate: Union[int, float, bool, None]):
        """
        Store a generated page with its generation timestamp.
        
        Args:
            key: Cache key
            page: Page payload
            revalidate: Revalidate period in seconds, or False for never
        """
        if not self.redis:
            return
            
        period = revalidate if not isinstance(revalidate, bool) else None
        cached = {
            "generated_at": time.time(),
            "revalidate": period,
            "page": page,
        }
        
        if period:
            # Expire at the end of the stale grace period
            expire = max(1, int(period * settings.stale_ttl_multiplier))
            await self.redis.setex(key, expire, json.dumps(cached))
        else:
            await self.redis.set(key, json.dumps(cached))
            
    async def delete(self, key: str):
        """Delete a cache entry."""
        if self.redis:
            await self.redis.delete(key)


# Global cache instance
cache = PageCache()


def make_key(*parts: str) -> str:
    """
    Create a namespaced cache key.
    
    Args:
        *parts: Key components
        
    Returns:
        Formatted cache key
    """
    return "revalidate:" + ":".join(parts)
