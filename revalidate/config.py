"""Configuration management for the application."""
import os
from typing import Optional
from pydantic_settings import BaseSettings


PRODUCTION_LIKE_ENVIRONMENTS = ("production", "preview")


class Settings(BaseSettings):
    """Application settings."""
    
    # Redis configuration
    redis_host: str = os.getenv("REDIS_HOST", "localhost")
    redis_port: int = int(os.getenv("REDIS_PORT", "6379"))
    redis_db: int = 0
    redis_password: Optional[str] = None
    
    # Serve stale pages up to 2x their revalidate period
    stale_ttl_multiplier: float = 2.0
    
    # Origin serving the pages and the freshness probe
    origin_base_url: str = "http://localhost:8000"
    swr_path: str = "/swr"
    
    # Deployment environment, revalidate-on-mount only runs in production-like ones
    environment: str = os.getenv("REVALIDATE_ENV", "development")
    
    # Clock estimate assumed until the probe resolves (milliseconds)
    default_clock_offset_ms: float = 60
    default_latency_ms: float = 500
    
    # On-mount backoff
    cdn_propagation_ms: float = 200
    cdn_propagation_max_factor: int = 16
    max_mount_attempts: int = 3
    
    # HTTP client settings
    http_timeout: int = 30
    
    # Application settings
    log_level: str = "INFO"
    
    @property
    def production_like(self) -> bool:
        """Whether the deployment behaves like production."""
        return self.environment in PRODUCTION_LIKE_ENVIRONMENTS
    
    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
