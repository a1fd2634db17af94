"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from revalidate.cache.redis import cache
from revalidate.config import settings
from revalidate.api import clock, health, isr, pages

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown.
    
    Establishes Redis connection on startup and closes it on shutdown.
    """
    # Startup
    await cache.connect()
    yield
    # Shutdown
    await cache.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Revalidate",
    description="Incrementally regenerated pages with client-side staleness revalidation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Adjust for production
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(clock.router, tags=["Clock"])
app.include_router(isr.router, prefix="/api", tags=["Regeneration"])
app.include_router(pages.router, tags=["Pages"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Revalidate",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "clock": settings.swr_path,
            "regenerate": "POST /api/isr",
            "page": "/pages/{path}",
        },
    }
