"""Serve an example page that regenerates every few seconds."""
import asyncio
import sys
from datetime import datetime, timezone
import uvicorn
from revalidate.main import app
from revalidate.services.static_props import StaticProps, pages


@pages.register_default
async def example_page(path: str) -> StaticProps:
    """Page showing when it was generated."""
    # Pretend regeneration takes a while
    await asyncio.sleep(0.5)
    return StaticProps(
        props={
            "path": path,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
        revalidate=5,
        swr={"refreshInterval": 0},
    )


if __name__ == "__main__":
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000
    uvicorn.run(app, host="0.0.0.0", port=port)
