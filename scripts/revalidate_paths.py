"""Script to regenerate pages on demand through the origin."""
import asyncio
import sys
import httpx
from revalidate.config import settings


async def revalidate_path(client: httpx.AsyncClient, path: str):
    """Ask the origin to regenerate one page."""
    print(f"Revalidating: {path}")
    try:
        response = await client.post("/api/isr", json={"path": path})
        response.raise_for_status()
        print(f"  ✓ Regenerated {path}")
    except httpx.HTTPError as e:
        print(f"  ✗ Failed to regenerate {path}: {e}")


async def main(paths: list[str]):
    """Main revalidation function."""
    timeout = httpx.Timeout(settings.http_timeout)
    async with httpx.AsyncClient(base_url=settings.origin_base_url, timeout=timeout) as client:
        for path in paths:
            await revalidate_path(client, path)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python revalidate_paths.py <path1> [path2] ...")
        sys.exit(1)
        
    paths = sys.argv[1:]
    asyncio.run(main(paths))
