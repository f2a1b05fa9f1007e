#!/usr/bin/env python3
"""Container health probe: GET http://localhost:$PORT/health, exit 0 on 200."""

import asyncio
import os
import sys

import aiohttp

DEFAULT_PORT = "3000"
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=5)


async def check(url: str) -> None:
    """Raise RuntimeError unless *url* answers 200."""
    async with aiohttp.ClientSession(timeout=REQUEST_TIMEOUT) as session:
        try:
            async with session.get(url) as resp:
                await resp.read()
                if resp.status != 200:
                    raise RuntimeError(f"received non-200 status code: {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RuntimeError(f"request to {url} failed: {e}") from e


def main() -> int:
    port = os.getenv("PORT") or DEFAULT_PORT
    url = f"http://localhost:{port}/health"
    try:
        asyncio.run(check(url))
    except RuntimeError as e:
        print(f"health check failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
