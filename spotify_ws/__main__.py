#!/usr/bin/env python3
"""
spotify-ws entry point.

    python -m spotify_ws        (or the ``spotify-ws`` console script)

Reads configuration from the environment / .env, then serves until SIGINT
or SIGTERM.  Exits with status 1 if required settings are missing.
"""

import asyncio
import logging
import sys

from .errors import ConfigError
from .lib.config import load_config
from .server import NowPlayingServer

logger = logging.getLogger("spotify-ws")


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    logger.info("Starting spotify-ws on port %d (%s mode)", config.port,
                "endpoint" if config.endpoint_mode else "direct")

    try:
        asyncio.run(NowPlayingServer(config).run())
    except Exception:
        logger.exception("Server runtime error")
        sys.exit(1)


if __name__ == "__main__":
    main()
