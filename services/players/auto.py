#!/usr/bin/env python3
"""
mediasync player picked from config (mediasync)

Runs the player service named by ``player.type`` in config.json ("mpc" or
"vlc", default "mpc").  mediasync-mpc and mediasync-vlc do the same for a
fixed player.

    {"player": {"type": "vlc", "endpoint": "127.0.0.1:8080",
                "password": "..."}}
"""

import asyncio
import logging
import os
import sys

# Ensure services/ is on the path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from mediasync.service import create_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('mediasync')


async def main():
    try:
        service = create_service()
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(2)
    logger.info("Following %s at %s", service.name, service.connector.endpoint)
    await service.run()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
