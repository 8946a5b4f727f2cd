#!/usr/bin/env python3
"""
mediasync VLC player (mediasync-vlc)

Follows a VLC instance and broadcasts its playback state to the UI via
WebSocket (port 8766 by default).

VLC only serves its HTTP interface when started with a password:

    vlc --extraintf http --http-password secret

Configure it in config.json:

    {"player": {"type": "vlc", "endpoint": "127.0.0.1:8080",
                "password": "..."}}
"""

import asyncio
import logging
import os
import sys

# Ensure services/ is on the path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from mediasync.codecs import VlcCodec
from mediasync.service import create_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('mediasync-vlc')


async def main():
    service = create_service(VlcCodec())
    logger.info("Following %s at %s", service.name, service.connector.endpoint)
    await service.run()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
