#!/usr/bin/env python3
"""
mediasync MPC-HC player (mediasync-mpc)

Follows an MPC-HC instance and broadcasts its playback state to the UI
via WebSocket (port 8766 by default).  Enable the web interface in MPC-HC
(Options, Player, Web Interface, "Listen on port") first.

Configure it in config.json:

    {"player": {"type": "mpc", "endpoint": "127.0.0.1:13579"}}
"""

import asyncio
import logging
import os
import sys

# Ensure services/ is on the path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from mediasync.codecs import MpcCodec
from mediasync.service import create_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('mediasync-mpc')


async def main():
    service = create_service(MpcCodec())
    logger.info("Following %s at %s", service.name, service.connector.endpoint)
    await service.run()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
