"""
Wire codecs for the remote players mediasync can follow.

Each codec handles the status decoding and command encoding for one player.
The factory ``create_codec`` picks one by id, usually from config.json
``player.type``.

Supported types:
  - ``mpc``  – MPC-HC / MPC-BE web interface (default)
  - ``vlc``  – VLC HTTP interface
"""

import logging

from ..config import cfg
from .base import PlayerCodec
from .mpc import MpcCodec
from .vlc import VlcCodec

logger = logging.getLogger(__name__)

__all__ = [
    "PlayerCodec",
    "MpcCodec",
    "VlcCodec",
    "CODECS",
    "create_codec",
]

CODECS: dict[str, type[PlayerCodec]] = {
    MpcCodec.id: MpcCodec,
    VlcCodec.id: VlcCodec,
}


def create_codec(player_type: str | None = None) -> PlayerCodec:
    """Create the codec for *player_type* (defaults to config player.type)."""
    if player_type is None:
        player_type = str(cfg("player", "type", default="mpc"))
    player_type = player_type.lower()
    try:
        codec_cls = CODECS[player_type]
    except KeyError:
        raise ValueError(f"Unknown player type '{player_type}'") from None
    logger.info("Player codec: %s", codec_cls.name)
    return codec_cls()
