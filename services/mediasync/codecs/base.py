# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Abstract base class for remote player codecs.

A codec knows one player's control protocol and nothing else: how to turn
its status pages into a Snapshot, and how to turn an OutboundMessage into a
request path.  Connection lifecycle, polling cadence, diffing and error
reporting live in MediaConnector and are shared by every player.
"""

import math
from abc import ABC, abstractmethod

from ..endpoint import Endpoint
from ..messages import OutboundMessage
from ..state import PlayerState, Snapshot
from ..transport import HttpTransport


class PlayerCodec(ABC):
    """Interface every supported player must implement."""

    # ── Subclass must set these ──
    id: str = ""
    name: str = ""
    default_endpoint: Endpoint | None = None
    requires_credential: bool = False
    probe_path: str = ""

    def auth_headers(self, credential: str | None) -> dict[str, str]:
        """Headers to attach to every request of a session."""
        return {}

    @abstractmethod
    async def poll(self, transport: HttpTransport, cache: PlayerState) -> Snapshot | None:
        """Fetch and decode one status snapshot.

        Returns None when this tick carries nothing usable.  Transport
        errors propagate; the reader decides which ones are fatal.
        """
        ...

    @abstractmethod
    def render(self, message: OutboundMessage, cache: PlayerState) -> str | None:
        """Request path (with query) for *message*, or None to drop it."""
        ...


def parse_int(text: str | None) -> int | None:
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_float(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None
