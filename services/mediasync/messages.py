"""
Messages exchanged between a connector and its host.

Outbound messages travel host -> connector -> player (queued, FIFO).
Media events travel player -> connector -> host (emitted on change only).
Times are seconds.
"""

from dataclasses import asdict, dataclass
from enum import Enum


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


# -- Outbound (host -> player) --

class OutboundMessage:
    """Base class for commands the host wants sent to the player."""


@dataclass(frozen=True)
class ChangePath(OutboundMessage):
    path: str | None


@dataclass(frozen=True)
class PlayPause(OutboundMessage):
    should_be_playing: bool


@dataclass(frozen=True)
class Seek(OutboundMessage):
    position: float


@dataclass(frozen=True)
class ChangeSpeed(OutboundMessage):
    speed: float


# -- Downstream (player -> host) --

class MediaEvent:
    """Base class for observed player state changes."""

    name = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PathChanged(MediaEvent):
    path: str | None
    name = "path"


@dataclass(frozen=True)
class PlayingChanged(MediaEvent):
    playing: bool
    name = "playing"


@dataclass(frozen=True)
class DurationChanged(MediaEvent):
    duration: float
    name = "duration"


@dataclass(frozen=True)
class PositionChanged(MediaEvent):
    position: float
    name = "position"


@dataclass(frozen=True)
class SpeedChanged(MediaEvent):
    speed: float
    name = "speed"
