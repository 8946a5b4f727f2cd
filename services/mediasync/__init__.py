"""mediasync: follow a remote media player's playback state over HTTP."""

from .connector import ConfigurationError, MediaConnector
from .endpoint import Endpoint, parse_endpoint
from .messages import (
    ChangePath,
    ChangeSpeed,
    ConnectionStatus,
    DurationChanged,
    MediaEvent,
    OutboundMessage,
    PathChanged,
    PlayingChanged,
    PlayPause,
    PositionChanged,
    Seek,
    SpeedChanged,
)
from .transport import TransportError, TransportTimeout

__version__ = "0.1.0"
