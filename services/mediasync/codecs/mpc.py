"""
MPC-HC codec for the web interface on port 13579.

Status comes from /variables.html, a page of ``<p id="NAME">VALUE</p>``
lines.  Commands are plain GETs:
  browser.html?path=<escaped path>             - open a file
  command.html?wm_command=887 / 888            - play / pause
  command.html?wm_command=-1&position=hh:mm:ss - seek
MPC-HC has no web command for playback speed.
"""

import html
import logging
import re
import urllib.parse

from ..endpoint import Endpoint
from ..messages import ChangePath, OutboundMessage, PlayPause, Seek
from ..state import PlayerState, Snapshot
from ..transport import HttpTransport
from .base import PlayerCodec, parse_float, parse_int

logger = logging.getLogger(__name__)

VARIABLE_RE = re.compile(r'<p id="(?P<name>[^"]+?)">(?P<value>.*?)</p>')

STATE_PLAYING = 2

CMD_SEEK = -1
CMD_PLAY = 887
CMD_PAUSE = 888


def parse_variables(body: str) -> dict[str, str]:
    """Extract the NAME -> VALUE pairs from a variables.html body."""
    return {m.group("name"): html.unescape(m.group("value"))
            for m in VARIABLE_RE.finditer(body)}


def format_position(seconds: float) -> str:
    """Seconds -> ``hh:mm:ss`` as the seek command expects."""
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class MpcCodec(PlayerCodec):
    id = "mpc"
    name = "MPC-HC"
    default_endpoint = Endpoint("127.0.0.1", 13579)
    probe_path = ""

    status_path = "variables.html"

    async def poll(self, transport: HttpTransport, cache: PlayerState) -> Snapshot | None:
        body = await transport.get(self.status_path)
        logger.debug("Received %r from %s", body, self.name)
        return self.decode(parse_variables(body))

    def decode(self, variables: dict[str, str]) -> Snapshot:
        snap = Snapshot()

        state = parse_int(variables.get("state"))
        if state is not None:
            snap.state = state
            snap.playing = state == STATE_PLAYING
            snap.no_media = state < 0

        if "filepath" in variables:
            snap.path_resolved = True
            snap.path = variables["filepath"] or None

        duration = parse_int(variables.get("duration"))
        if duration is not None:
            snap.duration = duration / 1000

        position = parse_int(variables.get("position"))
        if position is not None:
            snap.position = position / 1000

        snap.speed = parse_float(variables.get("playbackrate"))
        return snap

    def render(self, message: OutboundMessage, cache: PlayerState) -> str | None:
        if isinstance(message, ChangePath):
            if not message.path or not message.path.strip():
                return None
            return f"browser.html?path={urllib.parse.quote(message.path, safe='')}"
        if isinstance(message, PlayPause):
            command = CMD_PLAY if message.should_be_playing else CMD_PAUSE
            return f"command.html?wm_command={command}"
        if isinstance(message, Seek):
            return f"command.html?wm_command={CMD_SEEK}&position={format_position(message.position)}"
        return None
