"""
VLC codec: HTTP interface (lua "http" module), default port 8080.

VLC refuses the web interface without a password.  Requests use HTTP basic
auth with an empty user name.

  GET /requests/status.xml    currentplid, state, length (s), position (0..1), rate
  GET /requests/playlist.xml  <leaf id=".." uri=".."/> per item, fetched only
                              when currentplid changes
  GET /requests/status.xml?command=pl_pause | seek&val=N | in_play&input=URI
                                  | pl_stop | rate&val=N.NNNN
"""

import logging
import re
import urllib.parse
from xml.etree import ElementTree

import aiohttp

from ..endpoint import Endpoint
from ..messages import ChangePath, ChangeSpeed, OutboundMessage, PlayPause, Seek
from ..state import PlayerState, Snapshot
from ..transport import HttpTransport
from .base import PlayerCodec, parse_float, parse_int

logger = logging.getLogger(__name__)

_DRIVE_PATH_RE = re.compile(r"^/[A-Za-z]:")


def uri_to_path(value: str) -> str:
    """Turn a playlist ``uri`` into what downstream expects as a media path.

    file: URIs become local paths (``file:///C:/a.mp4`` -> ``C:\\a.mp4``,
    ``file://server/share/a.mp4`` -> ``\\\\server\\share\\a.mp4``).  Other
    absolute URIs are kept verbatim, anything else is percent-decoded.
    """
    parts = urllib.parse.urlsplit(value)
    if parts.scheme.lower() == "file":
        path = urllib.parse.unquote(parts.path)
        if _DRIVE_PATH_RE.match(path):
            return path[1:].replace("/", "\\")
        if parts.netloc and parts.netloc.lower() != "localhost":
            return "\\\\" + parts.netloc + path.replace("/", "\\")
        return path
    # a one letter scheme is a drive letter, not a URI
    if len(parts.scheme) > 1 and (parts.netloc or parts.path):
        return value
    return urllib.parse.unquote(value)


def _xml_text(root: ElementTree.Element, tag: str) -> str | None:
    el = root.find(tag)
    return el.text if el is not None else None


class VlcCodec(PlayerCodec):
    id = "vlc"
    name = "VLC"
    default_endpoint = Endpoint("127.0.0.1", 8080)
    requires_credential = True
    probe_path = "requests/status.xml"

    status_path = "requests/status.xml"
    playlist_path = "requests/playlist.xml"

    def auth_headers(self, credential: str | None) -> dict[str, str]:
        return {"Authorization": aiohttp.BasicAuth("", credential or "").encode()}

    async def poll(self, transport: HttpTransport, cache: PlayerState) -> Snapshot | None:
        body = await transport.get(self.status_path)
        logger.debug("Received %r from %s", body, self.name)
        root = ElementTree.fromstring(body)

        playlist_id = parse_int(_xml_text(root, "currentplid"))
        if playlist_id is None:
            return None
        if playlist_id < 0:
            return Snapshot(no_media=True)

        snap = Snapshot(no_media=False, playlist_id=playlist_id)

        if playlist_id != cache.playlist_id:
            uri = await self._playlist_uri(transport, playlist_id)
            if not uri or not uri.strip():
                return Snapshot(no_media=True)
            snap.path_resolved = True
            snap.path = uri_to_path(uri)

        state = _xml_text(root, "state")
        if state is not None:
            snap.state = state
            snap.playing = state.lower() == "playing"

        length = parse_int(_xml_text(root, "length"))
        if length is not None:
            snap.duration = float(length)

        snap.position_fraction = parse_float(_xml_text(root, "position"))
        snap.speed = parse_float(_xml_text(root, "rate"))
        return snap

    async def _playlist_uri(self, transport: HttpTransport, playlist_id: int) -> str | None:
        body = await transport.get(self.playlist_path)
        logger.debug("Received %r from %s", body, self.name)
        root = ElementTree.fromstring(body)
        leaf = root.find(f".//leaf[@id='{playlist_id}']")
        return leaf.get("uri") if leaf is not None else None

    def render(self, message: OutboundMessage, cache: PlayerState) -> str | None:
        command = self._command(message, cache)
        if command is None:
            return None
        return f"{self.status_path}?command={command}"

    def _command(self, message: OutboundMessage, cache: PlayerState) -> str | None:
        if isinstance(message, PlayPause):
            is_playing = cache.playing is True
            return "pl_pause" if is_playing != message.should_be_playing else None
        if isinstance(message, Seek):
            return f"seek&val={int(message.position)}"
        if isinstance(message, ChangePath):
            if not message.path or not message.path.strip():
                return "pl_stop"
            return f"in_play&input={urllib.parse.quote(message.path, safe='')}"
        if isinstance(message, ChangeSpeed):
            return f"rate&val={message.speed:.4f}"
        return None
