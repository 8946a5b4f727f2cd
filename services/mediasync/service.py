"""
PlayerService: runs one MediaConnector and exposes it to the UI.

A WebSocket feed pushes what the player is doing, HTTP endpoints accept
commands.

  GET  /ws                  media events + errors, in emission order
  POST /player/play         PlayPause(True)
  POST /player/pause        PlayPause(False)
  POST /player/seek         {"position": seconds}
  POST /player/speed        {"speed": ratio}
  POST /player/path         {"path": "..."}   (null/empty = stop)
  GET  /player/state        connection status, endpoint, cached values
  POST /action/{name}       {"args": [...]} invoke a registered action

The service decides when to run sessions: every ``autoconnect_interval``
seconds it asks can_connect() and, when the player answers, runs a session
until it ends.  Settings (endpoint, encrypted password) are loaded at start
and saved at shutdown and whenever the endpoint action is used.
"""

import asyncio
import json
import logging
import signal

from aiohttp import web

from .actions import ActionRegistry
from .codecs import PlayerCodec, create_codec
from .config import cfg
from .connector import MediaConnector
from .endpoint import try_parse_endpoint
from .http_utils import CORS_HEADERS, json_body
from .messages import ChangePath, ChangeSpeed, MediaEvent, OutboundMessage, PlayPause, Seek
from .settings import SettingsStore

log = logging.getLogger(__name__)

DEFAULT_PORT = 8766
AUTOCONNECT_INTERVAL = 1.0


class PlayerService:

    def __init__(self, connector: MediaConnector, *, port: int = DEFAULT_PORT,
                 settings: SettingsStore | None = None,
                 autoconnect_interval: float = AUTOCONNECT_INTERVAL):
        self.connector = connector
        self.port = port
        self.settings = settings
        self.autoconnect_interval = autoconnect_interval

        self.actions = ActionRegistry()
        connector.on_event = self._on_event
        connector.on_error = self._on_error
        connector.register_actions(self.actions)

        self._ws_clients: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._outbox: asyncio.Queue[dict] = asyncio.Queue()
        self._stopping = asyncio.Event()
        self._pump_task: asyncio.Task | None = None
        self._autoconnect_task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return self.connector.name

    # ── Connector callbacks ──

    def _on_event(self, event: MediaEvent):
        self._outbox.put_nowait({
            "type": "media_event",
            "event": event.name,
            "data": event.to_dict(),
        })

    def _on_error(self, title: str, error: BaseException):
        self._outbox.put_nowait({
            "type": "error",
            "data": {"source": self.name, "title": title, "message": str(error)},
        })

    # ── WebSocket broadcasting ──

    async def _pump(self):
        """Forward queued messages to every client, one at a time, in order."""
        while True:
            message = await self._outbox.get()
            await self.broadcast(message)

    async def broadcast(self, message: dict):
        if not self._ws_clients:
            return
        text = json.dumps(message)
        disconnected = set()
        for ws in list(self._ws_clients):
            if ws not in self._ws_clients:
                continue
            try:
                await ws.send_str(text)
            except ConnectionError:
                disconnected.add(ws)
        self._ws_clients -= disconnected

    def status_payload(self) -> dict:
        connector = self.connector
        state = connector.state
        return {
            "player": self.name,
            "status": connector.status.value,
            "endpoint": str(connector.endpoint) if connector.endpoint else None,
            "connectable": connector.is_connectable,
            "pending": connector.pending_messages,
            "state": {
                "path": state.path,
                "playing": state.playing,
                "duration": state.duration,
                "position": state.position,
                "speed": state.speed,
            } if state else None,
        }

    # ── HTTP + WebSocket server ──

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_post("/player/play", self._handle_play)
        app.router.add_post("/player/pause", self._handle_pause)
        app.router.add_post("/player/seek", self._handle_seek)
        app.router.add_post("/player/speed", self._handle_speed)
        app.router.add_post("/player/path", self._handle_path)
        app.router.add_get("/player/state", self._handle_state)
        app.router.add_post("/action/{name}", self._handle_action)
        return app

    async def start(self):
        """Load settings, start listening, start the session loop."""
        self.load_settings()

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)
        await site.start()
        log.info("Player %s: HTTP + WebSocket on port %d", self.name, self.port)

        self._pump_task = asyncio.create_task(self._pump())
        self._autoconnect_task = asyncio.create_task(self._autoconnect())

    async def run(self):
        """Convenience entry-point: start + wait for signal + stop."""
        await self.start()
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self):
        # Let a running session end normally so the UI gets the reset events
        self._stopping.set()
        if self._autoconnect_task:
            await asyncio.wait({self._autoconnect_task}, timeout=2)
            self._autoconnect_task.cancel()
            await asyncio.gather(self._autoconnect_task, return_exceptions=True)
            self._autoconnect_task = None
        await self.connector.dispose()
        self.save_settings()

        while not self._outbox.empty():
            await self.broadcast(self._outbox.get_nowait())
        if self._pump_task:
            self._pump_task.cancel()
            await asyncio.gather(self._pump_task, return_exceptions=True)
            self._pump_task = None

        for ws in list(self._ws_clients):
            await ws.close()
        self._ws_clients.clear()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _autoconnect(self):
        while not self._stopping.is_set():
            if await self.connector.can_connect():
                try:
                    await self.connector.run(self._stopping)
                except Exception as e:
                    # already logged and reported by the connector
                    log.info("%s session ended: %s", self.name, e)
            if self._stopping.is_set():
                break
            try:
                await asyncio.wait_for(self._stopping.wait(), self.autoconnect_interval)
            except asyncio.TimeoutError:
                pass

    # ── Settings ──

    def load_settings(self):
        if self.settings is None:
            return
        self.settings.load()
        self.connector.load_settings(self.settings.section(self.connector.codec.id))

    def save_settings(self):
        if self.settings is None:
            return
        self.connector.save_settings(self.settings.section(self.connector.codec.id))
        try:
            self.settings.save()
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self.settings.path, e)

    # ── WebSocket handler ──

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._ws_clients.add(ws)
        log.info("WebSocket client connected (%d total)", len(self._ws_clients))

        try:
            await ws.send_json({"type": "status", "data": self.status_payload()})
            async for msg in ws:
                pass  # push-only
        finally:
            self._ws_clients.discard(ws)
            log.info("WebSocket client disconnected (%d remaining)",
                     len(self._ws_clients))

        return ws

    # ── HTTP route handlers ──

    def _queued(self, message: OutboundMessage) -> web.Response:
        self.connector.enqueue(message)
        return web.json_response(
            {"status": "ok", "connected": self.connector.is_connected},
            headers=CORS_HEADERS)

    def _bad_request(self, reason: str) -> web.Response:
        return web.json_response(
            {"status": "error", "error": reason},
            status=400, headers=CORS_HEADERS)

    async def _handle_play(self, request: web.Request) -> web.Response:
        return self._queued(PlayPause(True))

    async def _handle_pause(self, request: web.Request) -> web.Response:
        return self._queued(PlayPause(False))

    async def _handle_seek(self, request: web.Request) -> web.Response:
        data = await json_body(request)
        try:
            position = float(data["position"])
        except (KeyError, TypeError, ValueError):
            return self._bad_request("position (seconds) required")
        if position < 0:
            return self._bad_request("position must not be negative")
        return self._queued(Seek(position))

    async def _handle_speed(self, request: web.Request) -> web.Response:
        data = await json_body(request)
        try:
            speed = float(data["speed"])
        except (KeyError, TypeError, ValueError):
            return self._bad_request("speed required")
        if speed <= 0:
            return self._bad_request("speed must be positive")
        return self._queued(ChangeSpeed(speed))

    async def _handle_path(self, request: web.Request) -> web.Response:
        data = await json_body(request)
        path = data.get("path")
        if path is not None and not isinstance(path, str):
            return self._bad_request("path must be a string or null")
        return self._queued(ChangePath(path))

    async def _handle_state(self, request: web.Request) -> web.Response:
        return web.json_response(self.status_payload(), headers=CORS_HEADERS)

    async def _handle_action(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        data = await json_body(request)
        args = data.get("args", [])
        if not isinstance(args, list):
            return self._bad_request("args must be a list")
        try:
            result = self.actions.invoke(name, *args)
        except KeyError:
            return web.json_response(
                {"status": "error", "error": f"unknown action {name}"},
                status=404, headers=CORS_HEADERS)
        except TypeError as e:
            return self._bad_request(str(e))
        if name == self.connector.endpoint_action_name and result:
            self.save_settings()
        return web.json_response(
            {"status": "ok", "result": result}, headers=CORS_HEADERS)


def create_service(codec: PlayerCodec | None = None) -> PlayerService:
    """Build a PlayerService from config.json.

    Without *codec* the player is picked by ``player.type``.  A fixed codec
    wins over ``player.type``; a mismatch is logged.
    """
    if codec is None:
        codec = create_codec()
    else:
        configured = cfg("player", "type")
        if configured and str(configured).lower() != codec.id:
            log.warning("Ignoring player.type %r, this service follows %s",
                        configured, codec.name)
    connector = MediaConnector(codec)

    endpoint_text = cfg("player", "endpoint")
    if endpoint_text:
        endpoint = try_parse_endpoint(endpoint_text)
        if endpoint is None:
            log.warning("Ignoring invalid player.endpoint %r", endpoint_text)
        else:
            connector.endpoint = endpoint
    password = cfg("player", "password")
    if password:
        connector.credential = password

    settings_path = cfg("service", "settings_path")
    return PlayerService(
        connector,
        port=int(cfg("service", "port", default=DEFAULT_PORT)),
        settings=SettingsStore(settings_path),
        autoconnect_interval=float(cfg("service", "autoconnect_interval",
                                       default=AUTOCONNECT_INTERVAL)),
    )
