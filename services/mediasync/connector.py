"""
MediaConnector: keeps the host in sync with one remote media player.

A connector owns a PlayerCodec (the wire protocol) and runs sessions
against the player:

    connector = MediaConnector(VlcCodec(), credential="secret",
                               on_event=print, on_error=show_error)
    connector.enqueue(PlayPause(True))
    await connector.run(stop_event)       # returns when the session ends

One session = probe the player, then race two loops over one transport:

  reader  - every POLL_INTERVAL fetch the status, diff it against the
            PlayerState cache, emit a MediaEvent per changed value
  writer  - take OutboundMessages off the queue in order, render them with
            the codec and send them

Whichever loop finishes first cancels the other.  A failure is logged and
reported once through on_error, then re-raised.  Every session, however it
ends, finishes with PathChanged(None) + PlayingChanged(False) so nothing
downstream keeps following a player we no longer see; the only exception is
a connector being disposed.
"""

import asyncio
import logging
from typing import Callable

from .actions import ActionRegistry
from .codecs import PlayerCodec
from .credentials import CredentialError, protect, unprotect
from .endpoint import Endpoint, try_parse_endpoint
from .messages import ConnectionStatus, MediaEvent, OutboundMessage
from .state import PlayerState, diff_snapshot, reset_events
from .transport import HttpTransport, TransportError, TransportTimeout

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 1.0    # seconds, per request once connected
PROBE_TIMEOUT = 0.05     # can_connect() availability check
POLL_INTERVAL = 0.2


class ConfigurationError(Exception):
    """The connector cannot start a session with its current settings."""


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class MediaConnector:

    def __init__(self, codec: PlayerCodec, *,
                 endpoint: Endpoint | None = None,
                 credential: str | None = None,
                 on_event: Callable[[MediaEvent], None] | None = None,
                 on_error: Callable[[str, BaseException], None] | None = None):
        self.codec = codec
        self.name = codec.name
        self.endpoint = endpoint if endpoint is not None else codec.default_endpoint
        self.credential = credential
        self.on_event = on_event
        self.on_error = on_error

        self.poll_interval = POLL_INTERVAL
        self.connect_timeout = CONNECT_TIMEOUT
        self.probe_timeout = PROBE_TIMEOUT

        # Session state
        self.state: PlayerState | None = None
        self._status = ConnectionStatus.DISCONNECTED
        self._queue: asyncio.Queue[OutboundMessage] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._session_task: asyncio.Task | None = None
        self._disposing = False
        self._actions: ActionRegistry | None = None

    # ── Status ──

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED

    @property
    def is_connect_busy(self) -> bool:
        return self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTING)

    @property
    def is_connectable(self) -> bool:
        """Enough configuration to attempt a session."""
        if self.endpoint is None:
            return False
        if self.codec.requires_credential and not self.credential:
            return False
        return True

    # ── Outbound queue ──

    def enqueue(self, message: OutboundMessage) -> None:
        """Queue *message* for the writer.  Safe to call from any thread."""
        loop = self._loop
        if loop is not None and loop.is_running() and not _on_loop(loop):
            loop.call_soon_threadsafe(self._queue.put_nowait, message)
        else:
            self._queue.put_nowait(message)

    @property
    def pending_messages(self) -> int:
        return self._queue.qsize()

    def clear_pending_messages(self) -> int:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            dropped += 1
        if dropped:
            logger.debug("Dropped %d stale message(s) queued for %s", dropped, self.name)
        return dropped

    # ── Session ──

    def _transport(self, endpoint: Endpoint, timeout: float) -> HttpTransport:
        return HttpTransport(endpoint, timeout,
                             headers=self.codec.auth_headers(self.credential))

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run one session until *stop* is set, the task is cancelled, or it fails."""
        endpoint = self.endpoint
        self._loop = asyncio.get_running_loop()
        self._session_task = asyncio.current_task()
        self._status = ConnectionStatus.CONNECTING
        try:
            logger.info('Connecting to %s at "%s"', self.name, endpoint)
            if endpoint is None:
                raise ConfigurationError("Endpoint cannot be empty")
            if self.codec.requires_credential and not self.credential:
                raise ConfigurationError(f"{self.name} requires a password")

            async with self._transport(endpoint, self.connect_timeout) as transport:
                await transport.get(self.codec.probe_path)

                self._status = ConnectionStatus.CONNECTED
                logger.info('Connected to %s at "%s"', self.name, endpoint)
                self.clear_pending_messages()
                self.state = PlayerState()

                await self._race(transport, self.state, stop)
        except asyncio.CancelledError:
            logger.info("%s session cancelled", self.name)
            raise
        except Exception as e:
            logger.exception("%s failed with exception", self.name)
            self._notify_error(e)
            raise
        finally:
            self._status = ConnectionStatus.DISCONNECTING
            self.state = None
            self._session_task = None
            if not self._disposing:
                for event in reset_events():
                    self._emit(event)
            self._status = ConnectionStatus.DISCONNECTED
            logger.info("Disconnected from %s", self.name)

    async def _race(self, transport: HttpTransport, state: PlayerState,
                    stop: asyncio.Event | None) -> None:
        tasks = {
            asyncio.create_task(self._read(transport, state), name=f"{self.codec.id}-reader"),
            asyncio.create_task(self._write(transport, state), name=f"{self.codec.id}-writer"),
        }
        if stop is not None:
            tasks.add(asyncio.create_task(stop.wait(), name=f"{self.codec.id}-stop"))
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _read(self, transport: HttpTransport, state: PlayerState) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                snapshot = await self.codec.poll(transport, state)
            except TransportTimeout:
                logger.debug("%s status request timed out, retrying", self.name)
                continue
            if snapshot is None:
                continue
            for event in diff_snapshot(state, snapshot):
                self._emit(event)

    async def _write(self, transport: HttpTransport, state: PlayerState) -> None:
        while True:
            message = await self._queue.get()
            path = self.codec.render(message, state)
            if path is None:
                logger.debug("Nothing to send to %s for %r", self.name, message)
                continue
            logger.debug('Sending "%s" to %s', path, self.name)
            await transport.get(path)

    def _emit(self, event: MediaEvent) -> None:
        logger.debug("%s -> %r", self.name, event)
        if self.on_event is not None:
            self.on_event(event)

    def _notify_error(self, error: BaseException) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(f"{self.name} failed with exception", error)
        except Exception:
            logger.exception("Error notification for %s failed", self.name)

    async def can_connect(self) -> bool:
        """Quick reachability check.  Never raises for network problems."""
        endpoint = self.endpoint
        if not self.is_connectable:
            return False
        try:
            async with self._transport(endpoint, self.probe_timeout) as transport:
                await transport.get(self.codec.probe_path)
        except TransportError as e:
            logger.debug("%s not reachable at %s: %s", self.name, endpoint, e)
            return False
        return True

    async def dispose(self) -> None:
        """Tear the connector down for good.  No reset events after this."""
        self._disposing = True
        if self._actions is not None:
            self._actions.unregister(self.endpoint_action_name)
            self._actions = None
        task = self._session_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.wait({task})

    # ── Settings ──

    def save_settings(self, settings: dict) -> None:
        settings["Endpoint"] = self.endpoint.to_uri_string() if self.endpoint else None
        if not self.codec.requires_credential:
            return
        try:
            if self.credential and self.credential.strip():
                settings["Password"] = protect(self.credential)
            else:
                settings["Password"] = None
        except CredentialError as e:
            logger.warning("Failed to encrypt password to settings: %s", e)

    def load_settings(self, settings: dict) -> None:
        if "Endpoint" in settings:
            value = settings["Endpoint"]
            endpoint = try_parse_endpoint(value)
            if value is None or endpoint is not None:
                self.endpoint = endpoint
            else:
                logger.warning("Ignoring invalid %s endpoint in settings: %r", self.name, value)

        if self.codec.requires_credential and settings.get("Password"):
            try:
                self.credential = unprotect(settings["Password"])
            except CredentialError as e:
                logger.warning("Failed to decrypt password from settings: %s", e)

    # ── Actions ──

    @property
    def endpoint_action_name(self) -> str:
        return f"{self.name}::Endpoint::Set"

    def register_actions(self, registry: ActionRegistry) -> None:
        registry.register(self.endpoint_action_name, self.set_endpoint,
                          label="Endpoint", description="ipOrHost:port")
        self._actions = registry

    def set_endpoint(self, value: str) -> bool:
        """Point the next session at *value* (``host:port``)."""
        endpoint = try_parse_endpoint(value)
        if endpoint is None:
            logger.warning("Ignoring invalid %s endpoint %r", self.name, value)
            return False
        self.endpoint = endpoint
        logger.info("%s endpoint set to %s", self.name, endpoint)
        return True
