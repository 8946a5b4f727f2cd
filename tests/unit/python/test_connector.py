"""Tests for services/mediasync/connector.py: sessions against fake players."""

import asyncio
import logging

import pytest

from fake_players import FakeMpc, FakeVlc, mpc_variables, vlc_playlist, vlc_status, wait_until
from mediasync.codecs import MpcCodec, VlcCodec
from mediasync.connector import ConfigurationError, MediaConnector
from mediasync.endpoint import Endpoint
from mediasync.messages import (
    ChangePath,
    ConnectionStatus,
    DurationChanged,
    PathChanged,
    PlayingChanged,
    PlayPause,
    PositionChanged,
    Seek,
    SpeedChanged,
)
from mediasync.transport import TransportError

RESET = [PathChanged(None), PlayingChanged(False)]


class Recorder:
    """Collects events and error notifications from a connector."""

    def __init__(self):
        self.events = []
        self.errors = []

    def on_event(self, event):
        self.events.append(event)

    def on_error(self, title, error):
        self.errors.append((title, error))


def make_connector(codec, endpoint, recorder, **kwargs):
    connector = MediaConnector(codec, endpoint=endpoint, on_event=recorder.on_event,
                               on_error=recorder.on_error, **kwargs)
    connector.poll_interval = 0.01
    return connector


class TestMpcSession:
    def test_first_tick_then_stop(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=2, filepath="C:\\a.mp4", duration=1000,
                                                   position=500, playbackrate="1.0")
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: len(rec.events) >= 5)
                assert connector.status == ConnectionStatus.CONNECTED
                await asyncio.sleep(0.05)  # more identical ticks
                stop.set()
                await task
                return rec, connector

        rec, connector = asyncio.run(scenario())
        assert rec.events == [
            PlayingChanged(True),
            PathChanged("C:\\a.mp4"),
            DurationChanged(1.0),
            PositionChanged(0.5),
            SpeedChanged(1.0),
        ] + RESET
        assert rec.errors == []
        assert connector.status == ConnectionStatus.DISCONNECTED

    def test_commands_are_sent_in_order(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: connector.is_connected)
                connector.enqueue(PlayPause(True))
                connector.enqueue(Seek(3723))
                connector.enqueue(ChangePath(""))  # dropped, MPC-HC has no "stop" path
                connector.enqueue(ChangePath("C:\\b.mp4"))
                connector.enqueue(PlayPause(False))
                await wait_until(lambda: len(player.commands) >= 4)
                stop.set()
                await task
                return player.commands

        assert asyncio.run(scenario()) == [
            "/command.html?wm_command=887",
            "/command.html?wm_command=-1&position=01:02:03",
            "/browser.html?path=C%3A%5Cb.mp4",
            "/command.html?wm_command=888",
        ]

    def test_messages_queued_while_disconnected_are_dropped(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                connector.enqueue(PlayPause(True))
                connector.enqueue(Seek(10))
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: connector.is_connected)
                await asyncio.sleep(0.05)
                stop.set()
                await task
                return player.commands, connector.pending_messages

        commands, pending = asyncio.run(scenario())
        assert commands == []
        assert pending == 0

    def test_timeout_mid_poll_keeps_session_alive(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                connector.connect_timeout = 0.1
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: connector.is_connected)
                player.status_delay = 0.3
                await wait_until(lambda: player.status_delay == 0)
                player.status_body = mpc_variables(state=2)
                await wait_until(lambda: PlayingChanged(True) in rec.events)
                assert not task.done()
                stop.set()
                await task
                return rec

        rec = asyncio.run(scenario())
        assert rec.errors == []
        assert rec.events == [PlayingChanged(False), PlayingChanged(True)] + RESET

    def test_error_status_ends_session_with_reset(self, caplog):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=2, filepath="C:\\a.mp4")
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                task = asyncio.create_task(connector.run())
                await wait_until(lambda: len(rec.events) >= 2)
                player.status_code = 500
                with pytest.raises(TransportError) as info:
                    await task
                return rec, info.value, connector

        with caplog.at_level(logging.ERROR):
            rec, error, connector = asyncio.run(scenario())

        assert error.status == 500
        assert rec.events == [PlayingChanged(True), PathChanged("C:\\a.mp4")] + RESET
        assert len(rec.errors) == 1
        assert rec.errors[0][0] == "MPC-HC failed with exception"
        assert rec.errors[0][1] is error
        assert len([r for r in caplog.records if "failed with exception" in r.message]) == 1
        assert connector.status == ConnectionStatus.DISCONNECTED

    def test_unreachable_player_fails_and_resets(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                endpoint = player.endpoint
            connector = make_connector(MpcCodec(), endpoint, rec)
            with pytest.raises(TransportError):
                await connector.run()
            return rec

        rec = asyncio.run(scenario())
        assert rec.events == RESET
        assert len(rec.errors) == 1

    def test_cancellation_is_not_an_error(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                task = asyncio.create_task(connector.run())
                await wait_until(lambda: connector.is_connected)
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task
                return rec

        rec = asyncio.run(scenario())
        assert rec.errors == []
        assert rec.events[-2:] == RESET

    def test_dispose_suppresses_reset(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=2)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                task = asyncio.create_task(connector.run())
                await wait_until(lambda: rec.events)
                await connector.dispose()
                assert task.done()
                return rec

        rec = asyncio.run(scenario())
        assert rec.events == [PlayingChanged(True)]
        assert rec.errors == []

    def test_endpoint_change_waits_for_next_session(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: rec.events)
                connector.set_endpoint("127.0.0.1:9")
                before = len(player.requests)
                await asyncio.sleep(0.05)
                assert len(player.requests) > before
                stop.set()
                await task

        asyncio.run(scenario())


class TestVlcSession:
    def test_play_pause_matching_state_sends_nothing(self):
        async def scenario():
            rec = Recorder()
            async with FakeVlc() as player:
                player.status_body = vlc_status(currentplid=5, state="playing", length=100,
                                                position=0.5)
                player.playlist_body = vlc_playlist((5, "file:///C:/b.mp4"))
                connector = make_connector(VlcCodec(), player.endpoint, rec, credential="pw")
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: PlayingChanged(True) in rec.events)
                connector.enqueue(PlayPause(True))
                connector.enqueue(Seek(90))
                await wait_until(lambda: player.commands)
                connector.enqueue(PlayPause(False))
                await wait_until(lambda: len(player.commands) >= 2)
                stop.set()
                await task
                return rec, player

        rec, player = asyncio.run(scenario())
        assert player.commands == [
            "/requests/status.xml?command=seek&val=90",
            "/requests/status.xml?command=pl_pause",
        ]
        assert rec.events[:5] == [
            PlayingChanged(True),
            PathChanged("C:\\b.mp4"),
            DurationChanged(100.0),
            PositionChanged(50.0),
            SpeedChanged(1.0),
        ]
        assert player.playlist_fetches == 1

    def test_playlist_cleared_emits_one_reset_pair(self):
        async def scenario():
            rec = Recorder()
            async with FakeVlc() as player:
                player.status_body = vlc_status(currentplid=5, state="playing", length=100)
                player.playlist_body = vlc_playlist((5, "file:///C:/b.mp4"))
                connector = make_connector(VlcCodec(), player.endpoint, rec, credential="pw")
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: DurationChanged(100.0) in rec.events)
                player.status_body = vlc_status(currentplid=-1, length=-1, rate=0)
                await wait_until(lambda: rec.events[-1] == PlayingChanged(False))
                await asyncio.sleep(0.05)
                stop.set()
                await task
                return rec

        rec = asyncio.run(scenario())
        assert rec.events == [
            PlayingChanged(True),
            PathChanged("C:\\b.mp4"),
            DurationChanged(100.0),
            PositionChanged(0.0),
            SpeedChanged(1.0),
        ] + RESET + RESET

    def test_missing_password_is_configuration_error(self):
        rec = Recorder()
        connector = make_connector(VlcCodec(), Endpoint("127.0.0.1", 8080), rec)
        assert connector.is_connectable is False
        with pytest.raises(ConfigurationError):
            asyncio.run(connector.run())
        assert rec.events == RESET
        assert len(rec.errors) == 1

    def test_wrong_password_fails_probe(self):
        async def scenario():
            rec = Recorder()
            async with FakeVlc() as player:
                player.status_code = 401
                connector = make_connector(VlcCodec(), player.endpoint, rec, credential="bad")
                with pytest.raises(TransportError) as info:
                    await connector.run()
                return info.value

        assert asyncio.run(scenario()).status == 401


class TestConfiguration:
    def test_missing_endpoint_fails_fast(self):
        rec = Recorder()
        connector = make_connector(MpcCodec(), None, rec)
        connector.endpoint = None
        with pytest.raises(ConfigurationError):
            asyncio.run(connector.run())
        assert rec.events == RESET
        assert len(rec.errors) == 1
        assert connector.status == ConnectionStatus.DISCONNECTED

    def test_default_endpoints(self):
        assert MediaConnector(MpcCodec()).endpoint == Endpoint("127.0.0.1", 13579)
        assert MediaConnector(VlcCodec()).endpoint == Endpoint("127.0.0.1", 8080)


class TestCanConnect:
    def test_reachable_player(self):
        async def scenario():
            async with FakeMpc() as player:
                connector = MediaConnector(MpcCodec(), endpoint=player.endpoint)
                return await connector.can_connect(), connector.status

        reachable, status = asyncio.run(scenario())
        assert reachable is True
        assert status == ConnectionStatus.DISCONNECTED

    def test_error_status_is_unreachable(self):
        async def scenario():
            async with FakeVlc() as player:
                player.status_code = 401
                connector = MediaConnector(VlcCodec(), endpoint=player.endpoint, credential="pw")
                return await connector.can_connect()

        assert asyncio.run(scenario()) is False

    def test_closed_port_is_unreachable(self):
        async def scenario():
            async with FakeMpc() as player:
                endpoint = player.endpoint
            events = []
            connector = MediaConnector(MpcCodec(), endpoint=endpoint, on_event=events.append)
            return await connector.can_connect(), events

        reachable, events = asyncio.run(scenario())
        assert reachable is False
        assert events == []

    def test_not_connectable_without_password(self):
        connector = MediaConnector(VlcCodec())
        assert asyncio.run(connector.can_connect()) is False


class TestQueue:
    def test_clear_pending_messages(self):
        connector = MediaConnector(MpcCodec())
        connector.enqueue(PlayPause(True))
        connector.enqueue(PlayPause(False))
        assert connector.pending_messages == 2
        assert connector.clear_pending_messages() == 2
        assert connector.pending_messages == 0

    def test_enqueue_from_another_thread(self):
        async def scenario():
            rec = Recorder()
            async with FakeMpc() as player:
                player.status_body = mpc_variables(state=1)
                connector = make_connector(MpcCodec(), player.endpoint, rec)
                stop = asyncio.Event()
                task = asyncio.create_task(connector.run(stop))
                await wait_until(lambda: connector.is_connected)
                await asyncio.to_thread(connector.enqueue, PlayPause(True))
                await wait_until(lambda: player.commands)
                stop.set()
                await task
                return player.commands

        assert asyncio.run(scenario()) == ["/command.html?wm_command=887"]
