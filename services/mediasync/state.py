"""
Player state cache and snapshot diffing.

Every poll tick a codec decodes the player's status into a Snapshot.
diff_snapshot() compares it against the PlayerState cache (the values we
last published) and returns the events to emit, updating the cache as it
goes.  A value that did not change produces no event, so a player that
reports the same status every 200ms stays silent downstream.
"""

import logging
from dataclasses import dataclass

from .messages import (
    DurationChanged,
    MediaEvent,
    PathChanged,
    PlayingChanged,
    PositionChanged,
    SpeedChanged,
)

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """One decoded status response, already normalized to seconds.

    None means "not reported this tick".  Range checks are left to
    diff_snapshot() so every codec gets the same sentinel handling.
    """

    no_media: bool | None = None
    state: int | str | None = None
    playing: bool | None = None
    path_resolved: bool = False
    path: str | None = None
    duration: float | None = None
    position: float | None = None
    position_fraction: float | None = None
    speed: float | None = None
    playlist_id: int | None = None


class PlayerState:
    """Last published values for one session.  Written by the reader only."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.path: str | None = None
        self.duration: float | None = None
        self.position: float | None = None
        self.speed: float | None = None
        self.state: int | str | None = None
        self.playing: bool | None = None
        self.playlist_id: int | None = None
        self.no_media = False

    def __repr__(self):
        return (f"PlayerState(state={self.state!r}, playing={self.playing}, "
                f"path={self.path!r}, duration={self.duration}, "
                f"position={self.position}, speed={self.speed}, "
                f"playlist_id={self.playlist_id}, no_media={self.no_media})")


def reset_events() -> list[MediaEvent]:
    """The pair that tells downstream nothing is loaded."""
    return [PathChanged(None), PlayingChanged(False)]


def diff_snapshot(cache: PlayerState, snap: Snapshot) -> list[MediaEvent]:
    """Apply *snap* to *cache*, returning the events for what changed."""
    if snap.no_media:
        if cache.no_media:
            return []
        cache.reset()
        cache.no_media = True
        cache.state = snap.state
        cache.playing = False
        cache.path = None
        logger.debug("No media loaded, resetting state")
        return reset_events()

    events: list[MediaEvent] = []

    if snap.no_media is None and cache.no_media:
        # token missing this tick, last one said nothing is loaded
        return events
    cache.no_media = False

    if snap.state is not None and snap.state != cache.state:
        cache.state = snap.state
        if snap.playing is not None and snap.playing != cache.playing:
            cache.playing = snap.playing
            events.append(PlayingChanged(snap.playing))

    if snap.playlist_id is not None:
        cache.playlist_id = snap.playlist_id

    if snap.path_resolved:
        path = snap.path
        if path is not None and not path.strip():
            path = None
        if path != cache.path:
            cache.path = path
            events.append(PathChanged(path))

    if snap.duration is not None and snap.duration >= 0 and snap.duration != cache.duration:
        cache.duration = snap.duration
        events.append(DurationChanged(snap.duration))

    position = snap.position
    if position is None and snap.position_fraction is not None and cache.duration is not None:
        if snap.position_fraction >= 0:
            position = snap.position_fraction * cache.duration
    if position is not None and position >= 0 and position != cache.position:
        cache.position = position
        events.append(PositionChanged(position))

    if snap.speed is not None and snap.speed > 0 and snap.speed != cache.speed:
        cache.speed = snap.speed
        events.append(SpeedChanged(snap.speed))

    return events
