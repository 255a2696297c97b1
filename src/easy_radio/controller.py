"""
Playback state machine wrapping a single media engine.

PlaybackController mediates transport commands, periodic position ticks and
user-driven seeking. It runs on one asyncio event loop: blocking work such as
probing the media duration happens in a worker thread, and its result is
applied back on the loop. A newer ``load()`` or ``close()`` supersedes any
load still in flight, so a late probe result can never overwrite the state
of a newer selection.

Control commands return True when applied. In IDLE, LOADING and FAILED they
are silent no-ops that return False, except ``stop()`` which abandons a
load in flight.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from .errors import MediaEngineError, MediaLoadError
from .media import (
    ClockEngine,
    MediaEngine,
    probe_duration,
    validate_media_url,
)
from .models import (
    Episode,
    LoadResult,
    PlaybackSnapshot,
    PlaybackState,
    PlaybackStatus,
)
from .store import PersistenceStore
from .utils import clamp

Subscriber = Callable[[PlaybackSnapshot], None]
EngineFactory = Callable[[], MediaEngine]
DurationProbe = Callable[[str], float]

_PLAYABLE = (
    PlaybackStatus.READY,
    PlaybackStatus.PAUSED,
    PlaybackStatus.STOPPED,
)
_SEEKABLE = (
    PlaybackStatus.READY,
    PlaybackStatus.PLAYING,
    PlaybackStatus.PAUSED,
)


class PlaybackController:  # pylint: disable=too-many-instance-attributes
    """Owns the playback state and the one active media engine."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        engine_factory: EngineFactory = ClockEngine,
        store: Optional[PersistenceStore] = None,
        *,
        probe: DurationProbe = probe_duration,
        tick_interval: float = 0.5,
        skip_interval: float = 15.0,
        remember_position: bool = True,
        volume: float = 0.5,
    ):
        """Initialize with an engine factory and optional position store."""
        self.logger = logging.getLogger(__name__)
        self.tick_interval = tick_interval
        self.skip_interval = skip_interval
        self.remember_position = remember_position
        self.last_error: Optional[Exception] = None

        self._engine_factory = engine_factory
        self._store = store
        self._probe = probe
        self._state = PlaybackState(volume=clamp(volume, 0.0, 1.0))
        self._episode: Optional[Episode] = None
        self._engine: Optional[MediaEngine] = None
        self._subscribers: List[Subscriber] = []
        self._tick_task: Optional["asyncio.Task[None]"] = None
        self._probe_task: Optional["asyncio.Future[float]"] = None
        self._generation = 0
        self._drag_value = 0.0
        self._last_saved: Optional[float] = None

    @property
    def state(self) -> PlaybackSnapshot:
        """Snapshot of the current playback state."""
        return self._state.snapshot()

    @property
    def episode(self) -> Optional[Episode]:
        """Episode currently bound to the controller."""
        return self._episode

    # Subscriptions

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for state snapshots; returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Stop delivering snapshots to callback."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # Loading

    async def load(self, episode: Episode) -> LoadResult:
        """Bind a new episode, probing its duration.

        The previous engine, its ticks and any load still in flight are
        released first. A saved position is applied before ticks start.
        """
        self._release()
        self._generation += 1
        generation = self._generation
        self._episode = episode
        self._last_saved = None
        self.last_error = None
        self._state = PlaybackState(
            status=PlaybackStatus.LOADING,
            episode_id=episode.id,
            volume=self._state.volume,
        )
        self.logger.info("Loading episode '%s'", episode.title)
        self._notify()

        try:
            url = validate_media_url(episode.enclosure_url)
        except MediaLoadError as e:
            return self._fail_load(e)

        probe_task = asyncio.ensure_future(
            asyncio.to_thread(self._probe, url)
        )
        self._probe_task = probe_task
        try:
            duration = await probe_task
        except asyncio.CancelledError:
            if generation != self._generation:
                return self._superseded(episode)
            # The caller cancelled this load itself
            self._reset()
            raise
        except MediaLoadError as e:
            if generation != self._generation:
                return self._superseded(episode)
            return self._fail_load(e)
        finally:
            if self._probe_task is probe_task:
                self._probe_task = None

        if generation != self._generation:
            return self._superseded(episode)

        engine = self._engine_factory()
        try:
            engine.open(url)
            engine.set_volume(self._state.volume)
        except MediaEngineError as e:
            _close_quietly(engine, self.logger)
            return self._fail_load(
                MediaLoadError(f"Media engine rejected {url}: {e}")
            )

        self._engine = engine
        self._state.duration_seconds = duration
        self._state.status = PlaybackStatus.READY
        restored = self._restore_position(episode, duration)
        self.logger.info(
            "Episode '%s' ready (%.1f seconds)", episode.title, duration
        )
        self._notify()
        self._start_ticks()
        return LoadResult(
            success=True, snapshot=self.state, restored_position=restored
        )

    def close(self) -> None:
        """Release the engine and any pending work, returning to IDLE."""
        self._generation += 1
        self._reset()

    # Transport commands

    def play(self) -> bool:
        """Start or resume playback."""
        status = self._state.status
        if status is PlaybackStatus.PLAYING:
            return True
        if status not in _PLAYABLE or self._engine is None:
            return self._ignore("play")
        if not self._engine_call(self._engine.play):
            return False
        self._state.status = PlaybackStatus.PLAYING
        self.logger.debug("Playing '%s'", self._title())
        self._notify()
        self._start_ticks()
        return True

    def pause(self) -> bool:
        """Pause playback, keeping the position."""
        status = self._state.status
        if status is PlaybackStatus.PAUSED:
            return True
        if status is not PlaybackStatus.PLAYING or self._engine is None:
            return self._ignore("pause")
        if not self._engine_call(self._engine.pause):
            return False
        self._state.status = PlaybackStatus.PAUSED
        position = self._read_position()
        if position is None:
            return False
        self._state.position_seconds = self._clamp(position)
        self._save_position(self._state.position_seconds)
        self._notify()
        return True

    def toggle_play_pause(self) -> bool:
        """Pause when playing, otherwise play."""
        if self._state.status is PlaybackStatus.PLAYING:
            return self.pause()
        return self.play()

    def seek(self, seconds: float) -> bool:
        """Move to an absolute position, clamped to the episode bounds."""
        prior = self._state.status
        if prior not in _SEEKABLE or self._engine is None:
            return self._ignore("seek")

        target = self._clamp(seconds)
        self._state.status = PlaybackStatus.SEEKING
        self._notify()
        if not self._engine_call(self._engine.seek, target):
            return False

        self._state.position_seconds = target
        self._state.status = prior
        self._save_position(target)
        self._notify()
        return True

    def rewind(self, interval: Optional[float] = None) -> bool:
        """Jump back by interval seconds, never before the start."""
        if self._state.status not in _SEEKABLE or self._engine is None:
            return self._ignore("rewind")
        position = self._read_position()
        if position is None:
            return False
        step = self.skip_interval if interval is None else interval
        return self.seek(position - step)

    def fast_forward(self, interval: Optional[float] = None) -> bool:
        """Jump ahead by interval seconds, never past the end."""
        if self._state.status not in _SEEKABLE or self._engine is None:
            return self._ignore("fast_forward")
        position = self._read_position()
        if position is None:
            return False
        step = self.skip_interval if interval is None else interval
        return self.seek(position + step)

    def stop(self) -> bool:
        """Pause the engine and rewind to the start.

        While LOADING this abandons the load; the pending ``load()`` returns
        a superseded result and the episode must be loaded again to play.
        """
        status = self._state.status
        if status is PlaybackStatus.STOPPED:
            return True
        if status is PlaybackStatus.LOADING:
            self._generation += 1
            self._release()
            self._state.position_seconds = 0.0
            self._state.status = PlaybackStatus.STOPPED
            self.logger.debug("Stopped loading '%s'", self._title())
            self._notify()
            return True
        if status not in _SEEKABLE or self._engine is None:
            return self._ignore("stop")

        self._cancel_ticks()
        if not self._engine_call(self._engine.pause):
            return False
        if not self._engine_call(self._engine.seek, 0.0):
            return False
        self._state.position_seconds = 0.0
        self._state.is_dragging = False
        self._state.status = PlaybackStatus.STOPPED
        self.logger.debug("Stopped '%s'", self._title())
        self._notify()
        return True

    def set_volume(self, volume: float) -> bool:
        """Set the output volume in [0, 1]."""
        self._state.volume = clamp(volume, 0.0, 1.0)
        if self._engine is not None and not self._engine_call(
            self._engine.set_volume, self._state.volume
        ):
            return False
        self._notify()
        return True

    # Slider dragging

    def start_dragging(self) -> bool:
        """Suspend tick updates while the user drags the position slider."""
        if self._state.status not in _SEEKABLE or self._engine is None:
            return self._ignore("start_dragging")
        self._state.is_dragging = True
        self._drag_value = self._state.position_seconds
        self._notify()
        return True

    def drag_to(self, seconds: float) -> bool:
        """Record the slider value during a drag."""
        if not self._state.is_dragging:
            return False
        self._drag_value = self._clamp(seconds)
        self._state.position_seconds = self._drag_value
        self._notify()
        return True

    def stop_dragging(self) -> bool:
        """End the drag with exactly one seek to the last slider value."""
        if not self._state.is_dragging:
            return False
        self._state.is_dragging = False
        return self.seek(self._drag_value)

    # Ticks

    def tick(self) -> Optional[PlaybackSnapshot]:
        """Sample the engine position and publish it.

        Called by the periodic tick task; returns the published snapshot,
        or None when nothing was published.
        """
        if not self._state.status.is_active or self._engine is None:
            return None
        if self._state.is_dragging:
            return None

        position = self._read_position()
        if position is None:
            return None
        position = self._clamp(position)
        self._state.position_seconds = position

        duration = self._state.duration_seconds
        if (
            self._state.status is PlaybackStatus.PLAYING
            and duration > 0
            and position >= duration
        ):
            self._finish()
            return self.state

        self._save_position(position)
        return self._notify()

    async def _run_ticks(self) -> None:
        while self._state.status.is_active:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def _start_ticks(self) -> None:
        if self._tick_task is not None and not self._tick_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop; ticks are manual")
            return
        self._tick_task = loop.create_task(self._run_ticks())

    def _cancel_ticks(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    # Internals

    def _finish(self) -> None:
        """Handle the end of the media: stop and forget the position."""
        self.logger.info("Finished '%s'", self._title())
        self._cancel_ticks()
        if self._engine is not None:
            if not self._engine_call(self._engine.pause):
                return
            if not self._engine_call(self._engine.seek, 0.0):
                return
        self._state.position_seconds = 0.0
        self._state.status = PlaybackStatus.STOPPED
        store = self._position_store()
        if store is not None and self._episode is not None:
            store.clear_position(self._episode.id)
            self._last_saved = None
        self._notify()

    def _restore_position(
        self, episode: Episode, duration: float
    ) -> Optional[float]:
        """Seek to the saved position before any tick can run."""
        store = self._position_store()
        if store is None or self._engine is None:
            return None
        saved = store.get_position(episode.id)
        if saved is None or saved <= 0 or saved >= duration:
            return None
        try:
            self._engine.seek(saved)
        except MediaEngineError as e:
            self.logger.warning(
                "Could not restore position %.1f for '%s': %s",
                saved,
                episode.title,
                e,
            )
            return None
        self._state.position_seconds = saved
        self._last_saved = saved
        self.logger.info(
            "Restored '%s' to %.1f seconds", episode.title, saved
        )
        return saved

    def _save_position(self, position: float) -> None:
        store = self._position_store()
        if store is None or self._episode is None:
            return
        if position == self._last_saved:
            return
        if position <= 0:
            store.clear_position(self._episode.id)
        else:
            store.save_position(self._episode.id, position)
        self._last_saved = position

    def _position_store(self) -> Optional[PersistenceStore]:
        return self._store if self.remember_position else None

    def _read_position(self) -> Optional[float]:
        """Current engine position, or None if the engine failed."""
        if self._engine is None:
            return None
        try:
            return self._engine.current_time()
        except MediaEngineError as e:
            self._fail(e)
            return None

    def _clamp(self, seconds: float) -> float:
        duration = self._state.duration_seconds
        if duration > 0:
            return clamp(seconds, 0.0, duration)
        return max(0.0, seconds)

    def _engine_call(self, method: Callable[..., Any], *args: Any) -> bool:
        try:
            method(*args)
        except MediaEngineError as e:
            self._fail(e)
            return False
        return True

    def _fail(self, error: Exception) -> None:
        """Enter FAILED; terminal until the next load()."""
        self.last_error = error
        self.logger.error(
            "Playback failed for '%s': %s", self._title(), error
        )
        self._release()
        self._state.status = PlaybackStatus.FAILED
        self._state.is_dragging = False
        self._notify()

    def _fail_load(self, error: MediaLoadError) -> LoadResult:
        self.last_error = error
        self._state.status = PlaybackStatus.FAILED
        self.logger.error("Could not load '%s': %s", self._title(), error)
        self._notify()
        return LoadResult(success=False, snapshot=self.state, error=error)

    def _superseded(self, episode: Episode) -> LoadResult:
        self.logger.info("Discarding superseded load of '%s'", episode.title)
        return LoadResult(
            success=False, error=MediaLoadError("Load was superseded")
        )

    def _release(self) -> None:
        """Drop the engine binding, its ticks and any in-flight probe."""
        self._cancel_ticks()
        if self._probe_task is not None:
            self._probe_task.cancel()
            self._probe_task = None
        if self._engine is not None:
            _close_quietly(self._engine, self.logger)
            self._engine = None

    def _reset(self) -> None:
        self._release()
        self._episode = None
        self._last_saved = None
        self._state = PlaybackState(volume=self._state.volume)
        self._notify()

    def _ignore(self, command: str) -> bool:
        self.logger.debug(
            "Ignoring %s while %s", command, self._state.status.value
        )
        return False

    def _title(self) -> str:
        return self._episode.title if self._episode else "<none>"

    def _notify(self) -> PlaybackSnapshot:
        snapshot = self._state.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:  # pylint: disable=broad-except
                self.logger.exception("Playback subscriber raised")
        return snapshot


def _close_quietly(engine: MediaEngine, logger: logging.Logger) -> None:
    try:
        engine.close()
    except MediaEngineError as e:
        logger.warning("Media engine close failed: %s", e)
