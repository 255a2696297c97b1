"""
Bridge between PlaybackController and an OS-level Now Playing surface.

Outbound, controller snapshots are turned into NowPlayingInfo records and
pushed to the surface whenever something visible changes. Artwork is loaded
in a background task and merged in later, so time fields are never held up
by it. Inbound, remote-control commands are mapped onto controller calls.
"""

import asyncio
import logging
import math
from dataclasses import replace
from typing import Callable, Optional, Protocol

from .config import ALBUM, ARTIST
from .controller import PlaybackController
from .errors import ArtworkError
from .media import extract_artwork
from .models import (
    CommandStatus,
    Episode,
    NowPlayingInfo,
    PlaybackSnapshot,
    PlaybackStatus,
    RemoteCommand,
)

ArtworkLoader = Callable[[Optional[str]], Optional[bytes]]


class NowPlayingSurface(Protocol):
    """OS media-info surface (lock screen, control center, car display)."""

    def update(self, info: NowPlayingInfo) -> None:
        """Replace the displayed Now Playing info."""
        ...  # pylint: disable=unnecessary-ellipsis

    def clear(self) -> None:
        """Remove the Now Playing info."""
        ...  # pylint: disable=unnecessary-ellipsis


class LoggingSurface:
    """Surface that writes Now Playing updates to the log."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)
        self.info: Optional[NowPlayingInfo] = None

    def update(self, info: NowPlayingInfo) -> None:
        self.info = info
        self.logger.debug(
            "Now playing '%s' %.1f/%.1f rate=%.1f artwork=%s",
            info.title,
            info.position_seconds,
            info.duration_seconds,
            info.rate,
            "yes" if info.artwork else "no",
        )

    def clear(self) -> None:
        self.info = None
        self.logger.debug("Now playing cleared")


class NowPlayingBridge:  # pylint: disable=too-many-instance-attributes
    """Keeps a NowPlayingSurface in sync with a PlaybackController."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        controller: PlaybackController,
        surface: NowPlayingSurface,
        *,
        artist: str = ARTIST,
        album: str = ALBUM,
        artwork_loader: ArtworkLoader = extract_artwork,
        placeholder_artwork: Optional[bytes] = None,
        position_epsilon: float = 0.5,
    ):
        """Initialize with the controller to mirror and the target surface."""
        self.controller = controller
        self.surface = surface
        self.artist = artist
        self.album = album
        self.artwork_loader = artwork_loader
        self.placeholder_artwork = placeholder_artwork
        self.position_epsilon = position_epsilon
        self.logger = logging.getLogger(__name__)

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._last: Optional[PlaybackSnapshot] = None
        self._info: Optional[NowPlayingInfo] = None
        self._artwork: Optional[bytes] = placeholder_artwork
        self._artwork_episode_id: Optional[str] = None
        self._artwork_task: Optional["asyncio.Task[None]"] = None

    @property
    def info(self) -> Optional[NowPlayingInfo]:
        """Last info pushed to the surface."""
        return self._info

    def attach(self) -> None:
        """Start mirroring the controller."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.controller.subscribe(self._on_snapshot)
        self._on_snapshot(self.controller.state)

    def detach(self) -> None:
        """Stop mirroring and drop any pending artwork load."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_artwork()

    # Inbound remote commands

    def handle_command(
        self, command: RemoteCommand, value: Optional[float] = None
    ) -> CommandStatus:
        """Apply a remote-control command to the controller.

        Args:
            command: The command kind.
            value: Skip interval in seconds for SKIP_FORWARD and
                SKIP_BACKWARD (controller default when None), or the target
                time for CHANGE_POSITION (required).
        """
        if value is not None and not math.isfinite(value):
            ok = False
        elif command is RemoteCommand.PLAY:
            ok = self.controller.play()
        elif command is RemoteCommand.PAUSE:
            ok = self.controller.pause()
        elif command is RemoteCommand.SKIP_FORWARD:
            ok = self.controller.fast_forward(value)
        elif command is RemoteCommand.SKIP_BACKWARD:
            ok = self.controller.rewind(value)
        elif command is RemoteCommand.CHANGE_POSITION:
            ok = value is not None and self.controller.seek(value)
        else:
            ok = False

        status = CommandStatus.SUCCESS if ok else CommandStatus.COMMAND_FAILED
        self.logger.debug(
            "Remote command %s(%s) -> %s", command.value, value, status.value
        )
        return status

    # Outbound updates

    def _on_snapshot(self, snapshot: PlaybackSnapshot) -> None:
        episode = self.controller.episode
        if snapshot.status is PlaybackStatus.IDLE or episode is None:
            self._clear()
            return
        if not self._is_meaningful(snapshot):
            return
        if episode.id != self._artwork_episode_id:
            self._start_artwork(episode)
        self._last = snapshot
        self._push(
            NowPlayingInfo(
                title=episode.title,
                artist=self.artist,
                album=self.album,
                position_seconds=snapshot.position_seconds,
                duration_seconds=snapshot.duration_seconds,
                rate=snapshot.rate,
                artwork=self._artwork,
            )
        )

    def _is_meaningful(self, snapshot: PlaybackSnapshot) -> bool:
        last = self._last
        if last is None:
            return True
        if (
            snapshot.status,
            snapshot.episode_id,
            snapshot.duration_seconds,
        ) != (last.status, last.episode_id, last.duration_seconds):
            return True
        moved = abs(snapshot.position_seconds - last.position_seconds)
        return moved >= self.position_epsilon

    def _push(self, info: NowPlayingInfo) -> None:
        self._info = info
        try:
            self.surface.update(info)
        except Exception:  # pylint: disable=broad-except
            self.logger.exception("Now Playing surface update failed")

    def _clear(self) -> None:
        if self._last is None and self._info is None:
            return
        self._cancel_artwork()
        self._last = None
        self._info = None
        try:
            self.surface.clear()
        except Exception:  # pylint: disable=broad-except
            self.logger.exception("Now Playing surface clear failed")

    # Artwork

    def _start_artwork(self, episode: Episode) -> None:
        self._cancel_artwork()
        self._artwork_episode_id = episode.id
        self._artwork = self.placeholder_artwork
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop; skipping artwork")
            return
        self._artwork_task = loop.create_task(self._load_artwork(episode))

    async def _load_artwork(self, episode: Episode) -> None:
        try:
            artwork = await asyncio.to_thread(
                self.artwork_loader, episode.enclosure_url
            )
        except ArtworkError as e:
            self.logger.info(
                "Artwork unavailable for '%s': %s", episode.title, e
            )
            return
        except Exception:  # pylint: disable=broad-except
            self.logger.exception(
                "Artwork loader failed for '%s'", episode.title
            )
            return

        if episode.id != self._artwork_episode_id or artwork is None:
            return
        self._artwork = artwork
        if self._info is not None:
            self._push(replace(self._info, artwork=artwork))

    def _cancel_artwork(self) -> None:
        if self._artwork_task is not None:
            self._artwork_task.cancel()
            self._artwork_task = None
        self._artwork_episode_id = None
        self._artwork = self.placeholder_artwork
