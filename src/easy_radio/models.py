"""
Data models for episodes, playback state and Now Playing reporting.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from .errors import MediaLoadError, RadioError
from .utils import strip_html


class PlaybackStatus(Enum):
    """States of the playback state machine."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    SEEKING = "seeking"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Whether ticks run in this status."""
        return self not in (
            PlaybackStatus.IDLE,
            PlaybackStatus.STOPPED,
            PlaybackStatus.FAILED,
        )


class RemoteCommand(Enum):
    """Remote-control commands delivered by the OS media surface."""

    PLAY = "play"
    PAUSE = "pause"
    SKIP_FORWARD = "skip_forward"
    SKIP_BACKWARD = "skip_backward"
    CHANGE_POSITION = "change_position"


class CommandStatus(Enum):
    """Outcome reported back to the OS media surface."""

    SUCCESS = "success"
    COMMAND_FAILED = "command_failed"


@dataclass(frozen=True)
class Episode:
    """A single parsed feed item.

    The id is derived from the enclosure URL, which addresses the media
    resource and survives refetches. Items without an enclosure fall back to
    a content hash of title and description.
    """

    id: str
    title: str
    description: str
    enclosure_url: Optional[str] = None
    is_favorite: bool = False

    @staticmethod
    def make_id(
        title: str, description: str, enclosure_url: Optional[str]
    ) -> str:
        """Build the stable persistence key for an episode."""
        if enclosure_url:
            return enclosure_url
        digest = hashlib.sha1(
            f"{title}\n{description}".encode("utf-8")
        ).hexdigest()
        return f"sha1:{digest}"

    @classmethod
    def create(
        cls, title: str, description: str, enclosure_url: Optional[str]
    ) -> "Episode":
        """Create an Episode with its derived id."""
        return cls(
            id=cls.make_id(title, description, enclosure_url),
            title=title,
            description=description,
            enclosure_url=enclosure_url,
        )

    @property
    def plain_description(self) -> str:
        """Description with HTML markup removed."""
        return strip_html(self.description)

    def with_favorite(self, is_favorite: bool) -> "Episode":
        """Copy of this episode carrying the given favorite flag."""
        if is_favorite == self.is_favorite:
            return self
        return replace(self, is_favorite=is_favorite)


@dataclass
class PlaybackState:
    """Mutable playback state, owned by PlaybackController."""

    status: PlaybackStatus = PlaybackStatus.IDLE
    episode_id: Optional[str] = None
    position_seconds: float = 0.0
    duration_seconds: float = 0.0
    volume: float = 0.5
    is_dragging: bool = False

    def snapshot(self) -> "PlaybackSnapshot":
        """Freeze the current values for subscribers."""
        return PlaybackSnapshot(
            status=self.status,
            episode_id=self.episode_id,
            position_seconds=self.position_seconds,
            duration_seconds=self.duration_seconds,
            volume=self.volume,
            is_dragging=self.is_dragging,
        )


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Immutable view of PlaybackState delivered to subscribers."""

    status: PlaybackStatus
    episode_id: Optional[str]
    position_seconds: float
    duration_seconds: float
    volume: float
    is_dragging: bool

    @property
    def rate(self) -> float:
        """Playback rate as reported to the Now Playing surface."""
        return 1.0 if self.status is PlaybackStatus.PLAYING else 0.0


@dataclass(frozen=True)
class NowPlayingInfo:
    """Fields forwarded to the OS-level Now Playing surface."""

    title: str
    artist: str
    album: str
    position_seconds: float
    duration_seconds: float
    rate: float
    artwork: Optional[bytes] = None


@dataclass
class LoadResult:
    """Result of PlaybackController.load()."""

    success: bool
    snapshot: Optional[PlaybackSnapshot] = None
    error: Optional[MediaLoadError] = None
    restored_position: Optional[float] = None


@dataclass
class FeedResult:
    """Result of a feed refresh or cache load."""

    success: bool
    episodes: List[Episode] = field(default_factory=list)
    error: Optional[RadioError] = None
    from_cache: bool = False
