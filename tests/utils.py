"""
Test utilities for creating episodes and fake collaborators.
"""

from dataclasses import replace
from typing import Any, List, Optional, Tuple

from easy_radio.errors import MediaEngineError
from easy_radio.models import Episode, NowPlayingInfo


def create_test_episode(**kwargs: Any) -> Episode:
    """Create a test Episode, deriving the id like the parser does."""
    title = kwargs.pop("title", "Test Episode")
    description = kwargs.pop("description", "Test description")
    enclosure_url = kwargs.pop(
        "enclosure_url", "http://test.com/episode.mp3"
    )
    episode = Episode.create(title, description, enclosure_url)
    if kwargs:
        episode = replace(episode, **kwargs)
    return episode


class FakeEngine:
    """Media engine whose position is set by the test."""

    def __init__(self) -> None:
        self.url: Optional[str] = None
        self.position = 0.0
        self.playing = False
        self.volume: Optional[float] = None
        self.closed = False
        self.calls: List[Tuple[str, Any]] = []
        self.fail_on: Optional[str] = None

    @property
    def seeks(self) -> List[float]:
        """Targets of every seek call, in order."""
        return [arg for name, arg in self.calls if name == "seek"]

    def _record(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self.fail_on == name:
            raise MediaEngineError(f"{name} failed")

    def open(self, url: str) -> None:
        self._record("open", url)
        self.url = url

    def play(self) -> None:
        self._record("play")
        self.playing = True

    def pause(self) -> None:
        self._record("pause")
        self.playing = False

    def seek(self, seconds: float) -> None:
        self._record("seek", seconds)
        self.position = seconds

    def current_time(self) -> float:
        self._record("current_time")
        return self.position

    def set_volume(self, volume: float) -> None:
        self._record("set_volume", volume)
        self.volume = volume

    def close(self) -> None:
        self._record("close")
        self.closed = True


class RecordingSurface:
    """Now Playing surface that records every update."""

    def __init__(self) -> None:
        self.updates: List[NowPlayingInfo] = []
        self.clears = 0

    @property
    def last(self) -> Optional[NowPlayingInfo]:
        """Most recent info, or None after a clear."""
        return self.updates[-1] if self.updates else None

    def update(self, info: NowPlayingInfo) -> None:
        self.updates.append(info)

    def clear(self) -> None:
        self.clears += 1
