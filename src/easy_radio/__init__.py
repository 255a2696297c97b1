"""
Podcast client package - Handles fetching and parsing the RSS feed,
playback with resumable positions, favorites, and Now Playing reporting.

This package provides a modular approach with separate components for
data models, parsing, persistence, playback control, and OS media
integration.
"""

from .config import Settings
from .controller import PlaybackController
from .factory import create_client, create_store
from .library import EpisodeLibrary
from .manager import RadioClient
from .models import (
    CommandStatus,
    Episode,
    NowPlayingInfo,
    PlaybackSnapshot,
    PlaybackState,
    PlaybackStatus,
    RemoteCommand,
)
from .now_playing import NowPlayingBridge
from .parser import FeedParser
from .store import PersistenceStore

__all__ = [
    "create_client",
    "create_store",
    "CommandStatus",
    "Episode",
    "EpisodeLibrary",
    "FeedParser",
    "NowPlayingBridge",
    "NowPlayingInfo",
    "PersistenceStore",
    "PlaybackController",
    "PlaybackSnapshot",
    "PlaybackState",
    "PlaybackStatus",
    "RadioClient",
    "RemoteCommand",
    "Settings",
]
