"""
Factory functions for creating RadioClient instances.

This module provides simple factory functions that wire up dependencies
clearly. Exactly one PersistenceStore is created per client and shared by
every component that reads or writes favorites and positions.
"""

import functools
import logging
from typing import Optional

from .config import Settings
from .controller import EngineFactory, PlaybackController
from .downloader import fetch_feed
from .library import EpisodeLibrary, FeedFetcher
from .manager import RadioClient
from .media import ClockEngine, extract_artwork, probe_duration
from .now_playing import LoggingSurface, NowPlayingBridge, NowPlayingSurface
from .parser import FeedParser
from .storage import Storage
from .store import PersistenceStore


def create_store(data_dir: str) -> PersistenceStore:
    """Create the persistence store for a data directory."""
    return PersistenceStore(Storage(data_dir))


def create_client(
    settings: Optional[Settings] = None,
    engine_factory: EngineFactory = ClockEngine,
    surface: Optional[NowPlayingSurface] = None,
    fetcher: Optional[FeedFetcher] = None,
) -> RadioClient:
    """Create a fully wired RadioClient."""
    settings = settings or Settings.from_env()
    logger = logging.getLogger(__name__)
    logger.info("Creating RadioClient with data dir %s", settings.data_dir)

    storage = Storage(settings.data_dir)
    store = PersistenceStore(storage)

    library = EpisodeLibrary(
        settings.feed_url,
        store,
        storage,
        parser=FeedParser(show_name=settings.show_name),
        fetcher=fetcher
        or functools.partial(fetch_feed, timeout=settings.request_timeout),
    )

    controller = PlaybackController(
        engine_factory,
        store,
        probe=functools.partial(
            probe_duration, timeout=settings.request_timeout
        ),
        tick_interval=settings.tick_interval,
        skip_interval=settings.skip_interval,
        remember_position=settings.remember_position,
    )

    bridge = NowPlayingBridge(
        controller,
        surface or LoggingSurface(),
        artist=settings.artist,
        album=settings.album,
        artwork_loader=functools.partial(
            extract_artwork, timeout=settings.request_timeout
        ),
    )
    bridge.attach()

    return RadioClient(settings, store, library, controller, bridge)
