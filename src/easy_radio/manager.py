"""
Main orchestration class for the podcast client.
"""

import logging

from .config import Settings
from .controller import PlaybackController
from .errors import MediaLoadError
from .library import EpisodeLibrary
from .models import FeedResult, LoadResult
from .now_playing import NowPlayingBridge
from .store import PersistenceStore


class RadioClient:
    """
    Orchestrates the episode list, playback and Now Playing reporting
    using dependency injection.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        settings: Settings,
        store: PersistenceStore,
        library: EpisodeLibrary,
        controller: PlaybackController,
        bridge: NowPlayingBridge,
    ):
        """Initialize with dependencies."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.store = store
        self.library = library
        self.controller = controller
        self.bridge = bridge

        self.logger.info(
            "Initializing RadioClient for feed: %s", self.settings.feed_url
        )

    async def refresh(self, offline: bool = False) -> FeedResult:
        """Load the episode list, falling back to the last-fetch cache."""
        if offline:
            return self.library.load_cached()

        result = await self.library.refresh()
        if result.success or self.library.episodes:
            return result

        cached = self.library.load_cached()
        if cached.success:
            self.logger.warning(
                "Feed refresh failed (%s); using cached feed", result.error
            )
            return cached
        return result

    async def play_episode(self, episode_id: str) -> LoadResult:
        """Load an episode and start playing it."""
        episode = self.library.get(episode_id)
        if episode is None:
            error = MediaLoadError(f"Unknown episode: {episode_id}")
            self.logger.error("%s", error)
            return LoadResult(success=False, error=error)

        result = await self.controller.load(episode)
        if result.success:
            self.controller.play()
            result.snapshot = self.controller.state
        return result

    def forget_position(self, episode_id: str) -> bool:
        """Clear the saved position for an episode."""
        return self.store.clear_position(episode_id)

    def close(self) -> None:
        """Stop playback and detach the Now Playing bridge."""
        self.bridge.detach()
        self.controller.close()
