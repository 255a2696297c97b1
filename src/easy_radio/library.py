"""
Episode list component: feed refresh, last-fetch cache, search, favorites.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from . import downloader
from .errors import NetworkError, ParseError, RadioError
from .models import Episode, FeedResult
from .parser import FeedParser
from .storage import Storage
from .store import PersistenceStore

FEED_CACHE_FILE = "feed.xml"

FeedFetcher = Callable[[str], bytes]


class EpisodeLibrary:
    """Holds the current episode list and its favorite flags.

    The list is replaced wholesale by every successful refresh; a failed
    refresh leaves it as it was. The raw bytes of the last successful fetch
    are kept as a single cache file for offline start-up.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        feed_url: str,
        store: PersistenceStore,
        storage: Storage,
        parser: Optional[FeedParser] = None,
        fetcher: Optional[FeedFetcher] = None,
    ):
        """Initialize with the feed location and shared dependencies."""
        self.feed_url = feed_url
        self.store = store
        self.storage = storage
        self.parser = parser or FeedParser()
        self.logger = logging.getLogger(__name__)
        self._fetcher = fetcher
        self._episodes: List[Episode] = []
        self._refresh_task: Optional["asyncio.Future[bytes]"] = None
        self._generation = 0

    @property
    def cache_path(self) -> str:
        """Location of the last-fetch cache."""
        return self.storage.join_path(FEED_CACHE_FILE)

    @property
    def episodes(self) -> List[Episode]:
        """Current episodes with favorite flags applied."""
        return [self._decorate(episode) for episode in self._episodes]

    def get(self, episode_id: str) -> Optional[Episode]:
        """Find an episode by id."""
        for episode in self._episodes:
            if episode.id == episode_id:
                return self._decorate(episode)
        return None

    def search(self, text: str) -> List[Episode]:
        """Episodes whose title or description contains text."""
        needle = text.strip().casefold()
        if not needle:
            return self.episodes
        return [
            episode
            for episode in self.episodes
            if needle in episode.title.casefold()
            or needle in episode.description.casefold()
        ]

    def favorites(self) -> List[Episode]:
        """Favorite episodes in feed order."""
        return [episode for episode in self.episodes if episode.is_favorite]

    def toggle_favorite(self, episode_id: str) -> bool:
        """Flip an episode's favorite flag and return the new value."""
        is_favorite = self.store.toggle_favorite(episode_id)
        self.logger.info(
            "%s favorite: %s",
            "Added" if is_favorite else "Removed",
            episode_id,
        )
        return is_favorite

    async def refresh(self) -> FeedResult:
        """Fetch and parse the feed, replacing the list on success.

        A newer refresh cancels an older one still in flight; the older
        call then returns a failed result and changes nothing.
        """
        if self._refresh_task is not None:
            self._refresh_task.cancel()
        self._generation += 1
        generation = self._generation

        fetch_task = asyncio.ensure_future(
            asyncio.to_thread(self._fetch, self.feed_url)
        )
        self._refresh_task = fetch_task
        try:
            content = await fetch_task
        except asyncio.CancelledError:
            if generation != self._generation:
                self.logger.info("Discarding superseded feed refresh")
                return FeedResult(
                    success=False, error=NetworkError("Refresh superseded")
                )
            raise
        except NetworkError as e:
            return self._failed(e)
        finally:
            if self._refresh_task is fetch_task:
                self._refresh_task = None

        if generation != self._generation:
            return FeedResult(
                success=False, error=NetworkError("Refresh superseded")
            )

        result = self._apply(content)
        if result.success and not self.storage.write_bytes(
            self.cache_path, content
        ):
            self.logger.warning("Could not update feed cache")
        return result

    def load_cached(self) -> FeedResult:
        """Populate the list from the last successful fetch."""
        content = self.storage.read_bytes(self.cache_path)
        if not content:
            self.logger.info("No cached feed at %s", self.cache_path)
            return self._failed(NetworkError("No cached feed available"))
        result = self._apply(content)
        result.from_cache = True
        return result

    def _fetch(self, url: str) -> bytes:
        fetcher = self._fetcher or downloader.fetch_feed
        return fetcher(url)

    def _apply(self, content: bytes) -> FeedResult:
        try:
            episodes = self.parser.parse(content)
        except ParseError as e:
            return self._failed(e)
        self._episodes = episodes
        self.logger.info("Loaded %d episodes", len(episodes))
        return FeedResult(success=True, episodes=self.episodes)

    def _failed(self, error: RadioError) -> FeedResult:
        self.logger.error("No episodes available: %s", error)
        return FeedResult(success=False, episodes=self.episodes, error=error)

    def _decorate(self, episode: Episode) -> Episode:
        return episode.with_favorite(self.store.is_favorite(episode.id))
