"""
Durable key-value persistence for favorites and playback positions.

Both namespaces live in one flat JSON blob::

    {"version": 1, "favorites": ["<episode id>", ...],
     "positions": {"<episode id>": 42.5, ...}}

The blob is read once when the store is created and kept resident. Every
mutation rewrites it immediately through Storage, so the resident copy and
the file never diverge.
"""

import logging
import math
import threading
from typing import Any, Dict, FrozenSet, Optional, Set

from .errors import PersistenceError
from .storage import Storage

STORE_FILE = "player_state.json"
STORE_VERSION = 1


class PersistenceStore:
    """Favorites and last-known positions keyed by episode id.

    Create one instance per process and pass it to the components that
    need it. All methods are synchronous and safe to call from more than one
    thread; writes are serialized by an internal lock.
    """

    def __init__(self, storage: Storage, file_name: str = STORE_FILE):
        """Initialize with storage and load the persisted blob."""
        self.storage = storage
        self.path = storage.join_path(file_name)
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._favorites: Set[str] = set()
        self._positions: Dict[str, float] = {}
        self._load()

    # Favorites

    def set_favorite(self, episode_id: str) -> bool:
        """Mark an episode as favorite; repeated calls are harmless."""
        with self._lock:
            if episode_id in self._favorites:
                return True
            return self._commit(
                self._favorites | {episode_id}, self._positions
            )

    def clear_favorite(self, episode_id: str) -> bool:
        """Remove an episode from favorites."""
        with self._lock:
            if episode_id not in self._favorites:
                return True
            return self._commit(
                self._favorites - {episode_id}, self._positions
            )

    def toggle_favorite(self, episode_id: str) -> bool:
        """Flip the favorite flag and return the resulting value.

        The read and the write happen under one lock hold. When the write
        fails the flag is unchanged and its current value is returned.
        """
        with self._lock:
            if episode_id in self._favorites:
                favorites = self._favorites - {episode_id}
            else:
                favorites = self._favorites | {episode_id}
            self._commit(favorites, self._positions)
            return episode_id in self._favorites

    def is_favorite(self, episode_id: str) -> bool:
        """Check whether an episode is a favorite."""
        return episode_id in self._favorites

    def favorites(self) -> FrozenSet[str]:
        """All favorite episode ids."""
        with self._lock:
            return frozenset(self._favorites)

    # Positions

    def save_position(self, episode_id: str, seconds: float) -> bool:
        """Store the last playback position for an episode."""
        try:
            value = _validate_position(seconds)
        except PersistenceError as e:
            self.logger.warning(
                "Not saving position for %s: %s", episode_id, e
            )
            return False

        with self._lock:
            if self._positions.get(episode_id) == value:
                return True
            positions = dict(self._positions)
            positions[episode_id] = value
            return self._commit(self._favorites, positions)

    def get_position(self, episode_id: str) -> Optional[float]:
        """Return the saved position, or None if nothing was saved."""
        return self._positions.get(episode_id)

    def clear_position(self, episode_id: str) -> bool:
        """Forget the saved position for an episode."""
        with self._lock:
            if episode_id not in self._positions:
                return True
            positions = dict(self._positions)
            del positions[episode_id]
            return self._commit(self._favorites, positions)

    def clear(self) -> bool:
        """Remove every favorite and position."""
        with self._lock:
            return self._commit(set(), {})

    # Internals

    def _load(self) -> None:
        """Load the blob from disk, skipping malformed entries."""
        data = self.storage.read_json(self.path)
        if data is None:
            self.logger.debug("No saved player state at %s", self.path)
            return

        version = data.get("version")
        if version != STORE_VERSION:
            self.logger.warning(
                "Player state version %r differs from %d, loading anyway",
                version,
                STORE_VERSION,
            )

        favorites = data.get("favorites", [])
        if isinstance(favorites, list):
            self._favorites = {f for f in favorites if isinstance(f, str)}

        positions = data.get("positions", {})
        if isinstance(positions, dict):
            for episode_id, seconds in positions.items():
                try:
                    self._positions[episode_id] = _validate_position(seconds)
                except PersistenceError as e:
                    self.logger.warning(
                        "Skipping saved position for %s: %s", episode_id, e
                    )

        self.logger.info(
            "Loaded %d favorites and %d positions",
            len(self._favorites),
            len(self._positions),
        )

    def _commit(
        self, favorites: Set[str], positions: Dict[str, float]
    ) -> bool:
        """Write new state to disk, then adopt it. Caller holds the lock.

        On a failed write the resident state is left unchanged.
        """
        data: Dict[str, Any] = {
            "version": STORE_VERSION,
            "favorites": sorted(favorites),
            "positions": positions,
        }
        if not self.storage.write_json(self.path, data):
            self.logger.error(
                "Failed to persist player state to %s", self.path
            )
            return False
        self._favorites = favorites
        self._positions = positions
        return True


def _validate_position(seconds: Any) -> float:
    """Coerce a position to a finite, non-negative float."""
    if isinstance(seconds, bool):
        raise PersistenceError(f"invalid position {seconds!r}")
    try:
        value = float(seconds)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"invalid position {seconds!r}") from e
    if not math.isfinite(value) or value < 0:
        raise PersistenceError(f"invalid position {seconds!r}")
    return value
