"""
Integration tests for the wired RadioClient.
"""

import pathlib
import unittest
from unittest.mock import Mock, patch

import requests

from easy_radio.config import ARTIST, Settings
from easy_radio.factory import create_client, create_store
from easy_radio.manager import RadioClient
from easy_radio.models import PlaybackStatus

from tests.base import AsyncRadioTestBase, create_rss_content
from tests.utils import FakeEngine, RecordingSurface

FEED_URL = "http://test.com/rss"


class TestRadioClientIntegration(AsyncRadioTestBase):
    """Integration test for the client built by create_client."""

    async def asyncSetUp(self) -> None:
        """Set up test environment."""
        media_path = pathlib.Path(self.test_dir, "episode.mp3")
        media_path.write_bytes(b"\x00" * 128)
        self.media_url = media_path.as_uri()
        self.rss_content = create_rss_content(
            [
                {
                    "title": "Local Episode",
                    "description": "Stored on disk",
                    "enclosure_url": self.media_url,
                },
                {"title": "No Audio", "description": "Text only"},
            ]
        )
        self.settings = Settings(
            data_dir=self.test_dir, feed_url=FEED_URL, tick_interval=3600.0
        )
        self.surface = RecordingSurface()
        self.client = self.create_client()

    async def asyncTearDown(self) -> None:
        """Clean up test environment."""
        self.client.close()

    def create_client(self) -> RadioClient:
        """Create a client with fake audio output."""
        return create_client(
            self.settings, engine_factory=FakeEngine, surface=self.surface
        )

    def mock_feed(self, mock_get: Mock) -> None:
        """Serve the test feed from requests.get."""
        mock_response = Mock()
        mock_response.content = self.rss_content
        mock_response.raise_for_status.return_value = None
        mock_get.return_value = mock_response

    @patch("requests.get")
    async def test_refresh_from_network(self, mock_get: Mock) -> None:
        """Test the complete refresh flow."""
        self.mock_feed(mock_get)

        result = await self.client.refresh()

        self.assertTrue(result.success)
        self.assertEqual(
            [e.title for e in self.client.library.episodes],
            ["Local Episode", "No Audio"],
        )
        mock_get.assert_called_once_with(FEED_URL, timeout=30.0)

    @patch("requests.get")
    async def test_refresh_falls_back_to_cache(self, mock_get: Mock) -> None:
        """Test that a failed first refresh uses the last fetch."""
        self.mock_feed(mock_get)
        await self.client.refresh()

        mock_get.side_effect = requests.exceptions.ConnectionError("down")
        client = self.create_client()
        try:
            result = await client.refresh()
        finally:
            client.close()

        self.assertTrue(result.success)
        self.assertTrue(result.from_cache)
        self.assertEqual(len(result.episodes), 2)

    async def test_refresh_offline(self) -> None:
        """Test that offline mode never touches the network."""
        with patch("requests.get") as mock_get:
            result = await self.client.refresh(offline=True)

        self.assertFalse(result.success)
        mock_get.assert_not_called()

    @patch("easy_radio.media.mutagen.File")
    @patch("requests.get")
    async def test_play_episode(self, mock_get: Mock, mock_file: Mock) -> None:
        """Test loading and playing an episode end to end."""
        self.mock_feed(mock_get)
        mock_file.return_value = Mock(info=Mock(length=300.0))
        await self.client.refresh()
        episode = self.client.library.episodes[0]

        result = await self.client.play_episode(episode.id)

        self.assertTrue(result.success)
        state = self.client.controller.state
        self.assertEqual(state.status, PlaybackStatus.PLAYING)
        self.assertEqual(state.duration_seconds, 300.0)
        info = self.surface.last
        self.assertIsNotNone(info)
        if info:
            self.assertEqual(info.title, "Local Episode")
            self.assertEqual(info.artist, ARTIST)
            self.assertEqual(info.rate, 1.0)

    @patch("requests.get")
    async def test_play_episode_without_audio(self, mock_get: Mock) -> None:
        """Test that an episode without an enclosure fails to load."""
        self.mock_feed(mock_get)
        await self.client.refresh()
        episode = self.client.library.episodes[1]

        result = await self.client.play_episode(episode.id)

        self.assertFalse(result.success)
        self.assertEqual(
            self.client.controller.state.status, PlaybackStatus.FAILED
        )

    async def test_play_unknown_episode(self) -> None:
        """Test playing an id that is not in the list."""
        result = await self.client.play_episode("http://test.com/none.mp3")

        self.assertFalse(result.success)
        self.assertEqual(
            self.client.controller.state.status, PlaybackStatus.IDLE
        )

    async def test_store_is_shared(self) -> None:
        """Test that every component uses the same store."""
        self.assertIs(self.client.library.store, self.client.store)

        self.client.store.save_position("ep", 12.0)
        self.assertTrue(self.client.forget_position("ep"))

        self.assertIsNone(create_store(self.test_dir).get_position("ep"))

    async def test_close_detaches_bridge(self) -> None:
        """Test that closing the client clears Now Playing."""
        self.client.close()

        self.assertEqual(
            self.client.controller.state.status, PlaybackStatus.IDLE
        )
        self.assertIsNone(self.client.bridge.info)


if __name__ == "__main__":
    unittest.main()
