"""
Tests for data models and shared helpers.
"""

import unittest

from easy_radio.models import Episode, PlaybackState, PlaybackStatus
from easy_radio.utils import clamp, collapse_spaces, format_time, strip_html

from tests.utils import create_test_episode


class TestEpisode(unittest.TestCase):
    """Test suite for Episode."""

    def test_id_prefers_enclosure_url(self) -> None:
        """Test the natural key of an episode."""
        episode = Episode.create("t", "d", "http://test.com/a.mp3")

        self.assertEqual(episode.id, "http://test.com/a.mp3")

    def test_id_falls_back_to_content_hash(self) -> None:
        """Test ids for episodes without media."""
        first = Episode.make_id("t", "d", None)

        self.assertTrue(first.startswith("sha1:"))
        self.assertEqual(first, Episode.make_id("t", "d", None))
        self.assertNotEqual(first, Episode.make_id("t", "other", None))

    def test_with_favorite(self) -> None:
        """Test copying with a favorite flag."""
        episode = create_test_episode()

        favorite = episode.with_favorite(True)

        self.assertTrue(favorite.is_favorite)
        self.assertFalse(episode.is_favorite)
        self.assertIs(episode.with_favorite(False), episode)

    def test_plain_description(self) -> None:
        """Test HTML stripping of descriptions."""
        episode = create_test_episode(
            description="<p>Guests: <a href='x'>Ann</a> &amp; Bob</p>"
        )

        self.assertEqual(episode.plain_description, "Guests: Ann & Bob")


class TestPlaybackState(unittest.TestCase):
    """Test suite for PlaybackState and snapshots."""

    def test_active_statuses(self) -> None:
        """Test which statuses run ticks."""
        inactive = {
            PlaybackStatus.IDLE,
            PlaybackStatus.STOPPED,
            PlaybackStatus.FAILED,
        }
        for status in PlaybackStatus:
            with self.subTest(status=status):
                self.assertEqual(status.is_active, status not in inactive)

    def test_snapshot_is_a_copy(self) -> None:
        """Test that snapshots do not follow later changes."""
        state = PlaybackState(status=PlaybackStatus.PLAYING)
        snapshot = state.snapshot()

        state.position_seconds = 10.0
        state.status = PlaybackStatus.PAUSED

        self.assertEqual(snapshot.position_seconds, 0.0)
        self.assertEqual(snapshot.rate, 1.0)
        self.assertEqual(state.snapshot().rate, 0.0)


class TestUtils(unittest.TestCase):
    """Test suite for text and time helpers."""

    def test_format_time(self) -> None:
        """Test time formatting."""
        self.assertEqual(format_time(0), "0:00")
        self.assertEqual(format_time(75.9), "1:15")
        self.assertEqual(format_time(3725), "1:02:05")
        self.assertEqual(format_time(float("nan")), "0:00")

    def test_clamp(self) -> None:
        """Test clamping."""
        self.assertEqual(clamp(-1, 0, 10), 0)
        self.assertEqual(clamp(11, 0, 10), 10)
        self.assertEqual(clamp(5, 0, 10), 5)

    def test_collapse_spaces(self) -> None:
        """Test space collapsing."""
        self.assertEqual(collapse_spaces("a   b  c"), "a b c")

    def test_strip_html_plain_text(self) -> None:
        """Test that plain text is returned unchanged."""
        self.assertEqual(strip_html("just text"), "just text")


if __name__ == "__main__":
    unittest.main()
