"""
Tests for PersistenceStore favorites and positions.
"""

import json
import math
import os
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from easy_radio.store import STORE_FILE, STORE_VERSION

from tests.base import RadioTestBase


class TestPersistenceStore(RadioTestBase):
    """Test suite for PersistenceStore."""

    def test_empty_store(self) -> None:
        """Test a store over an empty directory."""
        store = self.create_store()

        self.assertEqual(store.favorites(), frozenset())
        self.assertIsNone(store.get_position("ep"))
        self.assertFalse(store.is_favorite("ep"))

    def test_set_favorite_is_idempotent(self) -> None:
        """Test that setting a favorite twice equals setting it once."""
        store = self.create_store()

        self.assertTrue(store.set_favorite("ep"))
        self.assertTrue(store.set_favorite("ep"))

        self.assertEqual(store.favorites(), frozenset({"ep"}))

    def test_clear_favorite_is_idempotent(self) -> None:
        """Test clearing a favorite that is not set."""
        store = self.create_store()
        store.set_favorite("ep")

        self.assertTrue(store.clear_favorite("ep"))
        self.assertTrue(store.clear_favorite("ep"))

        self.assertFalse(store.is_favorite("ep"))

    def test_toggle_favorite(self) -> None:
        """Test toggling returns the new flag."""
        store = self.create_store()

        self.assertTrue(store.toggle_favorite("ep"))
        self.assertFalse(store.toggle_favorite("ep"))
        self.assertFalse(store.is_favorite("ep"))

    def test_concurrent_toggles_are_serialized(self) -> None:
        """Test that parallel toggles each flip the flag exactly once."""
        store = self.create_store()
        write_json = store.storage.write_json

        def slow_write(path, data):
            time.sleep(0.001)
            return write_json(path, data)

        with patch.object(store.storage, "write_json", side_effect=slow_write):
            with ThreadPoolExecutor(max_workers=8) as pool:
                flags = list(
                    pool.map(lambda _: store.toggle_favorite("ep"), range(40))
                )

        self.assertEqual(flags.count(True), 20)
        self.assertEqual(flags.count(False), 20)
        self.assertFalse(store.is_favorite("ep"))
        self.assertFalse(self.create_store().is_favorite("ep"))

    def test_failed_toggle_reports_unchanged_flag(self) -> None:
        """Test toggling when the state file cannot be written."""
        store = self.create_store()

        with patch.object(store.storage, "write_json", return_value=False):
            self.assertFalse(store.toggle_favorite("ep"))

        self.assertFalse(store.is_favorite("ep"))

    def test_position_round_trip_across_instances(self) -> None:
        """Test that a saved position survives a fresh store instance."""
        store = self.create_store()
        store.save_position("ep", 42.5)
        store.set_favorite("fav")

        reloaded = self.create_store()

        self.assertEqual(reloaded.get_position("ep"), 42.5)
        self.assertTrue(reloaded.is_favorite("fav"))

    def test_clear_position(self) -> None:
        """Test that a cleared position stays cleared after reload."""
        store = self.create_store()
        store.save_position("ep", 10.0)

        self.assertTrue(store.clear_position("ep"))

        self.assertIsNone(store.get_position("ep"))
        self.assertIsNone(self.create_store().get_position("ep"))

    def test_invalid_positions_are_rejected(self) -> None:
        """Test that negative and non-finite positions are not saved."""
        store = self.create_store()

        for value in (-1.0, math.nan, math.inf, "abc", True):
            self.assertFalse(store.save_position("ep", value))  # type: ignore

        self.assertIsNone(store.get_position("ep"))

    def test_blob_layout(self) -> None:
        """Test the on-disk format."""
        store = self.create_store()
        store.set_favorite("b")
        store.set_favorite("a")
        store.save_position("a", 3.0)

        with open(store.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        self.assertEqual(
            data,
            {
                "version": STORE_VERSION,
                "favorites": ["a", "b"],
                "positions": {"a": 3.0},
            },
        )

    def test_corrupt_file_starts_empty(self) -> None:
        """Test that an unreadable blob is ignored."""
        with open(
            os.path.join(self.test_dir, STORE_FILE), "w", encoding="utf-8"
        ) as f:
            f.write("{not json")

        store = self.create_store()

        self.assertEqual(store.favorites(), frozenset())
        self.assertTrue(store.set_favorite("ep"))

    def test_malformed_entries_are_skipped(self) -> None:
        """Test that bad entries do not discard good ones."""
        with open(
            os.path.join(self.test_dir, STORE_FILE), "w", encoding="utf-8"
        ) as f:
            json.dump(
                {
                    "version": STORE_VERSION,
                    "favorites": ["good", 7],
                    "positions": {"good": 12, "bad": -3, "worse": "x"},
                },
                f,
            )

        store = self.create_store()

        self.assertEqual(store.favorites(), frozenset({"good"}))
        self.assertEqual(store.get_position("good"), 12.0)
        self.assertIsNone(store.get_position("bad"))
        self.assertIsNone(store.get_position("worse"))

    def test_failed_write_keeps_resident_state(self) -> None:
        """Test that a failed write does not change what the store reports."""
        store = self.create_store()
        store.set_favorite("kept")

        with patch.object(store.storage, "write_json", return_value=False):
            self.assertFalse(store.set_favorite("lost"))
            self.assertFalse(store.save_position("kept", 5.0))

        self.assertFalse(store.is_favorite("lost"))
        self.assertIsNone(store.get_position("kept"))
        self.assertEqual(self.create_store().favorites(), {"kept"})

    def test_clear_removes_everything(self) -> None:
        """Test clearing the whole store."""
        store = self.create_store()
        store.set_favorite("ep")
        store.save_position("ep", 1.0)

        self.assertTrue(store.clear())

        reloaded = self.create_store()
        self.assertEqual(reloaded.favorites(), frozenset())
        self.assertIsNone(reloaded.get_position("ep"))


if __name__ == "__main__":
    unittest.main()
