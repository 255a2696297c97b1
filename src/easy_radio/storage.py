"""
File layer for the player state blob and the feed cache.

No business logic lives here. Writes go through a temporary file that is
fsynced and atomically renamed into place, so a crash right after a write
never leaves a torn file behind.
"""

import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional


class Storage:
    """Reads and durable writes under one data directory."""

    def __init__(self, base_dir: str = "./data"):
        """Initialize with the data directory."""
        self.base_dir = base_dir
        self.logger = logging.getLogger(__name__)

    def ensure_directory(self, path: str) -> None:
        """Create a directory and its parents if missing."""
        os.makedirs(path, exist_ok=True)

    def file_exists(self, path: str) -> bool:
        """Whether path exists."""
        return os.path.exists(path)

    def join_path(self, *parts: str) -> str:
        """Join path parts relative to the data directory."""
        return os.path.join(self.base_dir, *parts)

    def read_json(self, path: str) -> Optional[Dict[str, Any]]:
        """Load a JSON object; None when missing, unreadable or not a dict."""
        if not self.file_exists(path):
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, IOError) as e:
            self.logger.warning("Could not read JSON from %s: %s", path, e)
            return None
        return data if isinstance(data, dict) else None

    def write_json(self, path: str, data: Dict[str, Any]) -> bool:
        """Serialize data as strict JSON and write it durably."""
        try:
            payload = json.dumps(
                data, indent=2, ensure_ascii=False, allow_nan=False
            )
        except (TypeError, ValueError) as e:
            self.logger.error("Could not serialize JSON for %s: %s", path, e)
            return False
        return self.write_bytes(path, payload.encode("utf-8"))

    def read_bytes(self, path: str) -> Optional[bytes]:
        """Raw file contents, or None when the file cannot be read."""
        try:
            with open(path, "rb") as f:
                return f.read()
        except IOError:
            return None

    def write_bytes(self, path: str, data: bytes) -> bool:
        """Replace the file at path with data; False on any I/O error."""
        directory = os.path.dirname(path) or "."
        tmp_path = None
        try:
            self.ensure_directory(directory)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=".tmp-", suffix=os.path.basename(path)
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
            return True
        except IOError as e:
            self.logger.error("Write failed for %s: %s", path, e)
            return False
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
