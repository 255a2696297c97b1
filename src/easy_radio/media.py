"""
Media engine interface, a clock-driven engine, and media probing.

The controller talks to audio output only through the MediaEngine protocol.
Probing helpers are blocking and meant to be run off the event loop.
"""

import io
import logging
import os
import struct
import time
from typing import Callable, Optional, Protocol, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

import mutagen
import requests
from mutagen.id3 import ID3, ID3NoHeaderError

from .errors import ArtworkError, MediaEngineError, MediaLoadError

DEFAULT_TIMEOUT = 30
DURATION_HEAD_BYTES = 512 * 1024
ARTWORK_HEAD_BYTES = 2 * 1024 * 1024
SUPPORTED_SCHEMES = ("http", "https", "file")


class MediaEngine(Protocol):
    """Minimal transport surface of an audio backend."""

    def open(self, url: str) -> None:
        """Bind the engine to a media resource."""
        ...  # pylint: disable=unnecessary-ellipsis

    def play(self) -> None:
        """Start or resume output."""
        ...  # pylint: disable=unnecessary-ellipsis

    def pause(self) -> None:
        """Pause output, keeping the position."""
        ...  # pylint: disable=unnecessary-ellipsis

    def seek(self, seconds: float) -> None:
        """Move to an absolute position."""
        ...  # pylint: disable=unnecessary-ellipsis

    def current_time(self) -> float:
        """Current position in seconds."""
        ...  # pylint: disable=unnecessary-ellipsis

    def set_volume(self, volume: float) -> None:
        """Set output volume in [0, 1]."""
        ...  # pylint: disable=unnecessary-ellipsis

    def close(self) -> None:
        """Release the media resource."""
        ...  # pylint: disable=unnecessary-ellipsis


class ClockEngine:
    """Engine that keeps time without producing audio.

    The position advances with a monotonic clock while playing. It backs
    the command line player and any host that renders audio elsewhere.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._url: Optional[str] = None
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self.volume = 1.0

    def open(self, url: str) -> None:
        self._url = url
        self._offset = 0.0
        self._started_at = None

    def play(self) -> None:
        if self._url is None:
            raise MediaEngineError("No media is open")
        if self._started_at is None:
            self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is not None:
            self._offset = self.current_time()
            self._started_at = None

    def seek(self, seconds: float) -> None:
        if self._url is None:
            raise MediaEngineError("No media is open")
        self._offset = max(0.0, seconds)
        if self._started_at is not None:
            self._started_at = self._clock()

    def current_time(self) -> float:
        if self._started_at is None:
            return self._offset
        return self._offset + (self._clock() - self._started_at)

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def close(self) -> None:
        self._url = None
        self._started_at = None


def validate_media_url(url: Optional[str]) -> str:
    """Return url if it addresses a playable resource.

    Raises:
        MediaLoadError: If the URL is absent or unparseable.
    """
    if not url or not url.strip():
        raise MediaLoadError("Episode has no media URL")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise MediaLoadError(f"Unsupported media URL: {url!r}")
    if parsed.scheme != "file" and not parsed.netloc:
        raise MediaLoadError(f"Media URL has no host: {url!r}")
    return url


def _content_length(headers) -> Optional[int]:
    try:
        size = int(headers.get("Content-Length"))
    except (AttributeError, TypeError, ValueError):
        return None
    return size if size > 0 else None


def _read_media(
    url: str, limit: Optional[int] = None, timeout: float = DEFAULT_TIMEOUT
) -> Tuple[io.BytesIO, Optional[int]]:
    """Read a media resource, or its first ``limit`` bytes, into memory.

    Returns the buffer and the full size of the resource when known.
    """
    parsed = urlparse(url)
    if parsed.scheme == "file":
        path = url2pathname(parsed.path)
        with open(path, "rb") as f:
            data = f.read(limit if limit else -1)
        return io.BytesIO(data), os.path.getsize(path)

    buffer = io.BytesIO()
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        total_size = _content_length(response.headers)
        for chunk in response.iter_content(chunk_size=8192):
            if chunk:  # Filter out keep-alive chunks
                buffer.write(chunk)
            if limit and buffer.tell() >= limit:
                break
    buffer.seek(0)
    return buffer, total_size


def _estimate_length(
    info, head_size: int, total_size: Optional[int]
) -> float:
    """Duration from stream info, scaled up when only a head was parsed.

    Parsers without a frame count in the header derive the length from the
    bytes they saw, so a truncated read is extrapolated with the average
    bitrate over the full resource size.
    """
    length = getattr(info, "length", 0) or 0
    bitrate = getattr(info, "bitrate", 0)
    if (
        total_size
        and total_size > head_size
        and isinstance(bitrate, (int, float))
        and bitrate > 0
    ):
        length = max(length, total_size * 8 / bitrate)
    return length


def probe_duration(
    url: Optional[str],
    timeout: float = DEFAULT_TIMEOUT,
    head_bytes: int = DURATION_HEAD_BYTES,
) -> float:
    """Determine the duration of a media resource in seconds.

    Only the first ``head_bytes`` are read. When the resource is longer the
    duration is extrapolated from its size and average bitrate.

    Raises:
        MediaLoadError: If the resource is invalid, unreachable, or its
            duration cannot be read.
    """
    logger = logging.getLogger(__name__)
    url = validate_media_url(url)
    logger.info("Probing duration of %s", url)

    try:
        buffer, total_size = _read_media(
            url, limit=head_bytes, timeout=timeout
        )
    except (requests.exceptions.RequestException, IOError) as e:
        logger.error("Media fetch failed for %s: %s", url, e)
        raise MediaLoadError(f"Could not fetch {url}: {e}") from e

    head_size = len(buffer.getvalue())
    try:
        audio = mutagen.File(buffer)
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Failed to parse audio %s: %s", url, e)
        raise MediaLoadError(f"Could not parse {url}: {e}") from e

    length = _estimate_length(
        getattr(audio, "info", None), head_size, total_size
    )
    if length <= 0:
        logger.error("No duration found for %s", url)
        raise MediaLoadError(f"Could not determine duration of {url}")

    logger.debug("Duration of %s is %.1f seconds", url, length)
    return float(length)


def extract_artwork(
    url: Optional[str],
    timeout: float = DEFAULT_TIMEOUT,
    head_bytes: int = ARTWORK_HEAD_BYTES,
) -> Optional[bytes]:
    """Return embedded cover art (ID3 APIC) from the start of a resource.

    Only the first ``head_bytes`` are read; ID3v2 tags sit at the start of
    the file. Returns None when there is no embedded artwork.

    Raises:
        ArtworkError: If the resource cannot be read or its tag is corrupt.
    """
    try:
        url = validate_media_url(url)
    except MediaLoadError as e:
        raise ArtworkError(str(e)) from e

    try:
        buffer, _ = _read_media(url, limit=head_bytes, timeout=timeout)
    except (requests.exceptions.RequestException, IOError) as e:
        raise ArtworkError(f"Could not fetch {url}: {e}") from e

    try:
        tags = ID3(buffer)
    except ID3NoHeaderError:
        return None
    except (mutagen.MutagenError, struct.error, ValueError) as e:
        raise ArtworkError(f"Unreadable tag in {url}: {e}") from e

    pictures = tags.getall("APIC")
    if not pictures:
        return None
    return pictures[0].data
