"""
Streaming RSS parser that turns a feed byte stream into Episode records.

The feed is pushed through an incremental pull parser chunk by chunk and the
resulting start/end events are consumed in a single loop. Per-item state
lives in an accumulator local to one ``parse`` call, so a parser instance can
be reused and shared freely.
"""

import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union

from .config import SHOW_NAME
from .errors import ParseError
from .models import Episode
from .utils import collapse_spaces

FeedSource = Union[bytes, bytearray, BinaryIO, Iterable[bytes]]

CHUNK_SIZE = 64 * 1024


class _ItemAccumulator:
    """Fields collected while inside one <item> element."""

    __slots__ = ("title_parts", "description_parts", "enclosure_attrs")

    def __init__(self) -> None:
        self.title_parts: List[str] = []
        self.description_parts: List[str] = []
        self.enclosure_attrs: Optional[dict] = None


class FeedParser:
    """Parse RSS 2.0 ``channel/item`` elements into episodes.

    Only ``title``, ``description`` and ``enclosure[url]`` inside an item
    are read; every other element is ignored. Parsing is all-or-nothing:
    malformed XML raises ParseError and no partial list is returned.
    """

    def __init__(
        self, show_name: str = SHOW_NAME, chunk_size: int = CHUNK_SIZE
    ):
        """Initialize with the show name stripped from descriptions."""
        self.show_name = show_name
        self.chunk_size = chunk_size
        self.logger = logging.getLogger(__name__)

    def parse(self, source: FeedSource) -> List[Episode]:
        """Parse a feed into episodes in document order.

        Args:
            source: Raw feed bytes, a binary file object, or an iterable
                of byte chunks.

        Returns:
            List of Episode objects.

        Raises:
            ParseError: If the XML is malformed or incomplete.
        """
        pull_parser = ET.XMLPullParser(events=("start", "end"))
        episodes: List[Episode] = []
        current: Optional[_ItemAccumulator] = None

        try:
            for chunk in _iter_chunks(source, self.chunk_size):
                pull_parser.feed(chunk)
                current = self._consume(pull_parser, current, episodes)
            pull_parser.close()
            self._consume(pull_parser, current, episodes)
        except ET.ParseError as e:
            self.logger.error("Feed parse error: %s", e)
            raise ParseError(f"Malformed feed XML: {e}") from e

        self.logger.debug("Parsed %d episodes from feed", len(episodes))
        return episodes

    def _consume(
        self,
        pull_parser: ET.XMLPullParser,
        current: Optional[_ItemAccumulator],
        episodes: List[Episode],
    ) -> Optional[_ItemAccumulator]:
        """Drain pending parser events, returning the open accumulator."""
        for event, elem in pull_parser.read_events():
            tag = elem.tag

            if event == "start":
                if tag == "item":
                    current = _ItemAccumulator()
                elif tag == "enclosure" and current is not None:
                    current.enclosure_attrs = dict(elem.attrib)
                continue

            if current is None:
                continue

            if tag == "title":
                current.title_parts.append("".join(elem.itertext()))
            elif tag == "description":
                current.description_parts.append("".join(elem.itertext()))
            elif tag == "item":
                episodes.append(self._finalize(current))
                current = None
                # Finished items are not needed by later events
                elem.clear()

        return current

    def _finalize(self, item: _ItemAccumulator) -> Episode:
        """Build an Episode from a closed item."""
        title = "".join(item.title_parts).strip()
        description = "".join(item.description_parts)
        if self.show_name:
            description = description.replace(self.show_name, "")
        description = collapse_spaces(description).strip()

        enclosure_url = None
        if item.enclosure_attrs:
            enclosure_url = (item.enclosure_attrs.get("url") or "").strip()
            enclosure_url = enclosure_url or None

        return Episode.create(title, description, enclosure_url)


def _iter_chunks(source: FeedSource, chunk_size: int) -> Iterator[bytes]:
    """Yield the feed as byte chunks regardless of how it was supplied."""
    if isinstance(source, (bytes, bytearray)):
        for start in range(0, len(source), chunk_size):
            yield bytes(source[start:start + chunk_size])
        return

    read = getattr(source, "read", None)
    if read is None:
        yield from source  # type: ignore[misc]
        return

    while True:
        chunk = read(chunk_size)
        if not chunk:
            return
        yield chunk
