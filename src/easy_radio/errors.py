"""
Error taxonomy for the podcast client.

Every failure a public operation can report is one of these types. They are
returned inside result objects or logged; none of them is meant to escape to
the top of the application.
"""


class RadioError(Exception):
    """Base exception for all easy_radio errors."""


class NetworkError(RadioError):
    """Feed fetch failed (connection, timeout, HTTP status, empty body)."""


class ParseError(RadioError):
    """Feed XML was malformed; no partial episode list is produced."""


class MediaLoadError(RadioError):
    """Episode media URL is invalid, unreachable or has no duration."""


class MediaEngineError(RadioError):
    """Unrecoverable error reported by the media engine during playback."""


class ArtworkError(RadioError):
    """Artwork could not be fetched or extracted."""


class PersistenceError(RadioError):
    """Favorites or positions could not be serialized."""
