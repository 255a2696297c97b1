"""
Feed retrieval: HTTP download and local file loading.
"""

import logging

import requests

from .errors import NetworkError

DEFAULT_TIMEOUT = 30


def fetch_feed(rss_url: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Download RSS content from URL.

    Raises:
        NetworkError: On connection failure, HTTP error or empty body.
    """
    logger = logging.getLogger(__name__)
    logger.info("Fetching feed %s", rss_url)
    try:
        response = requests.get(rss_url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("Feed fetch failed for %s: %s", rss_url, e)
        raise NetworkError(f"Could not fetch {rss_url}: {e}") from e

    if not response.content:
        logger.error("Feed response from %s was empty", rss_url)
        raise NetworkError(f"Empty response from {rss_url}")

    logger.info("Fetched feed (%d bytes)", len(response.content))
    return response.content


def load_rss_from_file(rss_file_path: str) -> bytes:
    """Load RSS content from local file.

    Raises:
        NetworkError: If the file is missing, unreadable or empty.
    """
    logger = logging.getLogger(__name__)
    logger.info("Reading feed file %s", rss_file_path)
    try:
        with open(rss_file_path, "rb") as f:
            rss_content = f.read()
    except FileNotFoundError as e:
        logger.error("Feed file not found: %s", rss_file_path)
        raise NetworkError(f"RSS file not found: {rss_file_path}") from e
    except IOError as e:
        logger.error("Feed file %s unreadable: %s", rss_file_path, e)
        raise NetworkError(f"Could not read {rss_file_path}: {e}") from e

    if not rss_content:
        logger.error("Feed file %s is empty", rss_file_path)
        raise NetworkError(f"RSS file is empty: {rss_file_path}")

    logger.info("Read feed file (%d bytes)", len(rss_content))
    return rss_content
