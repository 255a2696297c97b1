"""
Runtime configuration loaded from environment variables.
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_FEED_URL = (
    "https://www.bestradioyouhaveneverheard.com/podcasts/index.xml"
)
SHOW_NAME = "Best Radio You Have Never Heard"
ARTIST = "Best Radio"
ALBUM = "Best Radio You Have Never Heard"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Settings:  # pylint: disable=too-many-instance-attributes
    """Client settings.

    Defaults describe the single show this client was built for; every
    value can be overridden through ``EASY_RADIO_*`` environment variables.
    """

    data_dir: str = "./data"
    feed_url: str = DEFAULT_FEED_URL
    show_name: str = SHOW_NAME
    artist: str = ARTIST
    album: str = ALBUM
    remember_position: bool = True
    tick_interval: float = 0.5
    skip_interval: float = 15.0
    request_timeout: float = 30.0

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        """Build settings from the environment, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            data_dir=env.get("EASY_RADIO_DATA_DIRECTORY") or defaults.data_dir,
            feed_url=env.get("EASY_RADIO_FEED_URL") or defaults.feed_url,
            remember_position=_read_bool(
                env, "EASY_RADIO_REMEMBER_POSITION", defaults.remember_position
            ),
            tick_interval=_read_positive_float(
                env, "EASY_RADIO_TICK_INTERVAL", defaults.tick_interval
            ),
            skip_interval=_read_positive_float(
                env, "EASY_RADIO_SKIP_INTERVAL", defaults.skip_interval
            ),
            request_timeout=_read_positive_float(
                env, "EASY_RADIO_REQUEST_TIMEOUT", defaults.request_timeout
            ),
        )


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logging.getLogger(__name__).warning(
        "Ignoring invalid boolean %s=%r, using %s", name, raw, default
    )
    return default


def _read_positive_float(
    env: Mapping[str, str], name: str, default: float
) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        value = -1.0
    if not math.isfinite(value) or value <= 0:
        logging.getLogger(__name__).warning(
            "Ignoring invalid number %s=%r, using %s", name, raw, default
        )
        return default
    return value
