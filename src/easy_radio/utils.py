"""
Small text and time helpers shared across the package.
"""

import math
import re

from bs4 import BeautifulSoup

_REPEATED_SPACES = re.compile(r" {2,}")


def collapse_spaces(text: str) -> str:
    """Collapse runs of spaces into a single space."""
    return _REPEATED_SPACES.sub(" ", text)


def strip_html(markup: str) -> str:
    """Return the visible text of an HTML fragment."""
    if not markup or "<" not in markup and "&" not in markup:
        return markup
    soup = BeautifulSoup(markup, "html.parser")
    return soup.get_text(" ", strip=True)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(value, upper))


def format_time(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS for an hour or more."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
