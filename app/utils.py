"""Utility helpers for the ReelScout service."""

from __future__ import annotations

from typing import Any

TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"


def build_image_url(path: str | None, size: str) -> str | None:
    """Return an absolute TMDB image URL for ``path`` at ``size``."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{TMDB_IMAGE_BASE_URL}/{size}{path}"


def format_runtime(minutes: int | None) -> str | None:
    """Format a runtime in minutes as ``"2h 5m"``."""

    if not minutes or minutes <= 0:
        return None
    hours, remainder = divmod(int(minutes), 60)
    if not hours:
        return f"{remainder}m"
    if not remainder:
        return f"{hours}h"
    return f"{hours}h {remainder}m"


def format_seasons(count: int | None) -> str | None:
    if not count or count <= 0:
        return None
    return f"{count} season" if count == 1 else f"{count} seasons"


def clean_text(value: Any) -> str | None:
    """Return a stripped string, treating blanks and ``N/A`` as missing."""

    if value is None:
        return None
    text = str(value).strip()
    if not text or text.upper() == "N/A":
        return None
    return text
