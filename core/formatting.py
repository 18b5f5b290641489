"""Display helpers for durations, artist lists and cover images."""

from __future__ import annotations

from typing import Optional, Sequence

from core.models import Artist, Image


def format_ms(ms: int) -> str:
    """Render milliseconds as zero-padded ``mm:ss`` (minutes are not capped)."""
    minutes, seconds = divmod(max(int(ms), 0) // 1000, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_artists(artists: Sequence[Artist]) -> str:
    return ", ".join(artist.name for artist in artists)


def select_image(images: Sequence[Image]) -> Optional[Image]:
    """Pick the cover shown next to a record: the *last* element.

    Spotify lists images widest-first, so the last one is the smallest.  The
    rule is positional on purpose: the API does not promise width/height on
    every image, so sizes cannot be compared reliably.
    """
    if not images:
        return None
    return images[-1]
