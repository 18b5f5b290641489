"""Pydantic models shared across the application.

Upstream payloads (``TrackItem``, ``EpisodeItem``, ``Album`` …) mirror the
subset of the Spotify Web API objects we read; unknown fields are ignored.
Formatted records are the display-ready output of ``core.normalizer``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

class TokenPair(BaseModel):
    """Access/refresh token pair with an absolute expiry (epoch seconds)."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: float = 0.0


class PkceChallenge(BaseModel):
    code_verifier: str
    code_challenge: str


class PlayingKind(str, Enum):
    TRACK = "Track"
    ALBUM = "Album"


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------

class Image(BaseModel):
    url: str
    height: Optional[int] = None
    width: Optional[int] = None


class Artist(BaseModel):
    id: Optional[str] = None
    name: str


class AlbumRef(BaseModel):
    """Album object embedded in a track (``track.album``)."""

    id: str
    name: str
    href: Optional[str] = None
    images: List[Image] = Field(default_factory=list)
    artists: List[Artist] = Field(default_factory=list)
    release_date: Optional[str] = None


class SimplifiedTrack(BaseModel):
    """Track as listed inside an album — carries no album object."""

    id: str
    name: str
    artists: List[Artist] = Field(default_factory=list)
    duration_ms: int = 0
    track_number: Optional[int] = None


class TrackItem(BaseModel):
    type: Literal["track"] = "track"
    id: str
    name: str
    artists: List[Artist] = Field(default_factory=list)
    duration_ms: int = 0
    album: AlbumRef


class EpisodeItem(BaseModel):
    type: Literal["episode"] = "episode"
    id: Optional[str] = None
    name: Optional[str] = None
    duration_ms: Optional[int] = None


PlayingItem = Annotated[Union[TrackItem, EpisodeItem], Field(discriminator="type")]


class AlbumTracks(BaseModel):
    items: List[SimplifiedTrack] = Field(default_factory=list)
    next: Optional[str] = None
    total: Optional[int] = None


class Album(BaseModel):
    type: Literal["album"] = "album"
    id: str
    name: str
    href: Optional[str] = None
    artists: List[Artist] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    release_date: Optional[str] = None
    release_date_precision: Optional[str] = None
    tracks: AlbumTracks = Field(default_factory=AlbumTracks)


class SimplifiedAlbum(BaseModel):
    """Album as returned by search — no tracklist."""

    id: str
    name: str
    href: Optional[str] = None
    artists: List[Artist] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)


class PlaybackState(BaseModel):
    """Response of ``GET /me/player/currently-playing``."""

    is_playing: bool = False
    progress_ms: Optional[int] = None
    currently_playing_type: Optional[str] = None
    item: Optional[PlayingItem] = None


class PlayHistory(BaseModel):
    track: TrackItem
    played_at: Optional[str] = None


class RecentlyPlayedPage(BaseModel):
    items: List[PlayHistory] = Field(default_factory=list)
    next: Optional[str] = None


# ---------------------------------------------------------------------------
# Formatted records
# ---------------------------------------------------------------------------

class FormattedTrack(BaseModel):
    type: Literal["Track"] = "Track"
    id: str
    name: str
    artists: str  # always joined, never a list
    image: Optional[Image] = None
    duration: str  # "mm:ss"
    album: str
    albumid: str
    progress: Optional[str] = None  # currently-playing only


class FormattedAlbum(BaseModel):
    type: Literal["Album"] = "Album"
    id: str
    name: str
    artists: str
    image: Optional[Image] = None
    duration: str
    release_date: Optional[str] = None
    release_date_precision: Optional[str] = None
    tracks: List[FormattedTrack] = Field(default_factory=list)


FormattedRecord = Union[FormattedTrack, FormattedAlbum]


class MinimalItem(BaseModel):
    """Compact album entry used for search results."""

    type: Literal["Album"] = "Album"
    id: str
    href: Optional[str] = None
    name: str
    artists: str
    image: Optional[Image] = None


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

class Note(BaseModel):
    """A logged track or album note — markdown body plus frontmatter."""

    folder: str
    note_id: str
    content: str = ""
    frontmatter: Dict[str, Any] = Field(default_factory=dict)
