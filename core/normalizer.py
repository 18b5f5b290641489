"""Response normalizer — raw Spotify payloads → formatted records.

Provides:
- normalize_track / normalize_album / normalize_simplified_album
- normalize_currently_playing (dispatch on requested kind)
- normalize_recently_played (page order preserved, most recent first)
- normalize_search_results
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from core.errors import (
    MissingAlbumLinkError,
    UnsupportedItemKindError,
    UnsupportedPlaybackStateError,
    UpstreamError,
)
from core.formatting import format_artists, format_ms, select_image
from core.models import (
    Album,
    AlbumRef,
    EpisodeItem,
    FormattedAlbum,
    FormattedTrack,
    MinimalItem,
    PlaybackState,
    PlayingKind,
    RecentlyPlayedPage,
    SimplifiedAlbum,
    TrackItem,
)

AlbumFetcher = Callable[[str], Awaitable[Album]]


# ---------------------------------------------------------------------------
# Tracks & albums
# ---------------------------------------------------------------------------

def normalize_track(
    track: Union[TrackItem, FormattedTrack, Mapping[str, Any]],
) -> FormattedTrack:
    """Map a raw track to a ``FormattedTrack``.

    Already formatted tracks (model or serialized dict) pass through
    unchanged, so normalizing twice yields the same record.
    """
    if isinstance(track, FormattedTrack):
        return track
    if isinstance(track, Mapping):
        if track.get("type") == "Track":
            return FormattedTrack.model_validate(track)
        track = TrackItem.model_validate(track)

    return FormattedTrack(
        id=track.id,
        name=track.name,
        artists=format_artists(track.artists),
        image=select_image(track.album.images),
        duration=format_ms(track.duration_ms),
        album=track.album.name,
        albumid=track.album.id,
    )


def album_length_ms(album: Album) -> int:
    return sum(track.duration_ms for track in album.tracks.items)


def normalize_album(album: Union[Album, Mapping[str, Any]]) -> FormattedAlbum:
    """Map a full album (with tracklist) to a ``FormattedAlbum``.

    Album listings return simplified tracks without an album object, so the
    album's own name/id/images are injected into each before normalizing.
    """
    if isinstance(album, Mapping):
        album = Album.model_validate(album)

    ref = AlbumRef(id=album.id, name=album.name, images=album.images)
    tracks = [
        normalize_track(
            TrackItem(
                id=item.id,
                name=item.name,
                artists=item.artists,
                duration_ms=item.duration_ms,
                album=ref,
            )
        )
        for item in album.tracks.items
    ]

    return FormattedAlbum(
        id=album.id,
        name=album.name,
        artists=format_artists(album.artists),
        image=select_image(album.images),
        duration=format_ms(album_length_ms(album)),
        release_date=album.release_date,
        release_date_precision=album.release_date_precision,
        tracks=tracks,
    )


def normalize_simplified_album(
    album: Union[SimplifiedAlbum, Mapping[str, Any]],
) -> MinimalItem:
    if isinstance(album, Mapping):
        album = SimplifiedAlbum.model_validate(album)
    return MinimalItem(
        id=album.id,
        href=album.href,
        name=album.name,
        artists=format_artists(album.artists),
        image=select_image(album.images),
    )


# ---------------------------------------------------------------------------
# Currently playing / recently played
# ---------------------------------------------------------------------------

async def normalize_currently_playing(
    state: Union[PlaybackState, Mapping[str, Any]],
    kind: Union[PlayingKind, str],
    fetch_album: AlbumFetcher,
) -> Union[FormattedTrack, FormattedAlbum]:
    """Turn the playback state into the record the user asked to log.

    ``kind`` Track → the playing track plus live progress.
    ``kind`` Album → the full album, fetched through *fetch_album*.
    Episodes are rejected before anything else is looked at, including
    states where Spotify reports ``currently_playing_type: episode`` but
    omits the item.
    """
    if isinstance(state, Mapping):
        if _is_episode(state.get("currently_playing_type"), state.get("item")):
            raise UnsupportedItemKindError()
        try:
            state = PlaybackState.model_validate(state)
        except ValidationError as exc:
            raise UpstreamError("Malformed PlaybackState payload from Spotify") from exc

    item = state.item
    if _is_episode(state.currently_playing_type, item):
        raise UnsupportedItemKindError()
    if item is None:
        raise UnsupportedPlaybackStateError()

    if kind == PlayingKind.TRACK:
        track = normalize_track(item)
        return track.model_copy(update={"progress": format_ms(state.progress_ms or 0)})

    if kind == PlayingKind.ALBUM:
        href = item.album.href
        if not href:
            raise MissingAlbumLinkError()
        album = await fetch_album(href)
        return normalize_album(album)

    raise UnsupportedPlaybackStateError()


def normalize_recently_played(
    page: Union[RecentlyPlayedPage, Mapping[str, Any]],
) -> List[FormattedTrack]:
    if isinstance(page, Mapping):
        page = RecentlyPlayedPage.model_validate(page)
    return [normalize_track(history.track) for history in page.items]


def normalize_search_results(
    payload: Optional[Mapping[str, Any]],
    kind: Union[PlayingKind, str],
) -> List[Union[FormattedTrack, MinimalItem]]:
    """Flatten a ``/search`` response for *kind* (``None`` → empty list)."""
    if not payload:
        return []
    if kind == PlayingKind.TRACK:
        items = (payload.get("tracks") or {}).get("items") or []
        return [normalize_track(item) for item in items if item]
    if kind == PlayingKind.ALBUM:
        items = (payload.get("albums") or {}).get("items") or []
        return [normalize_simplified_album(item) for item in items if item]
    raise UnsupportedPlaybackStateError(f"Search kind not supported: {kind}")


def _is_episode(playing_type: Any, item: Any) -> bool:
    if playing_type == "episode" or isinstance(item, EpisodeItem):
        return True
    return isinstance(item, Mapping) and item.get("type") == "episode"
