"""Link/reference resolver — decides how an album's tracks appear in its note."""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Union

from core.models import FormattedAlbum, FormattedTrack, MinimalItem, TrackItem
from core.normalizer import normalize_track
from core.ports import NoteStore


def wikilink(note_id: str, label: str) -> str:
    """Cross-reference to the note keyed by *note_id*, shown as *label*."""
    return f"[[{note_id}|{label}]]"


def as_wikilink(record: Union[FormattedTrack, FormattedAlbum, MinimalItem]) -> str:
    return wikilink(record.id, record.name)


def album_wikilink(track: FormattedTrack) -> str:
    """Link from a track to the album it was played from."""
    return wikilink(track.albumid, track.album)


async def tracks_as_links(
    notes: NoteStore,
    folder: str,
    tracks: Sequence[Union[FormattedTrack, TrackItem, Mapping[str, Any]]],
    album: FormattedAlbum,
    always_create_track_files: bool,
) -> List[str]:
    """Return one tracklist token per track, in input order.

    - note for the track exists → link it and record *album* on that note
    - otherwise a link when *always_create_track_files*, else the plain name
    """
    tokens: List[str] = []
    for raw in tracks:
        track = normalize_track(raw)
        if await notes.note_exists(folder, track.id):
            await notes.append_album_reference(folder, track.id, album)
            tokens.append(as_wikilink(track))
        elif always_create_track_files:
            tokens.append(as_wikilink(track))
        else:
            tokens.append(track.name)
    return tokens
