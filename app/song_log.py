"""Song logging workflow — currently playing item → note.

Steps for ``log_current``:
  1. Fetch playback state (auth ensured by the client)
  2. Normalize to a Track or Album record
  3. Prompt the user for their thoughts (cancel → nothing written)
  4. Write / update the note; for albums, resolve the tracklist links
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from app.spotify_client import SpotifyClient
from core.linker import album_wikilink, as_wikilink, tracks_as_links
from core.models import FormattedAlbum, FormattedTrack, MinimalItem, Note, PlayingKind
from core.normalizer import (
    normalize_currently_playing,
    normalize_recently_played,
    normalize_search_results,
)
from core.ports import NoteStore, Prompt

logger = logging.getLogger(__name__)

PROMPT_TITLE = "Enter thoughts:"
_LOG_HEADING = "## Log"
_TRACKLIST_HEADING = "## Tracklist"
_LOG_HEADING_RE = re.compile(rf"^{re.escape(_LOG_HEADING)}$", re.MULTILINE)

Record = Union[FormattedTrack, FormattedAlbum]


class FixedPrompt:
    """Prompt whose answer is already known (e.g. submitted with the request)."""

    def __init__(self, text: Optional[str]):
        self._text = text

    async def prompt_for_text(self, title: str, initial: Record) -> Optional[str]:
        return self._text


class SongLogger:
    def __init__(
        self,
        client: SpotifyClient,
        notes: NoteStore,
        *,
        folder: str,
        always_create_track_files: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._client = client
        self._notes = notes
        self._folder = folder
        self._always_create_track_files = always_create_track_files
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def preview_current(self, kind: PlayingKind) -> Record:
        state = await self._client.get_currently_playing()
        return await normalize_currently_playing(state, kind, self._client.fetch_album)

    async def recently_played(self, limit: int | None = None) -> List[FormattedTrack]:
        return normalize_recently_played(await self._client.get_recently_played(limit))

    async def search(
        self, query: str, kind: PlayingKind
    ) -> List[Union[FormattedTrack, MinimalItem]]:
        return normalize_search_results(await self._client.search(query, kind), kind)

    async def read_note(self, note_id: str) -> Optional[Note]:
        return await self._notes.read_note(self._folder, note_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def log_current(self, kind: PlayingKind, prompt: Prompt) -> Optional[Note]:
        """Log the currently playing track/album; ``None`` if the prompt was cancelled."""
        record = await self.preview_current(kind)
        thoughts = await prompt.prompt_for_text(PROMPT_TITLE, record)
        if thoughts is None:
            logger.info("Logging %s %s cancelled", record.type, record.id)
            return None
        return await self.log_record(record, thoughts)

    async def log_record(self, record: Record, thoughts: str) -> Note:
        if isinstance(record, FormattedAlbum):
            return await self._log_album(record, thoughts)
        return await self._log_track(record, thoughts)

    async def _log_track(self, track: FormattedTrack, thoughts: str) -> Note:
        existing = await self._notes.read_note(self._folder, track.id)
        album_link = album_wikilink(track)

        previous = existing.frontmatter if existing else {}
        albums: List[str] = list(previous.get("albums") or [])
        if album_link not in albums:
            albums.append(album_link)
        frontmatter = {**previous, **_track_frontmatter(track), "albums": albums}

        log = _log_section(existing) + self._entry(thoughts, track.progress)
        return await self._notes.write_note(self._folder, track.id, log, frontmatter)

    async def _log_album(self, album: FormattedAlbum, thoughts: str) -> Note:
        tokens = await tracks_as_links(
            self._notes,
            self._folder,
            album.tracks,
            album,
            self._always_create_track_files,
        )

        if self._always_create_track_files:
            for track in album.tracks:
                if not await self._notes.note_exists(self._folder, track.id):
                    fm = _track_frontmatter(track)
                    fm["albums"] = [as_wikilink(album)]
                    await self._notes.write_note(self._folder, track.id, f"{_LOG_HEADING}\n", fm)

        existing = await self._notes.read_note(self._folder, album.id)
        tracklist = "\n".join(f"{i}. {token}" for i, token in enumerate(tokens, start=1))
        content = (
            f"{_TRACKLIST_HEADING}\n\n{tracklist}\n\n"
            + _log_section(existing)
            + self._entry(thoughts)
        )
        previous = existing.frontmatter if existing else {}
        return await self._notes.write_note(
            self._folder, album.id, content, {**previous, **_album_frontmatter(album)}
        )

    def _entry(self, thoughts: str, progress: Optional[str] = None) -> str:
        stamp = self._clock().isoformat(timespec="minutes")
        heading = f"### {stamp}" + (f" (at {progress})" if progress else "")
        return f"\n{heading}\n\n{thoughts.strip()}\n"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _log_section(note: Optional[Note]) -> str:
    """Existing ``## Log`` section of *note* (heading included), or a fresh one."""
    match = _LOG_HEADING_RE.search(note.content) if note is not None else None
    if match is None:
        return f"{_LOG_HEADING}\n"
    return note.content[match.start():].rstrip("\n") + "\n"


def _track_frontmatter(track: FormattedTrack) -> Dict[str, Any]:
    return {
        "type": track.type,
        "id": track.id,
        "name": track.name,
        "artists": track.artists,
        "album": track.album,
        "albumid": track.albumid,
        "duration": track.duration,
        "image": track.image.url if track.image else None,
    }


def _album_frontmatter(album: FormattedAlbum) -> Dict[str, Any]:
    return {
        "type": album.type,
        "id": album.id,
        "name": album.name,
        "artists": album.artists,
        "duration": album.duration,
        "image": album.image.url if album.image else None,
        "release_date": album.release_date,
    }
