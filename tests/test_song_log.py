"""Tests for the song logging workflow (app/song_log.py)."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.song_log import PROMPT_TITLE, FixedPrompt, SongLogger
from core.errors import NoActiveSessionError
from core.models import Album, PlaybackState, PlayingKind, RecentlyPlayedPage
from payloads import MemoryNoteStore, playback_state, raw_album, raw_track

FOLDER = "songs/"
NOW = datetime(2024, 3, 1, 20, 15, tzinfo=timezone.utc)


def _client(state: dict | None = None):
    client = MagicMock()
    client.get_currently_playing = AsyncMock(
        return_value=PlaybackState.model_validate(state or playback_state(raw_track()))
    )
    client.fetch_album = AsyncMock(return_value=Album.model_validate(raw_album()))
    return client


def _logger(client=None, notes=None, always_create=False):
    return SongLogger(
        client or _client(),
        notes if notes is not None else MemoryNoteStore(),
        folder=FOLDER,
        always_create_track_files=always_create,
        clock=lambda: NOW,
    )


# ------------------------------------------------------------------
# Tracks
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_log_track_creates_note():
    notes = MemoryNoteStore()
    note = await _logger(notes=notes).log_current(PlayingKind.TRACK, FixedPrompt("great riff"))

    assert note.note_id == "trk1"
    assert note.frontmatter["name"] == "Song"
    assert note.frontmatter["artists"] == "Alice, Bob"
    assert note.frontmatter["duration"] == "03:20"
    assert note.frontmatter["image"].endswith("/64")
    assert note.frontmatter["albums"] == ["[[alb1|Blue Album]]"]
    assert note.content.startswith("## Log\n")
    assert "### 2024-03-01T20:15+00:00 (at 01:23)" in note.content
    assert "great riff" in note.content


@pytest.mark.asyncio
async def test_log_track_twice_appends_entry():
    notes = MemoryNoteStore()
    logger = _logger(notes=notes)
    await logger.log_current(PlayingKind.TRACK, FixedPrompt("first"))
    note = await logger.log_current(PlayingKind.TRACK, FixedPrompt("second"))

    assert note.content.count("## Log") == 1
    assert note.content.index("first") < note.content.index("second")
    assert note.frontmatter["albums"] == ["[[alb1|Blue Album]]"]


@pytest.mark.asyncio
async def test_cancelled_prompt_writes_nothing():
    notes = MemoryNoteStore()
    assert await _logger(notes=notes).log_current(PlayingKind.TRACK, FixedPrompt(None)) is None
    assert notes.notes == {}


@pytest.mark.asyncio
async def test_prompt_receives_record():
    prompt = MagicMock()
    prompt.prompt_for_text = AsyncMock(return_value="ok")
    await _logger().log_current(PlayingKind.TRACK, prompt)

    title, record = prompt.prompt_for_text.call_args.args
    assert title == PROMPT_TITLE
    assert record.id == "trk1"
    assert record.progress == "01:23"


@pytest.mark.asyncio
async def test_errors_surface_unchanged():
    client = _client()
    client.get_currently_playing = AsyncMock(side_effect=NoActiveSessionError())
    with pytest.raises(NoActiveSessionError):
        await _logger(client=client).log_current(PlayingKind.TRACK, FixedPrompt("x"))


# ------------------------------------------------------------------
# Albums
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_log_album_plain_tracklist():
    notes = MemoryNoteStore()
    note = await _logger(notes=notes).log_current(PlayingKind.ALBUM, FixedPrompt("classic"))

    assert note.note_id == "alb1"
    assert note.frontmatter["duration"] == "10:00"
    assert note.frontmatter["release_date"] == "1994-05-10"
    assert "1. Track 1\n2. Track 2\n3. Track 3" in note.content
    assert "classic" in note.content
    assert set(notes.notes) == {(FOLDER, "alb1")}


@pytest.mark.asyncio
async def test_log_album_links_existing_track_note():
    notes = MemoryNoteStore()
    await notes.write_note(FOLDER, "t2", "## Log\n", {"name": "Track 2"})
    note = await _logger(notes=notes).log_current(PlayingKind.ALBUM, FixedPrompt("x"))

    assert "2. [[t2|Track 2]]" in note.content
    assert notes.album_refs == [("t2", "alb1")]


@pytest.mark.asyncio
async def test_log_album_always_create_track_files():
    notes = MemoryNoteStore()
    note = await _logger(notes=notes, always_create=True).log_current(
        PlayingKind.ALBUM, FixedPrompt("x")
    )

    assert "1. [[t1|Track 1]]" in note.content
    for track_id in ("t1", "t2", "t3"):
        track_note = notes.notes[(FOLDER, track_id)]
        assert track_note.frontmatter["albums"] == ["[[alb1|Blue Album]]"]


@pytest.mark.asyncio
async def test_relog_album_keeps_previous_entries():
    notes = MemoryNoteStore()
    logger = _logger(notes=notes)
    await logger.log_current(PlayingKind.ALBUM, FixedPrompt("first listen"))
    note = await logger.log_current(PlayingKind.ALBUM, FixedPrompt("second listen"))

    assert note.content.count("## Tracklist") == 1
    assert "first listen" in note.content
    assert "second listen" in note.content


@pytest.mark.asyncio
async def test_relog_album_with_heading_like_track_name():
    album = raw_album()
    album["tracks"]["items"][1]["name"] = "## Log"
    client = _client()
    client.fetch_album = AsyncMock(return_value=Album.model_validate(album))
    logger = _logger(client=client)
    await logger.log_current(PlayingKind.ALBUM, FixedPrompt("first listen"))
    note = await logger.log_current(PlayingKind.ALBUM, FixedPrompt("second listen"))

    assert note.content.count("## Tracklist") == 1
    assert note.content.count("2. ## Log") == 1
    assert note.content.count("first listen") == 1


# ------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_recently_played():
    client = _client()
    client.get_recently_played = AsyncMock(
        return_value=RecentlyPlayedPage.model_validate(
            {"items": [{"track": raw_track("b")}, {"track": raw_track("a")}]}
        )
    )
    tracks = await _logger(client=client).recently_played()
    assert [t.id for t in tracks] == ["b", "a"]


@pytest.mark.asyncio
async def test_search_empty_query():
    client = _client()
    client.search = AsyncMock(return_value=None)
    assert await _logger(client=client).search("", PlayingKind.TRACK) == []
