"""Tests for the response normalizer — pure logic, no I/O."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from core.errors import (
    MissingAlbumLinkError,
    UnsupportedItemKindError,
    UnsupportedPlaybackStateError,
    UpstreamError,
)
from core.formatting import format_artists, format_ms, select_image
from core.models import Album, Artist, FormattedAlbum, FormattedTrack, Image, MinimalItem, PlayingKind
from core.normalizer import (
    normalize_album,
    normalize_currently_playing,
    normalize_recently_played,
    normalize_search_results,
    normalize_simplified_album,
    normalize_track,
)
from payloads import IMAGES, playback_state, raw_album, raw_album_ref, raw_episode, raw_track


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

class TestFormatting:
    def test_format_ms(self):
        assert format_ms(0) == "00:00"
        assert format_ms(59_999) == "00:59"
        assert format_ms(200_000) == "03:20"
        assert format_ms(600_000) == "10:00"
        assert format_ms(4_512_000) == "75:12"

    def test_format_artists(self):
        assert format_artists([Artist(name="A"), Artist(name="B")]) == "A, B"
        assert format_artists([]) == ""

    def test_select_image_is_last(self):
        images = [Image(**i) for i in IMAGES]
        assert select_image(images).url.endswith("/64")
        assert select_image([]) is None


# ---------------------------------------------------------------------------
# normalize_track
# ---------------------------------------------------------------------------

class TestNormalizeTrack:
    def test_fields(self):
        rec = normalize_track(raw_track("trk1", "Song", 200_000))
        assert rec == FormattedTrack(
            id="trk1",
            name="Song",
            artists="Alice, Bob",
            image=Image(**IMAGES[-1]),
            duration="03:20",
            album="Blue Album",
            albumid="alb1",
        )
        assert rec.type == "Track"
        assert rec.progress is None

    def test_idempotent(self):
        rec = normalize_track(raw_track())
        assert normalize_track(rec) == rec
        assert normalize_track(rec.model_dump()) == rec
        assert normalize_track(normalize_track(rec.model_dump())) == rec

    def test_album_without_images(self):
        rec = normalize_track(raw_track(album={"id": "a", "name": "A", "images": []}))
        assert rec.image is None


# ---------------------------------------------------------------------------
# normalize_album
# ---------------------------------------------------------------------------

class TestNormalizeAlbum:
    def test_total_duration_is_sum_of_tracks(self):
        rec = normalize_album(raw_album(durations=(200_000, 181_000, 219_000)))
        assert rec.duration == "10:00"

    def test_tracks_get_album_injected(self):
        rec = normalize_album(raw_album())
        assert isinstance(rec, FormattedAlbum)
        assert [t.id for t in rec.tracks] == ["t1", "t2", "t3"]
        for track in rec.tracks:
            assert track.album == "Blue Album"
            assert track.albumid == "alb1"
            assert track.image == rec.image
        assert rec.tracks[0].duration == "03:20"

    def test_metadata(self):
        rec = normalize_album(Album.model_validate(raw_album()))
        assert rec.artists == "Alice"
        assert rec.release_date == "1994-05-10"
        assert rec.release_date_precision == "day"
        assert rec.image.url.endswith("/64")

    def test_empty_album(self):
        rec = normalize_album(raw_album(durations=()))
        assert rec.duration == "00:00"
        assert rec.tracks == []


def test_normalize_simplified_album():
    item = normalize_simplified_album(
        {"id": "a", "name": "A", "href": "h", "artists": [{"name": "X"}, {"name": "Y"}], "images": IMAGES}
    )
    assert item == MinimalItem(id="a", name="A", href="h", artists="X, Y", image=Image(**IMAGES[-1]))


# ---------------------------------------------------------------------------
# normalize_currently_playing
# ---------------------------------------------------------------------------

class TestNormalizeCurrentlyPlaying:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [PlayingKind.TRACK, PlayingKind.ALBUM, "Playlist", ""])
    async def test_episode_always_rejected(self, kind):
        fetch = AsyncMock()
        with pytest.raises(UnsupportedItemKindError):
            await normalize_currently_playing(playback_state(raw_episode()), kind, fetch)
        fetch.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [PlayingKind.TRACK, PlayingKind.ALBUM])
    async def test_episode_without_item_rejected(self, kind):
        state = {**playback_state(None), "currently_playing_type": "episode"}
        with pytest.raises(UnsupportedItemKindError):
            await normalize_currently_playing(state, kind, AsyncMock())

    @pytest.mark.asyncio
    async def test_episode_rejected_despite_malformed_fields(self):
        state = {"is_playing": None, "progress_ms": 1, "item": {"type": "episode"}}
        with pytest.raises(UnsupportedItemKindError):
            await normalize_currently_playing(state, PlayingKind.TRACK, AsyncMock())

    @pytest.mark.asyncio
    async def test_malformed_state_is_upstream_error(self):
        state = {"is_playing": None, "item": raw_track()}
        with pytest.raises(UpstreamError, match="Malformed"):
            await normalize_currently_playing(state, PlayingKind.TRACK, AsyncMock())

    @pytest.mark.asyncio
    async def test_track_with_progress(self):
        rec = await normalize_currently_playing(
            playback_state(raw_track(), progress_ms=83_000), PlayingKind.TRACK, AsyncMock()
        )
        assert isinstance(rec, FormattedTrack)
        assert rec.progress == "01:23"
        assert rec.id == "trk1"

    @pytest.mark.asyncio
    async def test_album_fetched_via_href(self):
        fetch = AsyncMock(return_value=Album.model_validate(raw_album()))
        rec = await normalize_currently_playing(
            playback_state(raw_track()), PlayingKind.ALBUM, fetch
        )
        fetch.assert_awaited_once_with("https://api.spotify.com/v1/albums/alb1")
        assert isinstance(rec, FormattedAlbum)
        assert rec.duration == "10:00"

    @pytest.mark.asyncio
    async def test_album_without_href(self):
        fetch = AsyncMock()
        state = playback_state(raw_track(album=raw_album_ref(href=None)))
        with pytest.raises(MissingAlbumLinkError):
            await normalize_currently_playing(state, PlayingKind.ALBUM, fetch)
        fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        with pytest.raises(UnsupportedPlaybackStateError):
            await normalize_currently_playing(playback_state(raw_track()), "Playlist", AsyncMock())

    @pytest.mark.asyncio
    async def test_no_item(self):
        with pytest.raises(UnsupportedPlaybackStateError):
            await normalize_currently_playing(playback_state(None), PlayingKind.TRACK, AsyncMock())


# ---------------------------------------------------------------------------
# Recently played / search
# ---------------------------------------------------------------------------

def test_recently_played_preserves_order():
    page = {
        "items": [
            {"track": raw_track("newest"), "played_at": "2024-01-03T00:00:00Z"},
            {"track": raw_track("middle"), "played_at": "2024-01-02T00:00:00Z"},
            {"track": raw_track("oldest"), "played_at": "2024-01-01T00:00:00Z"},
        ]
    }
    assert [t.id for t in normalize_recently_played(page)] == ["newest", "middle", "oldest"]


def test_recently_played_empty():
    assert normalize_recently_played({"items": []}) == []


def test_search_results_tracks():
    payload = {"tracks": {"items": [raw_track("a"), raw_track("b")]}}
    assert [r.id for r in normalize_search_results(payload, PlayingKind.TRACK)] == ["a", "b"]


def test_search_results_albums():
    payload = {"albums": {"items": [{"id": "x", "name": "X", "artists": [], "images": []}]}}
    results = normalize_search_results(payload, PlayingKind.ALBUM)
    assert isinstance(results[0], MinimalItem)


def test_search_results_none():
    assert normalize_search_results(None, PlayingKind.TRACK) == []


@pytest.mark.parametrize("payload", [{"tracks": None}, {"tracks": {"items": None}}, {"albums": None}])
@pytest.mark.parametrize("kind", [PlayingKind.TRACK, PlayingKind.ALBUM])
def test_search_results_null_sections(payload, kind):
    assert normalize_search_results(payload, kind) == []
