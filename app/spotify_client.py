"""Authenticated Spotify Web API client.

Features:
  - Bearer token from ``AuthFlow.ensure_access_token()`` on every call
  - Typed failures for 204 / 401 / JSON ``error`` bodies
  - Bounded timeouts (``UpstreamTimeoutError`` instead of hanging)
  - Payloads validated into tagged models at this boundary
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from app.auth import AuthFlow
from core.errors import (
    AuthRequiredError,
    NoActiveSessionError,
    UpstreamError,
    UpstreamTimeoutError,
)
from core.models import Album, AlbumTracks, PlaybackState, PlayingKind, RecentlyPlayedPage

logger = logging.getLogger(__name__)

_SPOTIFY_API = "https://api.spotify.com/v1"
_CONNECT_TIMEOUT = 5.0  # seconds


class SpotifyClient:
    """Read-only wrapper around the endpoints the logger needs."""

    def __init__(
        self,
        auth: AuthFlow,
        *,
        api_base: str = _SPOTIFY_API,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._auth = auth
        self._api_base = api_base.rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, _CONNECT_TIMEOUT))
        self._transport = transport

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def call(self, url: str, params: Optional[dict] = None) -> Any:
        """GET *url* with the bearer token and return the parsed JSON.

        Raises
        ------
        NoActiveSessionError
            HTTP 204 — nothing is playing.
        AuthRequiredError
            HTTP 401 or a JSON error with status 401.
        UpstreamError
            Any other error body or a non-JSON response.
        UpstreamTimeoutError
            The request exceeded the configured timeout.
        """
        access_token = await self._auth.ensure_access_token()
        headers = {"Authorization": f"Bearer {access_token}"}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                resp = await client.get(url, headers=headers, params=params)
            except httpx.TimeoutException as exc:
                logger.warning("Timeout on GET %s", url)
                raise UpstreamTimeoutError() from exc
            except httpx.TransportError as exc:
                logger.warning("Transport error on GET %s: %s", url, exc)
                raise UpstreamError(f"Spotify unreachable: {exc}") from exc

        if resp.status_code == 204:
            raise NoActiveSessionError()
        if resp.status_code == 401:
            raise AuthRequiredError()

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Non-JSON response %d on GET %s", resp.status_code, url)
            raise UpstreamError(f"Unexpected response from Spotify ({resp.status_code})") from exc

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            if isinstance(error, dict):
                if error.get("status") == 401:
                    raise AuthRequiredError()
                message = error.get("message") or f"Spotify API error {error.get('status')}"
            else:
                message = str(error)
            logger.warning("Spotify error on GET %s: %s", url, message)
            raise UpstreamError(message)

        if resp.status_code >= 400:
            raise UpstreamError(f"Spotify API error {resp.status_code}")

        return data

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_currently_playing(self) -> PlaybackState:
        data = await self.call(f"{self._api_base}/me/player/currently-playing")
        if isinstance(data, dict) and data.get("currently_playing_type") == "episode":
            # episode objects are only sent with additional_types=episode
            return PlaybackState(currently_playing_type="episode")
        return _validate(PlaybackState, data)

    async def get_recently_played(self, limit: int | None = None) -> RecentlyPlayedPage:
        params = {"limit": limit} if limit else None
        data = await self.call(f"{self._api_base}/me/player/recently-played", params=params)
        return _validate(RecentlyPlayedPage, data)

    async def search(self, query: str, kind: PlayingKind | str) -> Any:
        """Search for *kind*; ``None`` for an empty query (no request made)."""
        query = (query or "").strip()
        if not query:
            return None
        kind_value = kind.value if isinstance(kind, PlayingKind) else str(kind)
        return await self.call(
            f"{self._api_base}/search",
            params={"q": query, "type": kind_value.lower()},
        )

    async def fetch(self, href: str) -> Any:
        """Follow an href Spotify handed us (e.g. ``track.album.href``)."""
        return await self.call(href)

    async def fetch_album(self, href: str) -> Album:
        """Fetch a full album, following ``tracks.next`` until the list is complete."""
        album = _validate(Album, await self.fetch(href))

        next_url = album.tracks.next
        while next_url:
            page = _validate(AlbumTracks, await self.fetch(next_url))
            album.tracks.items.extend(page.items)
            next_url = page.next

        album.tracks.next = None
        return album


def _validate(model: type[BaseModel], data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("Malformed %s payload: %s", model.__name__, exc)
        raise UpstreamError(f"Malformed {model.__name__} payload from Spotify") from exc
