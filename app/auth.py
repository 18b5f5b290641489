"""Spotify OAuth 2.0 with PKCE — no client secret needed.

Flow:
  1. GET /login        → redirect to Spotify /authorize with code_challenge
  2. GET /callback     → exchange code for tokens via /api/token
  3. Tokens stored through ``TokenStore`` (SQLite ``kv`` table)
  4. Every API call goes through ``AuthFlow.ensure_access_token()``
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Mapping, Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from app.token_store import TokenStore
from core.errors import (
    AuthorizationDeniedError,
    MissingRefreshTokenError,
    MissingVerifierError,
    NotAuthenticatedError,
    SpotifyLoggerError,
    TokenExchangeError,
    TokenRefreshError,
    UpstreamError,
    UpstreamTimeoutError,
)
from core.models import TokenPair
from core.pkce import generate_code_challenge, generate_random_string

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

SCOPES = " ".join(
    [
        "user-read-currently-playing",
        "user-read-recently-played",
    ]
)

_SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
_DEFAULT_EXPIRES_IN = 3600  # seconds


# ---------------------------------------------------------------------------
# Auth flow
# ---------------------------------------------------------------------------

class AuthFlow:
    """PKCE authorization, code exchange and silent refresh.

    One instance per process: it owns the lock that keeps concurrent callers
    of ``ensure_access_token()`` from spending the same refresh token twice.
    """

    def __init__(
        self,
        store: TokenStore,
        client_id: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self._store = store
        self._timeout = timeout
        self._transport = transport
        self._clock = clock
        self._refresh_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    async def build_authorization_url(self) -> str:
        """Return the /authorize URL for a fresh, single-use verifier."""
        verifier = generate_random_string()
        await self._store.save_verifier(verifier)

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": SCOPES,
            "code_challenge_method": "S256",
            "code_challenge": generate_code_challenge(verifier),
            "redirect_uri": self.redirect_uri,
        }
        return f"{_SPOTIFY_AUTH_URL}?{urlencode(params)}"

    async def handle_auth(self, data: Mapping[str, Optional[str]]) -> TokenPair:
        """Dispatch the redirect callback payload (``code`` or ``error``)."""
        error = data.get("error")
        if error:
            raise AuthorizationDeniedError(f"Spotify auth error: {error}")
        code = data.get("code")
        if not code:
            raise AuthorizationDeniedError("Missing authorization code")
        return await self.exchange_code(code)

    async def exchange_code(self, code: str) -> TokenPair:
        """Exchange an authorization code for tokens using the stored verifier."""
        verifier = await self._store.get_verifier()
        if not verifier:
            raise MissingVerifierError()

        resp = await self._post_token(
            {
                "client_id": self.client_id,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "code_verifier": verifier,
            }
        )
        pair = self._parse_token_response(resp, TokenExchangeError)

        pair = await self._store.save(pair)
        await self._store.clear_verifier()
        logger.info("Connected Spotify account (token expires in %ds)", pair.expires_at - self._clock())
        return pair

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> TokenPair:
        """Use the stored refresh token to get a new access token."""
        current = await self._store.get()
        refresh_token = current.refresh_token if current else None
        if not refresh_token:
            raise MissingRefreshTokenError()

        resp = await self._post_token(
            {
                "client_id": self.client_id,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        pair = self._parse_token_response(resp, TokenRefreshError)

        # Spotify may or may not return a new refresh_token.
        pair = await self._store.save(pair)
        logger.info("Refreshed Spotify access token")
        return pair

    async def ensure_access_token(self) -> str:
        """Return a valid access token, refreshing once if expired.

        Raises ``NotAuthenticatedError`` if no token pair is stored.
        """
        pair = await self._store.get()
        if pair is None:
            raise NotAuthenticatedError()
        if not self._store.is_expired(pair, self._clock()):
            return pair.access_token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            pair = await self._store.get()
            if pair is None:
                raise NotAuthenticatedError()
            if self._store.is_expired(pair, self._clock()):
                pair = await self.refresh()
        return pair.access_token

    async def is_authenticated(self) -> bool:
        """Local check only — cannot notice consent revoked on Spotify's side."""
        pair = await self._store.get()
        return bool(pair and pair.access_token and pair.refresh_token)

    async def sign_out(self) -> None:
        await self._store.clear()

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _post_token(self, data: dict) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                return await client.post(_SPOTIFY_TOKEN_URL, data=data)
            except httpx.TimeoutException as exc:
                raise UpstreamTimeoutError("Spotify token endpoint timed out") from exc
            except httpx.TransportError as exc:
                raise UpstreamError(f"Spotify token endpoint unreachable: {exc}") from exc

    def _parse_token_response(
        self,
        resp: httpx.Response,
        error_cls: type[SpotifyLoggerError],
    ) -> TokenPair:
        if not 200 <= resp.status_code < 300:
            logger.warning("Token request failed (%s): %s", resp.status_code, resp.text)
            raise error_cls(f"{error_cls().message} ({resp.status_code})")

        try:
            data = resp.json()
            access_token = data["access_token"]
            expires_in = float(data.get("expires_in", _DEFAULT_EXPIRES_IN))
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            raise error_cls(f"{error_cls().message}: malformed response") from exc
        if not access_token:
            raise error_cls(f"{error_cls().message}: no access token issued")

        return TokenPair(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_at=self._clock() + expires_in,
        )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def get_auth_flow(request: Request) -> AuthFlow:
    return request.app.state.auth_flow


@router.get("/login")
async def login(request: Request):
    """Start the Spotify PKCE login flow."""
    auth = get_auth_flow(request)
    if not auth.client_id:
        raise HTTPException(status_code=500, detail="SPOTIFY_CLIENT_ID not set")
    return RedirectResponse(await auth.build_authorization_url())


@router.get("/callback")
async def callback(request: Request, code: str | None = None, error: str | None = None):
    """Handle Spotify's redirect after user authorizes."""
    await get_auth_flow(request).handle_auth({"code": code, "error": error})
    return RedirectResponse("/auth/status", status_code=303)


@router.get("/logout")
async def logout(request: Request):
    """Forget stored tokens."""
    await get_auth_flow(request).sign_out()
    return RedirectResponse("/auth/status")


@router.get("/auth/status")
async def auth_status(request: Request):
    authenticated = await get_auth_flow(request).is_authenticated()
    return JSONResponse({"authenticated": authenticated})
