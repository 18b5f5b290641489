"""Token store — the single persisted access/refresh token pair.

Keys in the key-value store:
  - ``code_verifier``  PKCE verifier of the pending authorization
  - ``access_token``
  - ``refresh_token``
  - ``expires_in``     absolute expiry instant, epoch **milliseconds**
"""

from __future__ import annotations

import logging
import time

from core.models import TokenPair
from core.ports import KeyValueStore

logger = logging.getLogger(__name__)

_VERIFIER_KEY = "code_verifier"
_ACCESS_KEY = "access_token"
_REFRESH_KEY = "refresh_token"
_EXPIRY_KEY = "expires_in"


class TokenStore:
    """Reads and writes the token pair through a ``KeyValueStore``.

    Failures of the underlying store surface as ``TokenPersistenceError``;
    nothing is retried here.
    """

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    # ------------------------------------------------------------------
    # Token pair
    # ------------------------------------------------------------------

    async def get(self) -> TokenPair | None:
        access_token = await self._kv.get(_ACCESS_KEY)
        if not access_token:
            return None
        refresh_token = await self._kv.get(_REFRESH_KEY)
        expiry = await self._kv.get(_EXPIRY_KEY)
        # A pair without a known expiry is treated as already expired.
        expires_at = int(expiry) / 1000 if expiry else 0.0
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expires_at=expires_at,
        )

    async def save(self, pair: TokenPair) -> TokenPair:
        """Persist *pair*; keep the stored refresh token if *pair* has none."""
        await self._kv.set(_EXPIRY_KEY, str(int(pair.expires_at * 1000)))
        await self._kv.set(_ACCESS_KEY, pair.access_token)
        if pair.refresh_token:
            await self._kv.set(_REFRESH_KEY, pair.refresh_token)
            return pair

        previous = await self._kv.get(_REFRESH_KEY)
        return pair.model_copy(update={"refresh_token": previous or None})

    @staticmethod
    def is_expired(pair: TokenPair, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now >= pair.expires_at

    async def clear(self) -> None:
        """Forget every credential (sign-out)."""
        for key in (_ACCESS_KEY, _REFRESH_KEY, _EXPIRY_KEY, _VERIFIER_KEY):
            await self._kv.delete(key)
        logger.info("Cleared stored Spotify credentials")

    # ------------------------------------------------------------------
    # PKCE verifier
    # ------------------------------------------------------------------

    async def save_verifier(self, verifier: str) -> None:
        await self._kv.set(_VERIFIER_KEY, verifier)

    async def get_verifier(self) -> str | None:
        return await self._kv.get(_VERIFIER_KEY) or None

    async def clear_verifier(self) -> None:
        await self._kv.delete(_VERIFIER_KEY)
