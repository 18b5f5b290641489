"""Exception taxonomy shared by the auth flow, API client and normalizer.

Every error carries the HTTP status the service answers with and whether the
user should be told to reconnect their Spotify account.
"""

from __future__ import annotations


class SpotifyLoggerError(Exception):
    """Base class — one failure scoped to a single command invocation."""

    status_code: int = 500
    reconnect: bool = False

    def __init__(self, message: str = ""):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return "Spotify logger error"


# ---------------------------------------------------------------------------
# Token store / auth flow
# ---------------------------------------------------------------------------

class TokenPersistenceError(SpotifyLoggerError):
    status_code = 500

    def default_message(self) -> str:
        return "Could not persist Spotify credentials"


class NotAuthenticatedError(SpotifyLoggerError):
    status_code = 401
    reconnect = True

    def default_message(self) -> str:
        return "Not connected to Spotify"


class MissingVerifierError(SpotifyLoggerError):
    status_code = 400
    reconnect = True

    def default_message(self) -> str:
        return "Code verifier not found — restart login"


class AuthorizationDeniedError(SpotifyLoggerError):
    status_code = 400
    reconnect = True

    def default_message(self) -> str:
        return "Spotify authorization failed"


class TokenExchangeError(SpotifyLoggerError):
    status_code = 502
    reconnect = True

    def default_message(self) -> str:
        return "Spotify token exchange failed"


class MissingRefreshTokenError(SpotifyLoggerError):
    status_code = 401
    reconnect = True

    def default_message(self) -> str:
        return "Refresh token not found"


class TokenRefreshError(SpotifyLoggerError):
    status_code = 401
    reconnect = True

    def default_message(self) -> str:
        return "Spotify token refresh failed"


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

class AuthRequiredError(SpotifyLoggerError):
    """Upstream rejected the bearer token; the user has to reconnect."""

    status_code = 401
    reconnect = True

    def default_message(self) -> str:
        return "Spotify rejected the access token"


class NoActiveSessionError(SpotifyLoggerError):
    status_code = 404

    def default_message(self) -> str:
        return "No currently playing track"


class UpstreamError(SpotifyLoggerError):
    status_code = 502

    def default_message(self) -> str:
        return "Spotify API error"


class UpstreamTimeoutError(SpotifyLoggerError):
    status_code = 504

    def default_message(self) -> str:
        return "Spotify did not answer in time"


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class UnsupportedItemKindError(SpotifyLoggerError):
    status_code = 422

    def default_message(self) -> str:
        return "Episodes not supported"


class MissingAlbumLinkError(SpotifyLoggerError):
    status_code = 422

    def default_message(self) -> str:
        return "No album href found"


class UnsupportedPlaybackStateError(SpotifyLoggerError):
    status_code = 422

    def default_message(self) -> str:
        return "Current playback state not supported"
