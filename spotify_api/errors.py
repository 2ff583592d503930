from typing import Optional


class SpotifyAuthError(RuntimeError):
    """Base class for token lifecycle failures."""


class TokenExchangeError(SpotifyAuthError):
    """The authorization-code-for-token exchange failed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RefreshFailedError(SpotifyAuthError):
    """The refresh-token exchange failed; the user has to log in again."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotAuthenticatedError(SpotifyAuthError):
    """No stored credential exists."""


class SpotifyAPIError(RuntimeError):
    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Spotify API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body
