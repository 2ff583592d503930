"""Spotify Web API integration (OAuth authorization code flow).

The TokenManager owns the stored credential; everything that talks to the
Web API gets its bearer token from TokenManager.get_valid_access_token().
"""

from .auth import RedirectResult, RedirectState, SpotifyAuth
from .client import SpotifyClient
from .errors import (
    NotAuthenticatedError,
    RefreshFailedError,
    SpotifyAPIError,
    SpotifyAuthError,
    TokenExchangeError,
)
from .token_endpoint import TokenEndpointClient
from .token_manager import CredentialStore, TokenInfo, TokenManager

__all__ = [
    "CredentialStore",
    "NotAuthenticatedError",
    "RedirectResult",
    "RedirectState",
    "RefreshFailedError",
    "SpotifyAPIError",
    "SpotifyAuth",
    "SpotifyAuthError",
    "SpotifyClient",
    "TokenEndpointClient",
    "TokenExchangeError",
    "TokenInfo",
    "TokenManager",
]
