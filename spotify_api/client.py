import asyncio
import json
import logging
import math
import time
from typing import Any, Dict, List, Optional

import httpx

from .errors import SpotifyAPIError
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"

MAX_PLAYLIST_ITEMS_PER_REQUEST = 100

# Upper bound on a server-provided Retry-After wait.
MAX_RETRY_AFTER_SECONDS = 60.0


class SpotifyClient:
    """Thin Spotify Web API client.

    Every request asks the TokenManager for a token right before sending it;
    refresh is never handled here.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        token_manager: TokenManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or {}
        self.token_manager = token_manager
        self.transport = transport

    async def _sleep_with_jitter(self, seconds: float) -> None:
        seconds = float(max(0.0, seconds))
        jitter = float(self.config.get("spotify_retry_jitter", 0.25))
        await asyncio.sleep(seconds + (jitter * (time.time() % 1.0)))

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make a Spotify Web API request and return parsed JSON.

        429 responses are retried after Retry-After, up to spotify_max_retries.
        """

        max_retries = int(self.config.get("spotify_max_retries", 3))
        timeout = float(self.config.get("spotify_request_timeout", 30))
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        attempt = 0
        async with httpx.AsyncClient(
            base_url=SPOTIFY_API_BASE_URL, timeout=timeout, transport=self.transport
        ) as client:
            while True:
                attempt += 1
                token = await self.token_manager.get_valid_access_token()

                try:
                    resp = await client.request(
                        method.upper(),
                        path,
                        params=query or None,
                        json=json_body,
                        headers={
                            "Authorization": f"Bearer {token}",
                            "Accept": "application/json",
                        },
                    )
                except httpx.HTTPError as e:
                    raise SpotifyAPIError(0, f"request failed: {e}") from e

                if resp.status_code == 429 and attempt <= max_retries:
                    try:
                        delay = float(resp.headers.get("Retry-After", "1"))
                    except ValueError:
                        delay = 1.0
                    if math.isnan(delay):
                        delay = 1.0
                    delay = min(max(1.0, delay), MAX_RETRY_AFTER_SECONDS)
                    logger.warning("Rate limited on %s %s; retrying in %.1fs", method, path, delay)
                    await self._sleep_with_jitter(delay)
                    continue

                if resp.status_code >= 400:
                    raise SpotifyAPIError(resp.status_code, resp.text)

                if not resp.content:
                    return {}

                try:
                    return resp.json()
                except json.JSONDecodeError as e:
                    raise SpotifyAPIError(resp.status_code, f"response was not JSON: {resp.text}") from e

    # -----------------
    # Users
    # -----------------

    async def me(self) -> Dict[str, Any]:
        return await self.request_json("GET", "/me")

    async def get_users_top_items(
        self,
        item_type: str,
        *,
        time_range: str = "medium_term",
        limit: int = 20,
        offset: int = 0,
    ) -> Dict[str, Any]:
        if item_type not in ("artists", "tracks"):
            raise ValueError(f"item_type must be 'artists' or 'tracks', got {item_type!r}")
        return await self.request_json(
            "GET",
            f"/me/top/{item_type}",
            params={"time_range": time_range, "limit": limit, "offset": offset},
        )

    # -----------------
    # Artists
    # -----------------

    async def get_artist(self, artist_id: str) -> Dict[str, Any]:
        return await self.request_json("GET", f"/artists/{artist_id}")

    async def get_artists_top_tracks(self, artist_id: str, *, market: Optional[str] = None) -> Dict[str, Any]:
        return await self.request_json("GET", f"/artists/{artist_id}/top-tracks", params={"market": market})

    # -----------------
    # Playlists
    # -----------------

    async def get_current_users_playlists(self, *, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        return await self.request_json("GET", "/me/playlists", params={"limit": limit, "offset": offset})

    async def get_playlist_items(self, playlist_id: str, *, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        return await self.request_json(
            "GET",
            f"/playlists/{playlist_id}/tracks",
            params={"limit": limit, "offset": offset},
        )

    async def create_playlist(
        self,
        user_id: str,
        name: str,
        *,
        public: bool = True,
        collaborative: bool = False,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name, "public": public, "collaborative": collaborative}
        if description is not None:
            body["description"] = description
        return await self.request_json("POST", f"/users/{user_id}/playlists", json_body=body)

    async def add_items_to_playlist(
        self,
        playlist_id: str,
        uris: List[str],
        *,
        position: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Add URIs in batches of 100; returns one snapshot response per batch."""

        uris = [str(u).strip() for u in (uris or []) if str(u).strip()]
        responses = []
        for start in range(0, len(uris), MAX_PLAYLIST_ITEMS_PER_REQUEST):
            body: Dict[str, Any] = {"uris": uris[start:start + MAX_PLAYLIST_ITEMS_PER_REQUEST]}
            if position is not None:
                body["position"] = position + start
            responses.append(
                await self.request_json("POST", f"/playlists/{playlist_id}/tracks", json_body=body)
            )
        return responses
