import base64
import json
import logging
from typing import Any, Dict, Optional, Type

import httpx

from .errors import RefreshFailedError, SpotifyAuthError, TokenExchangeError

logger = logging.getLogger(__name__)

SPOTIFY_ACCOUNTS_BASE_URL = "https://accounts.spotify.com"
SPOTIFY_TOKEN_URL = f"{SPOTIFY_ACCOUNTS_BASE_URL}/api/token"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """Return the ``Authorization`` value for HTTP Basic client credentials."""

    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


class TokenEndpointClient:
    """POSTs to the Spotify token endpoint for both grant types.

    NOTE: this ships the client secret with the app. A deployment that cannot
    keep the secret private should put this class behind a server-side proxy.
    """

    def __init__(self, config: Dict[str, Any], *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or {}
        self.transport = transport

    @property
    def client_id(self) -> str:
        return str(self.config.get("spotify_client_id", "")).strip()

    @property
    def client_secret(self) -> str:
        return str(self.config.get("spotify_client_secret", "")).strip()

    @property
    def redirect_uri(self) -> str:
        return str(self.config.get("spotify_redirect_uri", "")).strip()

    async def exchange_authorization_code(self, code: str) -> Dict[str, Any]:
        payload = await self._post_form(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            use_basic_auth=True,
            error_cls=TokenExchangeError,
        )
        _require_fields(payload, ("access_token", "refresh_token"), TokenExchangeError)
        logger.info("Exchanged authorization code for tokens")
        return payload

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        payload = await self._post_form(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
            },
            use_basic_auth=bool(self.config.get("spotify_refresh_basic_auth", True)),
            error_cls=RefreshFailedError,
        )
        # Spotify may omit refresh_token on refresh.
        _require_fields(payload, ("access_token",), RefreshFailedError)
        logger.info("Refreshed access token")
        return payload

    async def _post_form(
        self,
        form: Dict[str, Any],
        *,
        use_basic_auth: bool,
        error_cls: Type[SpotifyAuthError],
    ) -> Dict[str, Any]:
        data = {k: str(v) for k, v in (form or {}).items() if v is not None}
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if use_basic_auth:
            headers["Authorization"] = basic_auth_header(self.client_id, self.client_secret)

        timeout = float(self.config.get("spotify_request_timeout", 30))
        grant = data.get("grant_type", "")

        try:
            async with httpx.AsyncClient(
                timeout=timeout, follow_redirects=False, transport=self.transport
            ) as client:
                resp = await client.post(SPOTIFY_TOKEN_URL, data=data, headers=headers)
        except httpx.HTTPError as e:
            raise error_cls(f"Spotify token request failed ({grant}): {e}") from e

        if resp.status_code >= 400:
            logger.warning("Token endpoint returned HTTP %s for %s", resp.status_code, grant)
            raise error_cls(
                f"Spotify token request failed (HTTP {resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except json.JSONDecodeError as e:
            raise error_cls(
                f"Spotify token response was not JSON: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e

        if not isinstance(payload, dict):
            raise error_cls(
                f"Spotify token response was not an object: {payload}",
                status_code=resp.status_code,
                body=resp.text,
            )

        return payload


def _require_fields(payload: Dict[str, Any], names, error_cls: Type[SpotifyAuthError]) -> None:
    missing = [n for n in names if not str(payload.get(n) or "").strip()]

    expires_in = payload.get("expires_in")
    if isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in < 0:
        missing.append("expires_in")

    if missing:
        raise error_cls(f"Spotify token response is missing fields: {', '.join(missing)}")
