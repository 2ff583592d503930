import asyncio
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import NotAuthenticatedError
from .token_endpoint import TokenEndpointClient

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_CACHE_PATH = os.path.join("data", "spotify_tokens.json")

CREDENTIAL_KEYS = ("access_token", "refresh_token", "expires_at")


@dataclass(frozen=True)
class TokenInfo:
    """The one credential record owned by TokenManager."""

    access_token: str
    refresh_token: str
    expires_at: int

    def to_storage(self) -> Dict[str, str]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": str(int(self.expires_at)),
        }

    @staticmethod
    def from_storage(data: Dict[str, Any]) -> Optional["TokenInfo"]:
        """Build a record from stored entries, or None if any entry is missing."""

        values = {k: str(data.get(k) or "").strip() for k in CREDENTIAL_KEYS}
        if not all(values.values()):
            return None

        try:
            expires_at = int(values["expires_at"])
        except ValueError:
            return None

        return TokenInfo(
            access_token=values["access_token"],
            refresh_token=values["refresh_token"],
            expires_at=expires_at,
        )


class CredentialStore:
    """JSON file holding the three string entries of the credential record."""

    def __init__(self, path: str = DEFAULT_TOKEN_CACHE_PATH):
        self.path = path

    def read(self) -> Optional[TokenInfo]:
        if not os.path.exists(self.path):
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Token cache %s is not valid JSON; treating as logged out", self.path)
            return None

        if not isinstance(data, dict):
            logger.warning("Token cache %s is not an object; treating as logged out", self.path)
            return None

        token = TokenInfo.from_storage(data)
        if token is None:
            logger.warning("Token cache %s is incomplete; treating as logged out", self.path)
        return token

    def write(self, token: TokenInfo) -> None:
        """Replace the stored record in one step (temp file + rename)."""

        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".spotify_tokens.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(token.to_storage(), f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)


class TokenManager:
    """Single source of truth for the access token to use right now.

    Refresh is lazy: the expiry check runs only when a caller asks for a token.
    Callers that find the token expired at the same time share one refresh.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        store: Optional[CredentialStore] = None,
        endpoint: Optional[TokenEndpointClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or {}
        self.store = store or CredentialStore(
            str(self.config.get("spotify_token_path") or DEFAULT_TOKEN_CACHE_PATH)
        )
        self.endpoint = endpoint or TokenEndpointClient(self.config)
        self.clock = clock
        self._pending_refresh: Optional["asyncio.Task[TokenInfo]"] = None

    def load(self) -> Optional[TokenInfo]:
        return self.store.read()

    def clear(self) -> None:
        self.store.clear()
        logger.info("Cleared stored Spotify credentials")

    def store_credential(self, access_token: str, refresh_token: str, expires_in_seconds: int) -> TokenInfo:
        """Compute expires_at from the provider lifetime and replace the record."""

        if not access_token or not refresh_token:
            raise ValueError("access_token and refresh_token are required")
        if expires_in_seconds is None or int(expires_in_seconds) < 0:
            raise ValueError(f"Invalid expires_in: {expires_in_seconds!r}")

        token = TokenInfo(
            access_token=str(access_token),
            refresh_token=str(refresh_token),
            expires_at=int(self.clock()) + int(expires_in_seconds),
        )
        self.store.write(token)
        logger.debug("Stored credential expiring at %s", token.expires_at)
        return token

    def is_expired(self, token: TokenInfo) -> bool:
        return self.clock() >= token.expires_at

    def status(self) -> Dict[str, Any]:
        token = self.load()
        if token is None:
            return {"authenticated": False, "expired": None, "expires_at": None}
        return {
            "authenticated": True,
            "expired": self.is_expired(token),
            "expires_at": token.expires_at,
        }

    async def get_valid_access_token(self) -> str:
        token = self.load()
        if token is None:
            raise NotAuthenticatedError("No Spotify credentials stored. Log in first.")

        if not self.is_expired(token):
            return token.access_token

        task = self._pending_refresh
        if task is None:
            task = asyncio.ensure_future(self._refresh(token))
            self._pending_refresh = task
            task.add_done_callback(self._clear_pending_refresh)
        else:
            logger.debug("Joining in-flight token refresh")

        refreshed = await asyncio.shield(task)
        return refreshed.access_token

    async def _refresh(self, token: TokenInfo) -> TokenInfo:
        logger.info("Access token expired; refreshing")
        payload = await self.endpoint.refresh(token.refresh_token)
        return self.store_credential(
            payload["access_token"],
            payload.get("refresh_token") or token.refresh_token,
            payload["expires_in"],
        )

    def _clear_pending_refresh(self, task: "asyncio.Task[TokenInfo]") -> None:
        if self._pending_refresh is task:
            self._pending_refresh = None
        # A refresh whose every waiter was cancelled still reports its failure here.
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Token refresh failed: %s", task.exception())
