import logging
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .errors import TokenExchangeError
from .token_endpoint import SPOTIFY_ACCOUNTS_BASE_URL, TokenEndpointClient
from .token_manager import TokenInfo, TokenManager

logger = logging.getLogger(__name__)

SPOTIFY_AUTHORIZE_URL = f"{SPOTIFY_ACCOUNTS_BASE_URL}/authorize"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/redirect"

LANDING_VIEW = "landing"
APP_VIEW = "app"


def check_spotify_credentials(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate Spotify OAuth config fields and return a structured status dict."""

    config = config or {}
    client_id = str(config.get("spotify_client_id", "")).strip()
    has_secret = bool(str(config.get("spotify_client_secret", "")).strip())
    redirect_uri = str(config.get("spotify_redirect_uri", "")).strip()
    scopes = list(config.get("spotify_scopes", []) or [])

    missing = []
    if not client_id:
        missing.append("spotify_client_id")
    if not has_secret:
        missing.append("spotify_client_secret")
    if not redirect_uri:
        missing.append("spotify_redirect_uri")

    if missing:
        message = (
            f"Missing {', '.join(missing)} in config.json "
            "(SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET env vars also work)."
        )
    else:
        message = "Spotify credentials look OK."

    return {
        "ok": not missing,
        "client_id": client_id,
        "has_client_secret": has_secret,
        "redirect_uri": redirect_uri,
        "scopes": scopes,
        "missing": missing,
        "message": message,
    }


def spotify_app_setup_instructions(*, redirect_uri: str = DEFAULT_REDIRECT_URI) -> str:
    """Return user-facing setup instructions for creating a Spotify Developer app."""

    redirect_uri = str(redirect_uri or "").strip() or DEFAULT_REDIRECT_URI
    return (
        "Spotify app setup:\n"
        "1) Go to https://developer.spotify.com/dashboard\n"
        "2) Create an app (or select an existing app)\n"
        f"3) Add this Redirect URI in the app settings: {redirect_uri}\n"
        "4) Copy the Client ID into config.json as spotify_client_id\n"
        "5) Export the Client secret as SPOTIFY_CLIENT_SECRET (or set spotify_client_secret)\n\n"
        "Notes:\n"
        "- Redirect URI must match *exactly* what you configure in the Spotify dashboard.\n"
        "- The redirect page does not need to load; copy its URL from the address bar.\n"
    )


def extract_params_from_redirect_url(redirect_url: str) -> Dict[str, str]:
    """Parse a redirect URL and return {"code", "error", "state"} (missing keys omitted)."""

    parsed = urllib.parse.urlparse(str(redirect_url or "").strip())
    qs = urllib.parse.parse_qs(parsed.query)
    out: Dict[str, str] = {}
    for key in ("code", "error", "state"):
        if qs.get(key):
            out[key] = str(qs[key][0])
    return out


class RedirectState(Enum):
    IDLE = "idle"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    LOGIN_FAILED = "login_failed"


@dataclass(frozen=True)
class RedirectResult:
    state: RedirectState
    error: Optional[str] = None
    token: Optional[TokenInfo] = None


class SpotifyAuth:
    """Spotify OAuth authorization-code flow (confidential client)."""

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        token_manager: TokenManager,
        endpoint: Optional[TokenEndpointClient] = None,
        navigator=None,
    ):
        self.config = config or {}
        self.token_manager = token_manager
        self.endpoint = endpoint or token_manager.endpoint
        self.navigator = navigator
        self.state = RedirectState.IDLE

    def get_authorize_url(
        self,
        *,
        scopes: Optional[Iterable[str]] = None,
        show_dialog: Optional[bool] = None,
        state: Optional[str] = None,
    ) -> str:
        client_id = str(self.config.get("spotify_client_id", "")).strip()
        if not client_id:
            raise ValueError("Missing config.spotify_client_id")
        redirect_uri = str(self.config.get("spotify_redirect_uri", "")).strip()
        if not redirect_uri:
            raise ValueError("Missing config.spotify_redirect_uri")

        scope_list = list(scopes if scopes is not None else self.config.get("spotify_scopes", []))
        scope_str = " ".join([str(s).strip() for s in scope_list if str(s).strip()])

        if show_dialog is None:
            show_dialog = bool(self.config.get("spotify_show_dialog", True))

        params: Dict[str, str] = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
        }
        if scope_str:
            params["scope"] = scope_str
        if show_dialog:
            params["show_dialog"] = "true"
        if state:
            params["state"] = str(state)

        return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(params, quote_via=urllib.parse.quote)}"

    def begin_login(self) -> str:
        """Send the browser to the authorize page and return the URL used."""

        url = self.get_authorize_url()
        logger.info("Starting Spotify login")
        if self.navigator is not None:
            self.navigator.open_url(url)
        return url

    async def handle_redirect(self, current_url: str) -> RedirectResult:
        """Dispatch on the query of the URL Spotify redirected back to."""

        params = extract_params_from_redirect_url(current_url)
        self.state = RedirectState.IDLE

        if "error" in params:
            self.state = RedirectState.LOGIN_FAILED
            logger.warning("Spotify login failed: %s", params["error"])
            return RedirectResult(state=self.state, error=params["error"])

        if "code" not in params:
            logger.info("Redirect URL has no code or error; returning to landing view")
            self._show_view(LANDING_VIEW)
            return RedirectResult(state=self.state)

        self.state = RedirectState.EXCHANGING
        try:
            payload = await self.endpoint.exchange_authorization_code(params["code"])
            token = self.token_manager.store_credential(
                payload["access_token"],
                payload["refresh_token"],
                payload["expires_in"],
            )
        except TokenExchangeError as e:
            self.state = RedirectState.IDLE
            logger.error("Token exchange failed: %s", e)
            raise

        self.state = RedirectState.AUTHENTICATED
        self._show_view(APP_VIEW)
        return RedirectResult(state=self.state, token=token)

    def _show_view(self, name: str) -> None:
        if self.navigator is not None:
            self.navigator.show_view(name)
