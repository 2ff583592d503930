"""Landing/app view wiring tests.

Runs the menus against a questionary mock and fake Spotify endpoints; no
network and no browser.

Usage:
  python3 -m unittest tests.test_menu_views
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
import types
import unittest
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import DEFAULT_CONFIG
from menus.navigator import CliNavigator
from spotify_api.auth import SpotifyAuth
from spotify_api.token_endpoint import TokenEndpointClient
from spotify_api.token_manager import TokenManager


# -------------------------
# Simple questionary mocks
# -------------------------

@dataclass
class _Askable:
    """Mimic questionary prompt objects that return a value from .ask()."""

    value: Any

    def ask(self):
        return self.value


class _QuestionaryMock:
    """A minimal questionary stub that returns queued answers and captures args."""

    def __init__(self):
        import questionary as _real_questionary

        self.Choice = _real_questionary.Choice
        self._queue: list[Any] = []
        self.last_select_choices = None
        self.last_checkbox_choices = None

    def queue(self, *answers: Any) -> None:
        self._queue.extend(list(answers))

    def _pop(self) -> Any:
        if not self._queue:
            raise AssertionError("QuestionaryMock queue exhausted")
        return self._queue.pop(0)

    def select(self, message: str, choices: list[Any], default: Any = None):
        self.last_select_choices = choices
        return _Askable(self._pop())

    def checkbox(self, message: str, choices: list[Any]):
        self.last_checkbox_choices = choices
        return _Askable(self._pop())

    def text(self, message: str, default: str = ""):
        return _Askable(self._pop())

    def confirm(self, message: str, default: bool = True):
        return _Askable(self._pop())


class _PatchModuleAttr:
    """Context manager to temporarily patch module attributes."""

    def __init__(self, module: types.ModuleType, attr: str, value: Any):
        self.module = module
        self.attr = attr
        self.value = value
        self._old = None

    def __enter__(self):
        self._old = getattr(self.module, self.attr)
        setattr(self.module, self.attr, self.value)

    def __exit__(self, exc_type, exc, tb):
        setattr(self.module, self.attr, self._old)


class _Recorder:
    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self.responses.pop(0)


class _ViewTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.config = {
            "spotify_client_id": "cid",
            "spotify_client_secret": "secret",
            "spotify_redirect_uri": "http://127.0.0.1:8888/redirect",
            "spotify_scopes": ["user-top-read"],
            "spotify_token_path": os.path.join(self._td.name, "spotify_tokens.json"),
        }
        self.token_requests = _Recorder()
        endpoint = TokenEndpointClient(self.config, transport=httpx.MockTransport(self.token_requests))
        self.navigator = CliNavigator(open_browser=False)
        self.token_manager = TokenManager(self.config, endpoint=endpoint)
        self.auth = SpotifyAuth(self.config, token_manager=self.token_manager, navigator=self.navigator)


# -------------------------
# Tests
# -------------------------


class TestLandingMenu(_ViewTestCase):
    def test_login_exchanges_code_and_switches_to_app(self):
        import menus.landing_menu as lm

        self.token_requests.responses.append(
            httpx.Response(200, json={"access_token": "at", "refresh_token": "rt", "expires_in": 3600})
        )
        q = _QuestionaryMock()
        q.queue("Log in with Spotify", "http://127.0.0.1:8888/redirect?code=abc123")

        with _PatchModuleAttr(lm, "questionary", q):
            lm.landing_menu(self.config, self.auth, self.navigator)

        self.assertIn("accounts.spotify.com/authorize", self.navigator.last_url)
        self.assertEqual(len(self.token_requests.requests), 1)
        self.assertEqual(self.navigator.current_view, "app")
        self.assertEqual(self.token_manager.load().access_token, "at")
        self.assertNotIn("Open app", q.last_select_choices)

    def test_provider_error_stays_on_landing(self):
        import menus.landing_menu as lm

        q = _QuestionaryMock()
        q.queue("Paste redirect URL", "http://127.0.0.1:8888/redirect?error=access_denied")

        with _PatchModuleAttr(lm, "questionary", q), self.assertLogs("breadcrumbs", level="ERROR") as logs:
            lm.landing_menu(self.config, self.auth, self.navigator)

        self.assertEqual(self.token_requests.requests, [])
        self.assertEqual(self.navigator.current_view, "landing")
        self.assertTrue(any("access_denied" in line for line in logs.output))

    def test_exchange_failure_is_reported(self):
        import menus.landing_menu as lm

        self.token_requests.responses.append(httpx.Response(400, json={"error": "invalid_grant"}))
        q = _QuestionaryMock()
        q.queue("Paste redirect URL", "http://127.0.0.1:8888/redirect?code=stale")

        with _PatchModuleAttr(lm, "questionary", q), self.assertLogs("breadcrumbs", level="ERROR"):
            lm.landing_menu(self.config, self.auth, self.navigator)

        self.assertEqual(self.navigator.current_view, "landing")
        self.assertIsNone(self.token_manager.load())

    def test_open_app_offered_when_logged_in(self):
        import menus.landing_menu as lm

        self.token_manager.store_credential("at", "rt", 3600)
        q = _QuestionaryMock()
        q.queue("Open app")

        with _PatchModuleAttr(lm, "questionary", q):
            lm.landing_menu(self.config, self.auth, self.navigator)

        self.assertIn("Open app", q.last_select_choices)
        self.assertEqual(self.navigator.current_view, "app")

    def test_settings_opens_config_view(self):
        import menus.landing_menu as lm

        opened = []
        q = _QuestionaryMock()
        q.queue("Settings")

        with _PatchModuleAttr(lm, "questionary", q), _PatchModuleAttr(lm, "config_menu", opened.append):
            lm.landing_menu(self.config, self.auth, self.navigator)

        self.assertEqual(opened, [self.config])
        self.assertEqual(self.navigator.current_view, "landing")

    def test_exit(self):
        import menus.landing_menu as lm

        q = _QuestionaryMock()
        q.queue("Exit")
        with _PatchModuleAttr(lm, "questionary", q):
            lm.landing_menu(self.config, self.auth, self.navigator)
        self.assertEqual(self.navigator.current_view, "exit")


class _FakeClient:
    def __init__(self, error: Exception | None = None):
        self.error = error

    async def get_users_top_items(self, item_type, *, time_range="medium_term", limit=20, offset=0):
        if self.error:
            raise self.error
        return {"items": [{"id": "a1", "name": "Artist One"}, {"id": "a2", "name": "Artist Two"}]}


class TestAppMenu(_ViewTestCase):
    def test_log_out_clears_record(self):
        import menus.app_menu as am

        self.token_manager.store_credential("at", "rt", 3600)
        self.navigator.show_view("app")
        q = _QuestionaryMock()
        q.queue("Log out")

        with _PatchModuleAttr(am, "questionary", q):
            am.app_menu(self.config, self.token_manager, _FakeClient(), self.navigator)

        self.assertIsNone(self.token_manager.load())
        self.assertEqual(self.navigator.current_view, "landing")

    def test_auth_failure_routes_to_landing(self):
        import menus.app_menu as am
        from spotify_api.errors import RefreshFailedError

        self.navigator.show_view("app")
        q = _QuestionaryMock()
        q.queue("Show top artists", "Last 4 weeks")

        client = _FakeClient(error=RefreshFailedError("revoked", status_code=400))
        with _PatchModuleAttr(am, "questionary", q):
            am.app_menu(self.config, self.token_manager, client, self.navigator)

        self.assertEqual(self.navigator.current_view, "landing")

    def test_build_playlist_uses_selected_artists(self):
        import menus.app_menu as am

        calls = []

        async def fake_build(client, name, artist_ids):
            calls.append((name, list(artist_ids)))
            return {"playlist_id": "pl1", "url": "", "track_count": 4}

        self.navigator.show_view("app")
        q = _QuestionaryMock()
        q.queue("Build playlist from top artists", "All time", ["a2"], "Road trip")

        with _PatchModuleAttr(am, "questionary", q), _PatchModuleAttr(am, "build_playlist_from_artists", fake_build):
            am.app_menu(self.config, self.token_manager, _FakeClient(), self.navigator)

        self.assertEqual(calls, [("Road trip", ["a2"])])
        titles = [c.title for c in q.last_checkbox_choices]
        self.assertEqual(titles, ["Artist One", "Artist Two"])
        self.assertEqual(self.navigator.current_view, "app")


class TestConfigMenu(_ViewTestCase):
    def setUp(self):
        super().setUp()
        self.config_path = os.path.join(self._td.name, "config.json")
        self.config.update({k: v for k, v in DEFAULT_CONFIG.items() if k not in self.config})
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config, f)

    def _saved(self) -> dict:
        with open(self.config_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _run(self, *answers):
        import menus.config_menu as cm

        q = _QuestionaryMock()
        q.queue(*answers, "Back")
        with _PatchModuleAttr(cm, "questionary", q):
            cm.config_menu(self.config, self.config_path)
        return q

    def test_update_number_setting(self):
        self._run("Update a setting", "spotify_max_retries", "5")

        self.assertEqual(self.config["spotify_max_retries"], 5)
        self.assertEqual(self._saved()["spotify_max_retries"], 5)

    def test_out_of_range_value_is_rejected(self):
        with self.assertLogs("breadcrumbs", level="ERROR") as logs:
            self._run("Update a setting", "spotify_max_retries", "50")

        self.assertEqual(self.config["spotify_max_retries"], DEFAULT_CONFIG["spotify_max_retries"])
        self.assertEqual(self._saved()["spotify_max_retries"], DEFAULT_CONFIG["spotify_max_retries"])
        self.assertTrue(any("spotify_max_retries" in line for line in logs.output))

    def test_non_numeric_value_is_rejected(self):
        with self.assertLogs("breadcrumbs", level="ERROR"):
            self._run("Update a setting", "spotify_request_timeout", "soon")
        self.assertEqual(self._saved()["spotify_request_timeout"], DEFAULT_CONFIG["spotify_request_timeout"])

    def test_update_flag_and_scopes(self):
        self._run(
            "Update a setting", "spotify_show_dialog", False,
            "Update a setting", "spotify_scopes", "user-top-read, playlist-read-private",
        )

        saved = self._saved()
        self.assertIs(saved["spotify_show_dialog"], False)
        self.assertEqual(saved["spotify_scopes"], ["user-top-read", "playlist-read-private"])
        self.assertEqual(self.config["spotify_scopes"], ["user-top-read", "playlist-read-private"])

    def test_view_hides_client_secret(self):
        with self.assertLogs("breadcrumbs", level="INFO") as logs:
            self._run("View current config")

        output = "\n".join(logs.output)
        self.assertIn("spotify_client_secret: SET", output)
        self.assertFalse(any(line.endswith(": secret") for line in logs.output))

    def test_validate_reports_missing_client_id(self):
        self.config["spotify_client_id"] = ""
        with self.assertLogs("breadcrumbs", level="ERROR") as logs:
            self._run("Validate configuration")
        self.assertTrue(any("spotify_client_id" in line for line in logs.output))


class TestNavigator(unittest.TestCase):
    def test_unknown_view_is_rejected(self):
        navigator = CliNavigator()
        with self.assertRaises(ValueError):
            navigator.show_view("settings")
        self.assertEqual(navigator.current_view, "landing")

    def test_open_url_without_browser_warns(self):
        import menus.navigator as nav

        opened = []

        def fake_open(url):
            opened.append(url)
            return False

        fake_webbrowser = types.SimpleNamespace(open=fake_open, Error=nav.webbrowser.Error)
        navigator = CliNavigator()
        with _PatchModuleAttr(nav, "webbrowser", fake_webbrowser), self.assertLogs("breadcrumbs", level="WARNING") as logs:
            navigator.open_url("https://accounts.spotify.com/authorize?client_id=cid")

        self.assertEqual(opened, ["https://accounts.spotify.com/authorize?client_id=cid"])
        self.assertEqual(navigator.last_url, opened[0])
        self.assertTrue(any("open the URL above manually" in line for line in logs.output))

    def test_open_url_can_skip_browser(self):
        import menus.navigator as nav

        def fail_open(url):
            raise AssertionError("browser should not be opened")

        fake_webbrowser = types.SimpleNamespace(open=fail_open, Error=nav.webbrowser.Error)
        navigator = CliNavigator(open_browser=False)
        with _PatchModuleAttr(nav, "webbrowser", fake_webbrowser):
            navigator.open_url("https://example.test/")
        self.assertEqual(navigator.last_url, "https://example.test/")


if __name__ == "__main__":
    unittest.main(verbosity=2)
