"""Tests for the interactive OAuth (authorization code + PKCE) authenticator.

The callback server is real: a fake browser launcher parses the
authorization URL and calls the redirect URI from a background thread,
the way the user's browser would after login.
"""

from __future__ import annotations

import base64
import hashlib
import socket
import threading
from typing import Optional
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from apictl.auth.base import AuthRequest
from apictl.auth.oauth import BrowserLauncher, OAuthAuthenticator, generate_pkce_pair
from apictl.cache import MemoryCache
from apictl.exceptions import AuthenticationFailedError
from apictl.models import AuthConfig


BASE_URI = "https://cloud.uipath.com/my-org/my-tenant/orchestrator_"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class _FakeBrowser(BrowserLauncher):
    """Calls the redirect URI with a code, like a browser after login.

    Args:
        code: Authorization code to hand back, or ``None`` to send nothing.
        state: Overrides the state parameter; the real one by default.
        error: Sends ``error=<value>`` instead of a code.
    """

    def __init__(
        self,
        code: Optional[str] = "auth-code",
        state: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        self.code = code
        self.state = state
        self.error = error
        self.urls: list[str] = []

    def open(self, url: str) -> None:
        self.urls.append(url)
        params = {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}
        if self.error:
            query = {"error": self.error}
        elif self.code:
            query = {"code": self.code, "state": self.state or params["state"]}
        else:
            return
        thread = threading.Thread(
            target=httpx.get,
            args=(params["redirect_uri"],),
            kwargs={"params": query, "trust_env": False, "timeout": 5.0},
            daemon=True,
        )
        thread.start()

    @property
    def params(self) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(urlparse(self.urls[-1]).query).items()}


class _TokenEndpoint:
    def __init__(self) -> None:
        self.grants: list[dict[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.grants.append({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        return httpx.Response(200, json={"access_token": "user-token", "expires_in": 3600})


def _make_request(port: int, **extra) -> AuthRequest:
    config = AuthConfig(
        clientId="my-app",
        redirectUri=f"http://127.0.0.1:{port}/callback",
        scopes="OR.Buckets offline_access",
        **extra,
    )
    return AuthRequest(url=BASE_URI, config=config)


def _make_auth(browser: BrowserLauncher, endpoint: _TokenEndpoint, timeout: float = 5.0,
               cache: Optional[MemoryCache] = None) -> OAuthAuthenticator:
    return OAuthAuthenticator(
        cache if cache is not None else MemoryCache(),
        launcher=browser,
        transport=httpx.MockTransport(endpoint),
        timeout=timeout,
    )


# ---------------------------------------------------------------------------
# PKCE
# ---------------------------------------------------------------------------


class TestPkce:
    def test_challenge_matches_verifier(self) -> None:
        verifier, challenge = generate_pkce_pair()
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        assert challenge == base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert 43 <= len(verifier) <= 128

    def test_pairs_are_random(self) -> None:
        assert generate_pkce_pair() != generate_pkce_pair()


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


class TestOAuthAuthenticator:
    def test_not_applicable_without_redirect_uri(self) -> None:
        browser = _FakeBrowser()
        auth = _make_auth(browser, _TokenEndpoint())
        request = AuthRequest(url=BASE_URI, config=AuthConfig(clientId="app", clientSecret="s"))
        assert auth.authenticate(request) is None
        assert browser.urls == []

    def test_full_flow(self) -> None:
        port = _free_port()
        browser = _FakeBrowser()
        endpoint = _TokenEndpoint()
        result = _make_auth(browser, endpoint).authenticate(_make_request(port))

        assert result is not None
        assert result.headers == {"Authorization": "Bearer user-token"}

        assert browser.urls[0].startswith("https://cloud.uipath.com/identity_/connect/authorize?")
        params = browser.params
        assert params["response_type"] == "code"
        assert params["client_id"] == "my-app"
        assert params["scope"] == "OR.Buckets offline_access"
        assert params["code_challenge_method"] == "S256"

        grant = endpoint.grants[0]
        assert grant["grant_type"] == "authorization_code"
        assert grant["code"] == "auth-code"
        assert grant["redirect_uri"] == f"http://127.0.0.1:{port}/callback"
        assert "client_secret" not in grant
        digest = hashlib.sha256(grant["code_verifier"].encode("ascii")).digest()
        assert params["code_challenge"] == base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def test_client_secret_sent_when_configured(self) -> None:
        endpoint = _TokenEndpoint()
        _make_auth(_FakeBrowser(), endpoint).authenticate(
            _make_request(_free_port(), clientSecret="shh")
        )
        assert endpoint.grants[0]["client_secret"] == "shh"

    def test_cached_token_skips_browser(self) -> None:
        port = _free_port()
        cache = MemoryCache()
        endpoint = _TokenEndpoint()
        _make_auth(_FakeBrowser(), endpoint, cache=cache).authenticate(_make_request(port))

        second = _FakeBrowser()
        result = _make_auth(second, endpoint, cache=cache).authenticate(_make_request(port))
        assert result.headers == {"Authorization": "Bearer user-token"}
        assert second.urls == []
        assert len(endpoint.grants) == 1

    def test_state_mismatch_fails(self) -> None:
        endpoint = _TokenEndpoint()
        auth = _make_auth(_FakeBrowser(state="forged"), endpoint)
        with pytest.raises(AuthenticationFailedError, match="state mismatch"):
            auth.authenticate(_make_request(_free_port()))
        assert endpoint.grants == []

    def test_provider_error_fails(self) -> None:
        auth = _make_auth(_FakeBrowser(error="access_denied"), _TokenEndpoint())
        with pytest.raises(AuthenticationFailedError, match="OAuth authorization failed: access_denied"):
            auth.authenticate(_make_request(_free_port()))

    def test_no_callback_times_out(self) -> None:
        auth = _make_auth(_FakeBrowser(code=None), _TokenEndpoint(), timeout=0.3)
        with pytest.raises(AuthenticationFailedError, match="No authorization code received"):
            auth.authenticate(_make_request(_free_port()))

    def test_port_in_use_fails(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]
            auth = _make_auth(_FakeBrowser(), _TokenEndpoint())
            with pytest.raises(AuthenticationFailedError, match="Could not listen on redirect uri"):
                auth.authenticate(_make_request(port))
