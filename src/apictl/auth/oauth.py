"""OAuth2 Authorization Code flow with PKCE.

This module provides :class:`OAuthAuthenticator`, the interactive strategy
selected by ``clientId`` + ``redirectUri`` + ``scopes`` in a profile's auth
block. It performs the Authorization Code grant with PKCE (:rfc:`7636`):

1. Starts a local HTTP server on the host and port of ``redirectUri``.
2. Opens ``<identity>/connect/authorize`` through a :class:`BrowserLauncher`.
3. Waits for the redirect carrying the authorization code and checks that
   its ``state`` matches the one sent.
4. Exchanges the code at ``<identity>/connect/token``.
5. Stores the access token in the credential cache until it expires.

A cached, unexpired token short-circuits the whole flow, so the browser is
only opened when no usable token exists.

Also exports :func:`generate_pkce_pair`.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import threading
import time
import webbrowser
from abc import ABC, abstractmethod
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.auth.token import request_token, to_cache_entry
from apictl.cache import CredentialCache, make_cache_key
from apictl.config import resolve_credential
from apictl.exceptions import AuthenticationFailedError
from apictl.output import info

logger = logging.getLogger(__name__)


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


class BrowserLauncher(ABC):
    """Opens the authorization URL for the user."""

    @abstractmethod
    def open(self, url: str) -> None:
        ...


class WebBrowserLauncher(BrowserLauncher):
    """Open URLs in the system browser without blocking the callback server."""

    def open(self, url: str) -> None:
        thread = threading.Thread(target=webbrowser.open, args=(url,), daemon=True)
        thread.start()


class OAuthAuthenticator(Authenticator):
    """Authenticate interactively via the browser.

    Args:
        cache: Where tokens are reused across invocations.
        launcher: Opens the authorization URL. Defaults to
            :class:`WebBrowserLauncher`.
        transport: Optional httpx transport for the token exchange.
        timeout: Seconds to wait for the browser redirect.
    """

    def __init__(
        self,
        cache: CredentialCache,
        launcher: Optional[BrowserLauncher] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 120.0,
    ) -> None:
        self._cache = cache
        self._launcher = launcher or WebBrowserLauncher()
        self._transport = transport
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "oauth"

    def authenticate(self, request: AuthRequest) -> Optional[AuthResult]:
        config = request.config
        if not (config.client_id and config.redirect_uri and config.scopes):
            return None

        client_id = resolve_credential(config.client_id)
        redirect_uri = resolve_credential(config.redirect_uri)
        identity = request.identity_uri
        key = make_cache_key("oauth", client_id, redirect_uri, config.scopes, identity)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached OAuth token for client '%s'", client_id)
            return AuthResult.bearer(cached.token)

        code_verifier, code_challenge = generate_pkce_pair()
        state = secrets.token_urlsafe(16)
        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": config.scopes,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        auth_url = f"{identity}/connect/authorize?{urlencode(params)}"
        code = self._wait_for_callback(redirect_uri, auth_url, state)

        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            "client_id": client_id,
        }
        if config.client_secret:
            data["client_secret"] = resolve_credential(config.client_secret)

        token_data = request_token(
            f"{identity}/connect/token",
            data,
            insecure=request.insecure,
            transport=self._transport,
        )
        entry = to_cache_entry(token_data)
        self._cache.set(key, entry)
        return AuthResult.bearer(entry.token)

    def _wait_for_callback(self, redirect_uri: str, auth_url: str, state: str) -> str:
        """Serve the redirect URI, open the browser, and wait for the code.

        Requests without ``code`` or ``error`` (a browser asking for
        ``/favicon.ico``, say) are answered and ignored until the timeout.

        Raises:
            AuthenticationFailedError: If the provider returns an error, the
                state does not match, or nothing arrives in time.
        """
        parsed = urlparse(redirect_uri)
        host = parsed.hostname or "localhost"
        port = parsed.port or 80
        result: dict[str, Optional[str]] = {"code": None, "error": None}

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                params = parse_qs(urlparse(self.path).query)
                if "error" in params:
                    result["error"] = params["error"][0]
                    body = f"Authorization failed: {result['error']}"
                elif "code" in params:
                    if params.get("state", [""])[0] != state:
                        result["error"] = "state mismatch"
                        body = "Authorization failed: state mismatch"
                    else:
                        result["code"] = params["code"][0]
                        body = (
                            "Authorization successful! You can close this window "
                            "and return to the terminal."
                        )
                else:
                    body = "Waiting for authorization."

                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

            def log_message(self, format: str, *args: Any) -> None:
                pass

        try:
            server = HTTPServer((host, port), CallbackHandler)
        except OSError as exc:
            raise AuthenticationFailedError(
                f"Could not listen on redirect uri '{redirect_uri}': {exc}"
            ) from exc

        deadline = time.monotonic() + self._timeout
        try:
            logger.debug("Opening browser for %s", auth_url)
            info(f"Opening browser to log in. If it does not open, visit: {auth_url}")
            self._launcher.open(auth_url)
            while result["code"] is None and result["error"] is None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                server.timeout = remaining
                server.handle_request()
        finally:
            server.server_close()

        if result["error"]:
            raise AuthenticationFailedError(f"OAuth authorization failed: {result['error']}")
        if not result["code"]:
            raise AuthenticationFailedError("No authorization code received from callback")
        return result["code"]
