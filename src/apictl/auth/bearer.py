"""Bearer authenticator using the OAuth2 client credentials grant.

Exchanges ``clientId`` and ``clientSecret`` for an access token at
``<identity>/connect/token`` (:rfc:`6749` section 4.4). No user interaction
is involved, which makes this the strategy for unattended use.

Tokens are stored in the injected :class:`~apictl.cache.CredentialCache`
keyed by the client id, a hash of the secret, the scopes and the identity
server, so a changed secret never reuses a stale token.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.auth.token import request_token, to_cache_entry
from apictl.cache import CredentialCache, make_cache_key
from apictl.config import resolve_credential

logger = logging.getLogger(__name__)


class BearerAuthenticator(Authenticator):
    """Authenticate with a client-credentials access token.

    Args:
        cache: Where tokens are reused across invocations.
        transport: Optional httpx transport for the token request.
    """

    def __init__(
        self,
        cache: CredentialCache,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._cache = cache
        self._transport = transport

    @property
    def name(self) -> str:
        return "bearer"

    def authenticate(self, request: AuthRequest) -> Optional[AuthResult]:
        config = request.config
        if not config.client_id or not config.client_secret:
            return None

        client_id = resolve_credential(config.client_id)
        client_secret = resolve_credential(config.client_secret)
        identity = request.identity_uri
        key = make_cache_key(
            "bearer", client_id, make_cache_key(client_secret), config.scopes or "", identity
        )

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached bearer token for client '%s'", client_id)
            return AuthResult.bearer(cached.token)

        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        if config.scopes:
            data["scope"] = config.scopes

        token_data = request_token(
            f"{identity}/connect/token",
            data,
            insecure=request.insecure,
            transport=self._transport,
        )
        entry = to_cache_entry(token_data)
        self._cache.set(key, entry)
        return AuthResult.bearer(entry.token)
