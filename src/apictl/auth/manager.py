"""Authenticator chain -- tries strategies in a fixed priority order.

The :class:`AuthenticatorChain` is the central coordinator of the
authentication subsystem. It holds an ordered list of
:class:`~apictl.auth.base.Authenticator` instances and returns the result of
the first one that claims the request. An authoritative failure stops the
chain; it never falls through to a later strategy.

For most use cases, call :func:`create_default_chain` to get the built-in
order: external authenticators, personal access token, OAuth (browser),
bearer (client credentials).

See Also:
    :class:`~apictl.auth.base.Authenticator` -- the strategy interface.
    :class:`~apictl.executor.builder.ContextBuilder` -- consumes the
    :class:`~apictl.auth.base.AuthResult` produced here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

import httpx

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.cache import CredentialCache
from apictl.models import PluginConfig

if TYPE_CHECKING:
    from apictl.auth.oauth import BrowserLauncher

logger = logging.getLogger(__name__)


class AuthenticatorChain:
    """Ordered chain of authentication strategies.

    Example::

        chain = AuthenticatorChain([PatAuthenticator(), BearerAuthenticator(cache)])
        result = chain.authenticate(AuthRequest(url=base_uri, config=profile.auth))
    """

    def __init__(self, authenticators: Iterable[Authenticator] = ()) -> None:
        self._authenticators: list[Authenticator] = list(authenticators)

    def register(self, authenticator: Authenticator) -> None:
        """Append *authenticator* at the lowest priority."""
        self._authenticators.append(authenticator)

    @property
    def names(self) -> list[str]:
        """Names of the registered strategies in priority order."""
        return [a.name for a in self._authenticators]

    def authenticate(self, request: AuthRequest) -> AuthResult:
        """Return the headers of the first strategy claiming *request*.

        Returns:
            The winning :class:`~apictl.auth.base.AuthResult`, or an empty
            one when no strategy applies (unauthenticated call).

        Raises:
            AuthenticationFailedError: Propagated from the claiming strategy.
        """
        for authenticator in self._authenticators:
            result = authenticator.authenticate(request)
            if result is not None:
                logger.debug("Request authenticated by '%s'", authenticator.name)
                return result
        logger.debug("No authenticator applies, sending request without credentials")
        return AuthResult()


def create_default_chain(
    plugin_config: PluginConfig,
    cache: CredentialCache,
    launcher: Optional["BrowserLauncher"] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> AuthenticatorChain:
    """Create the chain with every built-in strategy, in priority order.

    1. One :class:`~apictl.auth.external.ExternalAuthenticator` per entry
       in the plugin configuration.
    2. :class:`~apictl.auth.pat.PatAuthenticator`.
    3. :class:`~apictl.auth.oauth.OAuthAuthenticator` (browser, cached).
    4. :class:`~apictl.auth.bearer.BearerAuthenticator` (cached).

    Args:
        plugin_config: Parsed plugin configuration listing external
            authenticators.
        cache: Credential cache shared by the OAuth and bearer strategies.
        launcher: Browser launcher for the OAuth flow. Defaults to the
            system web browser.
        transport: Optional httpx transport for token requests.
    """
    from apictl.auth.bearer import BearerAuthenticator
    from apictl.auth.external import ExternalAuthenticator
    from apictl.auth.oauth import OAuthAuthenticator
    from apictl.auth.pat import PatAuthenticator

    chain = AuthenticatorChain()
    for external in plugin_config.authenticators:
        chain.register(ExternalAuthenticator(external.name, external.path))
    chain.register(PatAuthenticator())
    chain.register(OAuthAuthenticator(cache, launcher=launcher, transport=transport))
    chain.register(BearerAuthenticator(cache, transport=transport))
    return chain
