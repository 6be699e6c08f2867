"""Abstract base class for authenticators.

This module defines the foundational types of the auth subsystem:

- :class:`AuthRequest` -- what an authenticator gets to look at: the
  resolved base URI of the call and the profile's auth configuration.
- :class:`AuthResult` -- a plain container for the HTTP headers an
  authenticator produces.
- :class:`Authenticator` -- the abstract base class every strategy extends.

An authenticator answers in one of three ways:

* ``None`` -- the configuration does not select this strategy; the chain
  moves on to the next one.
* an :class:`AuthResult` -- the strategy claimed the request and succeeded.
* :class:`~apictl.exceptions.AuthenticationFailedError` -- the strategy
  claimed the request and failed. The chain stops there.

See Also:
    :mod:`apictl.auth.manager` for the chain that tries strategies in order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from apictl.models import AuthConfig


@dataclass(frozen=True)
class AuthRequest:
    """Input handed to every authenticator.

    Attributes:
        url: The resolved base URI of the service being called.
        config: The active profile's auth block.
        insecure: Whether TLS verification is disabled for this invocation.
    """

    url: str
    config: AuthConfig
    insecure: bool = False

    @property
    def identity_uri(self) -> str:
        """Base URI of the identity server issuing tokens.

        ``auth.uri`` when configured, otherwise ``<scheme>://<host>/identity_``
        of the service URL.
        """
        if self.config.uri:
            return self.config.uri.rstrip("/")
        url = httpx.URL(self.url)
        port = f":{url.port}" if url.port else ""
        return f"{url.scheme}://{url.host}{port}/identity_"


class AuthResult:
    """Container for authentication headers to inject into HTTP requests.

    Args:
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).

    Example::

        result = AuthResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}

    @classmethod
    def bearer(cls, token: str) -> AuthResult:
        return cls(headers={"Authorization": f"Bearer {token}"})


class Authenticator(ABC):
    """Abstract base class for authentication strategies.

    Every concrete strategy must provide:

    1. A :attr:`name` property used in logs and error messages.
    2. An :meth:`authenticate` implementation that inspects the
       :class:`AuthRequest` and either declines (``None``), succeeds, or
       raises :class:`~apictl.exceptions.AuthenticationFailedError`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short identifier such as ``"pat"`` or ``"oauth"``."""
        ...

    @abstractmethod
    def authenticate(self, request: AuthRequest) -> Optional[AuthResult]:
        """Produce auth headers for *request*, or ``None`` when not applicable.

        Raises:
            AuthenticationFailedError: If the strategy applies but cannot
                obtain credentials.
        """
        ...
