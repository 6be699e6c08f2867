"""Personal access token authenticator."""

from __future__ import annotations

from typing import Optional

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.config import resolve_credential


class PatAuthenticator(Authenticator):
    """Send the profile's ``auth.pat`` as a bearer token.

    The token may be given literally or through ``env:`` / ``file:`` sources.
    """

    @property
    def name(self) -> str:
        return "pat"

    def authenticate(self, request: AuthRequest) -> Optional[AuthResult]:
        if not request.config.pat:
            return None
        return AuthResult.bearer(resolve_credential(request.config.pat))
