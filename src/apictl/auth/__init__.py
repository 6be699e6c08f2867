"""Authentication subsystem for apictl.

Strategies implement :class:`Authenticator`; the
:class:`AuthenticatorChain` asks them in priority order and the first one
that claims a request supplies its headers. Use
:func:`create_default_chain` for the built-in order.
"""

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.auth.manager import AuthenticatorChain, create_default_chain

__all__ = [
    "AuthRequest",
    "AuthResult",
    "Authenticator",
    "AuthenticatorChain",
    "create_default_chain",
]
