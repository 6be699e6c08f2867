"""Build the :class:`~apictl.executor.context.ExecutionContext` of an invocation.

:class:`ContextBuilder` runs the steps between "the user typed a command" and
"a request can be sent", in this order:

1. Bind raw arguments (:class:`~apictl.binding.ParameterBinder`). A missing
   required argument is reported before anything else is checked.
2. Resolve organization and tenant: the profile field, then the profile's
   ``path`` map, then the server variable default.
3. Expand the server URL template into the base URI. The profile's ``uri``
   replaces the template's scheme and host. An unresolved
   ``{organization}`` or ``{tenant}`` placeholder fails here, before any
   network call.
4. Ask the authenticator chain for headers. The profile's ``header`` map is
   kept apart from them; it only fills in headers nobody else supplies.
"""

from __future__ import annotations

import logging
import re
from typing import BinaryIO, Optional, Sequence
from urllib.parse import urlsplit

from apictl.auth import AuthenticatorChain, AuthRequest
from apictl.binding import ParameterBinder
from apictl.exceptions import ConfigError
from apictl.executor.context import ExecutionContext
from apictl.models import Command, CommandTree, Profile

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def resolve_variable(name: str, profile: Profile, tree: CommandTree) -> Optional[str]:
    """Return the value of server variable *name* for this profile."""
    value = getattr(profile, name, None) if name in ("organization", "tenant") else None
    if not value:
        value = profile.path.get(name)
    if not value:
        value = tree.server_variables.get(name)
    return value or None


def expand_server_url(template: str, variables: dict[str, Optional[str]]) -> str:
    """Replace every ``{name}`` in *template*.

    Raises:
        ConfigError: ``Organization is not set`` (or the equivalent for any
            other variable) when a placeholder has no value.
    """

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        value = variables.get(name)
        if not value:
            raise ConfigError(f"{name[:1].upper()}{name[1:]} is not set")
        return value

    return _PLACEHOLDER.sub(substitute, template)


def apply_uri_override(template: str, uri: Optional[str]) -> str:
    """Swap the scheme and host of *template* for those of *uri*."""
    if not uri:
        return template
    path = urlsplit(template).path if "://" in template else template
    if not path.strip("/"):
        return uri.rstrip("/")
    return uri.rstrip("/") + "/" + path.lstrip("/")


class ContextBuilder:
    """Merge bound parameters, profile defaults, base URI and auth headers.

    Args:
        binder: Parameter binder; a fresh one by default.
        chain: Authenticator chain; an empty one (no auth) by default.
    """

    def __init__(
        self,
        binder: Optional[ParameterBinder] = None,
        chain: Optional[AuthenticatorChain] = None,
    ) -> None:
        self._binder = binder or ParameterBinder()
        self._chain = chain or AuthenticatorChain()

    def build(
        self,
        tree: CommandTree,
        command: Command,
        raw_args: Sequence[str],
        profile: Profile,
        *,
        stdin: Optional[BinaryIO] = None,
        insecure: bool = False,
        debug: bool = False,
        output: Optional[BinaryIO] = None,
    ) -> ExecutionContext:
        """Produce the ready-to-send context for one invocation.

        Args:
            tree: The command tree *command* belongs to.
            command: The command being invoked.
            raw_args: Raw argument strings as typed by the user.
            profile: The active profile.
            stdin: Piped standard input, or ``None``.
            insecure: ``--insecure`` given on the command line.
            debug: ``--debug`` given on the command line.
            output: Binary sink for raw response payloads.

        Raises:
            MissingArgumentError: A required parameter has no value.
            BindError: An argument is unknown or cannot be coerced.
            ConfigError: Organization or tenant is needed and not set.
            AuthenticationFailedError: The claiming authenticator failed.
        """
        parameters = self._binder.bind(command, raw_args, profile, stdin)

        variables = {name: resolve_variable(name, profile, tree) for name in self._names(tree)}
        organization = variables["organization"]
        tenant = variables["tenant"]
        base_uri = expand_server_url(apply_uri_override(tree.server_url, profile.uri), variables)
        insecure = insecure or profile.insecure
        logger.debug("Resolved base uri %s for %s/%s", base_uri, command.service, command.name)

        auth = self._chain.authenticate(
            AuthRequest(url=base_uri, config=profile.auth, insecure=insecure)
        )

        return ExecutionContext(
            command=command,
            base_uri=base_uri,
            organization=organization,
            tenant=tenant,
            parameters=parameters,
            default_headers=dict(profile.header),
            auth_headers=dict(auth.headers),
            insecure=insecure,
            debug=debug or profile.debug,
            output=output,
        )

    @staticmethod
    def _names(tree: CommandTree) -> set[str]:
        names = set(_PLACEHOLDER.findall(tree.server_url)) | set(tree.server_variables)
        return names | {"organization", "tenant"}
