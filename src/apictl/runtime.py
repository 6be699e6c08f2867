"""Everything one CLI process needs to run commands.

:class:`Runtime` bundles the collaborators of the command pipeline (the
definition store, the plugin registry, the credential cache) together with
the seams tests replace (HTTP transport, browser launcher, piped stdin).
:func:`apictl.app.build_cli` turns a runtime into a click command tree and
generated commands call :meth:`Runtime.run` to execute an invocation.

Run order of :meth:`Runtime.run`:

1. Refuse disabled commands.
2. Load the configuration and select the profile.
3. Build the execution context (binding, organization/tenant, auth).
4. Execute through the plugin or the generic HTTP executor and print.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Sequence

import httpx

from apictl.auth import AuthenticatorChain, create_default_chain
from apictl.auth.oauth import BrowserLauncher
from apictl.cache import CredentialCache, FileCache
from apictl.config import (
    get_cache_dir,
    get_definitions_dir,
    load_config,
    load_plugin_config,
    resolve_profile,
)
from apictl.exceptions import ConfigError
from apictl.executor import HttpExecutor, PluginExecutor
from apictl.executor.builder import ContextBuilder
from apictl.executor.response import format_api_response
from apictl.models import Command, CommandTree, Profile
from apictl.output import OutputFormat, binary_stdout, get_output, print_data, warning
from apictl.parser import DefinitionParser, DefinitionStore
from apictl.plugins.manager import PluginRegistry, create_default_registry

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Collaborators shared by every command of one process.

    Attributes:
        store: Where definition documents are read from.
        registry: Command plugins merged into the trees and executed.
        cache: Credential cache for the OAuth and bearer authenticators.
        config_path: Profiles file; the default location when ``None``.
        plugins_path: Plugin configuration file; the default location when
            ``None``.
        transport: httpx transport for every request (tests inject a mock).
        launcher: Browser launcher for the OAuth flow.
        stdin: Piped standard input, or ``None`` when stdin is a terminal.
    """

    store: DefinitionStore
    registry: PluginRegistry
    cache: CredentialCache
    config_path: Optional[Path] = None
    plugins_path: Optional[Path] = None
    transport: Optional[httpx.BaseTransport] = None
    launcher: Optional[BrowserLauncher] = None
    stdin: Optional[BinaryIO] = None
    _trees: dict[str, CommandTree] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_environment(cls, stdin: Optional[BinaryIO] = None) -> Runtime:
        """Create the runtime for a real process from the default locations."""
        return cls(
            store=DefinitionStore(get_definitions_dir()),
            registry=create_default_registry(),
            cache=FileCache(get_cache_dir()),
            stdin=stdin,
        )

    # ------------------------------------------------------------------ #
    # Definitions
    # ------------------------------------------------------------------ #

    def definition_names(self) -> list[str]:
        return self.store.names()

    def load_tree(self, name: str) -> CommandTree:
        """Parse definition *name* once per process, merging plugin commands."""
        tree = self._trees.get(name)
        if tree is None:
            parser = DefinitionParser(self.registry.commands())
            tree = parser.parse(name, self.store.load(name))
            self._trees[name] = tree
        return tree

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def create_chain(self) -> AuthenticatorChain:
        return create_default_chain(
            load_plugin_config(self.plugins_path),
            self.cache,
            launcher=self.launcher,
            transport=self.transport,
        )

    def resolve_profile(self, profile_name: Optional[str]) -> Profile:
        return resolve_profile(load_config(self.config_path), profile_name)

    def run(
        self,
        tree: CommandTree,
        command: Command,
        raw_args: Sequence[str],
        *,
        profile_name: Optional[str] = None,
        debug: bool = False,
        insecure: bool = False,
    ) -> None:
        """Execute one invocation of *command* and print its result.

        Raises:
            ApictlError: Any failure of the pipeline; the caller reports it.
        """
        plugin_executor = PluginExecutor(self.registry)
        plugin_executor.check(command)

        profile = self.resolve_profile(profile_name)
        _apply_output_mode(profile)

        builder = ContextBuilder(chain=self.create_chain())
        context = builder.build(
            tree,
            command,
            raw_args,
            profile,
            stdin=self.stdin,
            insecure=insecure,
            debug=debug,
            output=binary_stdout(),
        )
        if context.insecure:
            warning("TLS certificate verification is disabled")

        if command.plugin:
            result = plugin_executor.execute(context)
            if result:
                print_data(result)
        else:
            format_api_response(HttpExecutor(self.transport).execute(context))


def _apply_output_mode(profile: Profile) -> None:
    try:
        get_output().format = OutputFormat(profile.output)
    except ValueError:
        raise ConfigError(
            f"Invalid output mode '{profile.output}' in profile '{profile.name}'"
        ) from None
