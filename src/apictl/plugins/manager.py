"""Plugin registry -- built-in and discovered command plugins.

This module contains :class:`PluginRegistry`, which maps a command identity
``(service, group, name)`` to the :class:`~apictl.plugins.base.CommandPlugin`
executing it. The built-in plugins are registered by
:func:`create_default_registry`; third-party plugins are discovered from the
``apictl.plugins`` entry-point group. Packages register plugins by declaring
an entry point in their ``pyproject.toml``::

    [project.entry-points."apictl.plugins"]
    my-command = "my_package.plugin:MyCommand"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Iterable, Optional

import httpx

from apictl.exceptions import PluginError
from apictl.plugins.base import CommandPlugin, PluginCommand

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "apictl.plugins"
"""The entry-point group name used for plugin discovery."""


class PluginRegistry:
    """Explicit registry of command plugins keyed by (service, group, name).

    Example::

        registry = PluginRegistry([UploadCommand(), DownloadCommand()])
        plugin = registry.get("orchestrator", "buckets", "upload")
    """

    def __init__(self, plugins: Iterable[CommandPlugin] = ()) -> None:
        self._plugins: dict[tuple[str, str, str], CommandPlugin] = {}
        for plugin in plugins:
            self.register(plugin)

    def register(self, plugin: CommandPlugin) -> None:
        """Register *plugin*.

        Raises:
            PluginError: If another plugin already claims the same identity.
        """
        key = plugin.command.key
        if key in self._plugins:
            raise PluginError(f"Plugin command '{' '.join(key)}' is already registered")
        self._plugins[key] = plugin
        logger.debug("Registered plugin command '%s'", " ".join(key))

    def get(self, service: str, group: str, name: str) -> Optional[CommandPlugin]:
        return self._plugins.get((service, group, name))

    def commands(self) -> list[PluginCommand]:
        """Metadata of every registered plugin, in registration order."""
        return [plugin.command for plugin in self._plugins.values()]

    def discover(self) -> list[str]:
        """Load plugins from the ``apictl.plugins`` entry-point group.

        Returns:
            Names of the entry points that were loaded. Entry points that
            fail to load are logged as warnings and skipped.
        """
        loaded: list[str] = []
        for ep in importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP):
            try:
                plugin_cls = ep.load()
                self.register(plugin_cls())
                loaded.append(ep.name)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", ep.name, exc)
        return loaded


def builtin_plugins(transport: Optional[httpx.BaseTransport] = None) -> list[CommandPlugin]:
    """Instantiate the plugins shipped with apictl."""
    from apictl.plugins.digitizer import DigitizeCommand, DigitizeResultCommand
    from apictl.plugins.orchestrator import DownloadCommand, UploadCommand

    return [
        DigitizeCommand(transport=transport),
        DigitizeResultCommand(),
        UploadCommand(transport=transport),
        DownloadCommand(transport=transport),
    ]


def create_default_registry(
    transport: Optional[httpx.BaseTransport] = None,
    discover: bool = True,
) -> PluginRegistry:
    """Create a registry with the built-in plugins, plus discovered ones."""
    registry = PluginRegistry(builtin_plugins(transport))
    if discover:
        registry.discover()
    return registry
