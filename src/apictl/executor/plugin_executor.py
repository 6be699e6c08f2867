"""Hand plugin commands over to their registered :class:`CommandPlugin`."""

from __future__ import annotations

import logging

from apictl.exceptions import CommandDisabledError, UnknownCommandError
from apictl.executor.context import ExecutionContext
from apictl.models import Command
from apictl.plugins.manager import PluginRegistry

logger = logging.getLogger(__name__)


def humanize(name: str) -> str:
    """``digitize-result`` -> ``Digitize result``."""
    words = name.replace("_", "-").split("-")
    text = " ".join(w for w in words if w)
    return text[:1].upper() + text[1:]


class PluginExecutor:
    """Execute commands whose ``plugin`` flag is set.

    Args:
        registry: Where plugins are looked up by (service, group, name).
    """

    def __init__(self, registry: PluginRegistry) -> None:
        self._registry = registry

    def check(self, command: Command) -> None:
        """Refuse disabled commands before any other work is done.

        Raises:
            CommandDisabledError: ``<Humanized name> command not supported``.
        """
        if command.disabled:
            raise CommandDisabledError(f"{humanize(command.name)} command not supported")

    def execute(self, context: ExecutionContext) -> str:
        """Run the plugin registered for ``context.command``.

        Raises:
            CommandDisabledError: If the command is disabled.
            UnknownCommandError: If no plugin is registered for it.
        """
        command = context.command
        self.check(command)
        plugin = self._registry.get(command.service, command.group, command.name)
        if plugin is None:
            raise UnknownCommandError(
                f"No plugin registered for '{command.service} {command.group} {command.name}'"
            )
        logger.debug("Executing plugin command %s/%s/%s", command.service, command.group, command.name)
        return plugin.execute(context)
