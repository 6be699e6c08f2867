"""Abstract base class for command plugins.

A command plugin replaces generic HTTP execution for one command with custom
logic (polling a long-running job, streaming a file to blob storage, ...).
It declares its identity and parameters through :class:`PluginCommand` and
implements :meth:`CommandPlugin.execute` against the fully bound
:class:`~apictl.executor.context.ExecutionContext`.

The definition parser merges :class:`PluginCommand` metadata into the command
tree of the definition named by ``service``, so plugin commands are listed,
documented and bound exactly like generated ones.

Plugins are registered with :class:`~apictl.plugins.manager.PluginRegistry`,
either as built-ins or through the ``apictl.plugins`` entry-point group.

Example:
    Minimal plugin implementation::

        class PingCommand(CommandPlugin):
            @property
            def command(self) -> PluginCommand:
                return PluginCommand(service="orchestrator", group="status", name="ping")

            def execute(self, context: ExecutionContext) -> str:
                return "pong"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from apictl.models import CommandParameter

if TYPE_CHECKING:
    from apictl.executor.context import ExecutionContext


class PluginCommand(BaseModel):
    """Identity and parameters of a plugin-provided command.

    Attributes:
        service: Name of the definition the command belongs to.
        group: Group the command is listed under.
        name: Command name; replaces a generated command of the same name.
        description: One-line help text.
        parameters: Declared parameters, bound like any other command's.
        hidden: Leave the command out of listings.
        disabled: Refuse to run the command.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    group: str
    name: str
    description: str = ""
    parameters: tuple[CommandParameter, ...] = ()
    hidden: bool = False
    disabled: bool = False

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.service, self.group, self.name)


class CommandPlugin(ABC):
    """Base class for all command plugins.

    Subclasses must implement :attr:`command` and :meth:`execute`.
    Constructors take no required arguments so entry-point plugins can be
    instantiated by the registry.
    """

    @property
    @abstractmethod
    def command(self) -> PluginCommand:
        """Return the metadata of the command this plugin executes."""
        ...

    @abstractmethod
    def execute(self, context: ExecutionContext) -> str:
        """Run the command and return the text to print.

        An empty string prints nothing. Plugins that produce raw bytes write
        them to ``context.output`` and return ``""``.

        Raises:
            ApictlError: Any subclass; the CLI prints its message and exits
                with its exit code.
        """
        ...
