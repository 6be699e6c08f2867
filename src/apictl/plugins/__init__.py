"""Command plugins: custom execution for selected commands.

See :mod:`apictl.plugins.base` for the contract and
:mod:`apictl.plugins.manager` for registration and discovery.
"""

from apictl.plugins.base import CommandPlugin, PluginCommand

__all__ = ["CommandPlugin", "PluginCommand"]
