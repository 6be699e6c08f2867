"""Execution of bound commands.

:class:`~apictl.executor.builder.ContextBuilder` turns an invocation into an
:class:`ExecutionContext`; :class:`HttpExecutor` sends generic operations
and :class:`PluginExecutor` hands plugin commands to their plugin.

The builder is imported from its module because it depends on
:mod:`apictl.binding`, which itself builds on :mod:`apictl.executor.context`.
"""

from apictl.executor.context import ExecutionContext, ExecutionParameter, FileReference
from apictl.executor.http_executor import HttpExecutor
from apictl.executor.plugin_executor import PluginExecutor

__all__ = [
    "ExecutionContext",
    "ExecutionParameter",
    "FileReference",
    "HttpExecutor",
    "PluginExecutor",
]
