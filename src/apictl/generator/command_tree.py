"""Build click commands from command trees, lazily per definition.

This is the CLI side of the command pipeline. The root of the CLI gets one
:class:`DefinitionGroup` per definition document; a definition is only
parsed when one of its commands (or its help) is requested, so a broken
definition never affects the others.

**Command layout**

``apictl <definition> <group> <command> --<flag> <value> ...``

* :class:`DefinitionGroup` -- lists the groups of one definition.
* :class:`OperationGroup` -- lists the commands of one group. Hidden and
  disabled commands are left out of the listing but can still be resolved,
  so invoking them gives a proper error instead of "No such command".
* :func:`build_command` -- the leaf: collects the raw option values and hands
  them to :meth:`~apictl.runtime.Runtime.run`.
"""

from __future__ import annotations

import textwrap
from typing import Any, NoReturn, Optional

import click
import typer

from apictl.exceptions import ApictlError
from apictl.generator.param_mapper import build_options, to_raw_args
from apictl.models import Command, CommandTree
from apictl.output import error
from apictl.runtime import Runtime


def _fail(exc: ApictlError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def _load_tree(runtime: Runtime, name: str) -> CommandTree:
    try:
        return runtime.load_tree(name)
    except ApictlError as exc:
        _fail(exc)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class DefinitionGroup(click.Group):
    """All groups of one definition, parsed on first use."""

    def __init__(self, name: str, runtime: Runtime, **attrs: Any) -> None:
        attrs.setdefault("help", f"Commands of the '{name}' definition.")
        super().__init__(name=name, no_args_is_help=True, **attrs)
        self.runtime = runtime

    @property
    def tree(self) -> CommandTree:
        return _load_tree(self.runtime, self.name or "")

    def list_commands(self, ctx: click.Context) -> list[str]:
        return self.tree.groups()

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        tree = self.tree
        if cmd_name not in tree.groups(include_unlisted=True):
            return None
        return OperationGroup(tree, cmd_name, self.runtime)


class OperationGroup(click.Group):
    """The commands of one group of a definition."""

    def __init__(self, tree: CommandTree, name: str, runtime: Runtime) -> None:
        super().__init__(name=name, no_args_is_help=True, help=f"{name} commands")
        self.command_tree = tree
        self.runtime = runtime

    def list_commands(self, ctx: click.Context) -> list[str]:
        return [cmd.name for cmd in self.command_tree.commands_in(self.name or "")]

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        command = self.command_tree.find(self.name or "", cmd_name)
        if command is None:
            return None
        return build_command(self.command_tree, command, self.runtime)


# ---------------------------------------------------------------------------
# Leaf commands
# ---------------------------------------------------------------------------


def build_help_text(command: Command) -> str:
    """Help shown by ``--help``: the summary, then the description."""
    parts = [command.summary or command.name]
    if command.description and command.description != command.summary:
        parts.append(textwrap.dedent(command.description).strip())
    return "\n\n".join(parts)


def build_command(tree: CommandTree, command: Command, runtime: Runtime) -> click.Command:
    """Create the click command invoking *command*."""

    def callback(
        debug: bool,
        insecure: bool,
        profile: Optional[str],
        **values: Optional[str],
    ) -> None:
        ctx = click.get_current_context()
        root = ctx.find_root().obj or {}
        try:
            runtime.run(
                tree,
                command,
                to_raw_args(command, values),
                profile_name=profile or root.get("profile"),
                debug=debug or bool(root.get("debug")),
                insecure=insecure or bool(root.get("insecure")),
            )
        except ApictlError as exc:
            _fail(exc)

    params: list[click.Parameter] = list(build_options(command))
    params += [
        click.Option(["--debug"], is_flag=True, default=False, help="Echo requests and responses."),
        click.Option(["--insecure"], is_flag=True, default=False, help="Skip TLS certificate checks."),
        click.Option(["--profile"], default=None, help="Profile to use."),
    ]
    return click.Command(
        name=command.name,
        callback=callback,
        params=params,
        help=build_help_text(command),
        short_help=command.summary,
        hidden=not command.listed,
    )
