"""Map command parameters to click options.

Generated commands only *collect* arguments; typing, defaults, profile
fallbacks and required checks belong to :class:`~apictl.binding.ParameterBinder`.
Every parameter therefore becomes an optional, string-valued click option
and the values are turned back into raw ``--flag=value`` strings for the
binder by :func:`to_raw_args`.

**Mapping rules:**

* The option is ``--<flag>``; its Python name is ``p<index>`` because flags
  are not always valid identifiers (``content-type``). The parser rejects
  flags that clash with :data:`~apictl.models.COMMON_OPTIONS`.
* Boolean parameters may be given bare (``--verbose``), which means ``true``.
* The help text carries the type, ``(required)``, the allowed values and
  the schema default.
"""

from __future__ import annotations

from typing import Any, Optional

import click

from apictl.models import Command, CommandParameter, ParameterType


def option_name(index: int) -> str:
    return f"p{index}"


def build_help(param: CommandParameter) -> str:
    """Compose the help text of *param*'s option."""
    parts = [param.description or ""]
    details = [param.type.value]
    if param.required:
        details.append("required")
    parts.append(f"[{', '.join(details)}]")
    if param.allowed_values:
        parts.append(f"Allowed values: {', '.join(param.allowed_values)}.")
    if param.default is not None:
        parts.append(f"Default: {param.default}.")
    return " ".join(p for p in parts if p)


def build_option(index: int, param: CommandParameter) -> click.Option:
    """Create the click option collecting *param*'s raw value."""
    kwargs: dict[str, Any] = {
        "type": str,
        "default": None,
        "required": False,
        "help": build_help(param),
        "metavar": param.type.value.upper(),
    }
    if param.type == ParameterType.BOOLEAN:
        kwargs.update(is_flag=False, flag_value="true")
    return click.Option([f"--{param.flag}", option_name(index)], **kwargs)


def build_options(command: Command) -> list[click.Option]:
    """Options for every parameter of *command*, in declaration order."""
    return [build_option(i, param) for i, param in enumerate(command.parameters)]


def to_raw_args(command: Command, values: dict[str, Optional[str]]) -> list[str]:
    """Turn collected option values back into raw ``--flag=value`` strings."""
    raw: list[str] = []
    for i, param in enumerate(command.parameters):
        value = values.get(option_name(i))
        if value is not None:
            raw.append(f"--{param.flag}={value}")
    return raw
