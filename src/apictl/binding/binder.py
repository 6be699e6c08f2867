"""Bind raw command-line arguments to a command's declared parameters.

:class:`ParameterBinder` is a pure function of the command, the raw argument
strings and the active profile: it never touches the network or the file
system and never mutates the command tree.

**Resolution order for each declared parameter**

1. A value supplied on the command line (``--flag value`` or
   ``--flag=value``), coerced into the declared type.
2. For file parameters, the pre-supplied standard input stream.
3. The profile's default map for the parameter's location (``path``,
   ``query`` or ``header``), keyed by wire name or flag.
4. The schema default.
5. Otherwise, for required parameters, :class:`MissingArgumentError`.

Parameters are visited in declaration order, so the error always names the
first missing flag.
"""

from __future__ import annotations

import json
from typing import Any, BinaryIO, Optional, Sequence

from apictl.exceptions import BindError, MissingArgumentError
from apictl.executor.context import ExecutionParameter, FileReference
from apictl.models import (
    Command,
    CommandParameter,
    ParameterLocation,
    ParameterType,
    Profile,
)

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})

_MISSING = object()


def parse_raw_args(command: Command, raw_args: Sequence[str]) -> dict[str, str]:
    """Split raw argument strings into a ``flag -> text`` mapping.

    A bare boolean flag (``--verbose`` followed by another flag or nothing)
    means ``true``. When a flag is repeated the last occurrence wins.

    Raises:
        BindError: On positional arguments, unknown flags, or a non-boolean
            flag without a value.
    """
    supplied: dict[str, str] = {}
    args = list(raw_args)
    i = 0
    while i < len(args):
        token = args[i]
        if not token.startswith("--") or token == "--":
            raise BindError(f"Unexpected argument '{token}'")
        flag, sep, value = token[2:].partition("=")
        param = command.get_parameter(flag)
        if param is None:
            raise BindError(f"Unknown argument --{flag}")
        if not sep:
            if i + 1 < len(args) and not args[i + 1].startswith("--"):
                i += 1
                value = args[i]
            elif param.type == ParameterType.BOOLEAN:
                value = "true"
            else:
                raise BindError(f"Argument --{flag} requires a value")
        supplied[flag] = value
        i += 1
    return supplied


class ParameterBinder:
    """Turns raw arguments into typed :class:`ExecutionParameter` values.

    Example::

        binder = ParameterBinder()
        params = binder.bind(upload, ["--folder-id", "1", "--key", "2"], profile)
    """

    def bind(
        self,
        command: Command,
        raw_args: Sequence[str],
        profile: Profile,
        stdin: Optional[BinaryIO] = None,
    ) -> list[ExecutionParameter]:
        """Bind every declared parameter of *command*.

        Args:
            command: The command being invoked.
            raw_args: Raw argument strings as typed by the user.
            profile: The active profile supplying fallback values.
            stdin: Readable binary stream used for file parameters that were
                not given explicitly, or ``None`` when nothing is piped in.

        Returns:
            The bound parameters, in declaration order. Optional parameters
            without any value are omitted.

        Raises:
            BindError: If a value cannot be coerced or an argument is unknown.
            MissingArgumentError: If a required parameter has no value.
        """
        supplied = parse_raw_args(command, raw_args)
        bound: list[ExecutionParameter] = []
        for param in command.parameters:
            value = self._resolve(param, supplied, profile, stdin)
            if stdin is not None and isinstance(value, FileReference) and value.stream is stdin:
                # stdin can only feed one file parameter
                stdin = None
            if value is not _MISSING:
                bound.append(ExecutionParameter(param.name, value, param.location))
        return bound

    def _resolve(
        self,
        param: CommandParameter,
        supplied: dict[str, str],
        profile: Profile,
        stdin: Optional[BinaryIO],
    ) -> Any:
        if param.flag in supplied:
            return coerce(param, supplied[param.flag])
        if param.is_file and stdin is not None:
            return FileReference.from_stream(stdin)

        fallback = _profile_default(param, profile)
        if fallback is not None:
            return coerce(param, fallback)
        if param.default is not None:
            return param.default
        if param.required:
            raise MissingArgumentError(param.flag)
        return _MISSING


def _profile_default(param: CommandParameter, profile: Profile) -> Optional[str]:
    defaults = {
        ParameterLocation.PATH: profile.path,
        ParameterLocation.QUERY: profile.query,
        ParameterLocation.HEADER: profile.header,
    }.get(param.location)
    if not defaults:
        return None
    value = defaults.get(param.name, defaults.get(param.flag))
    return None if value is None else str(value)


def coerce(param: CommandParameter, text: str) -> Any:
    """Convert *text* into the Python value for *param*'s declared type.

    Raises:
        BindError: If the text is not a valid value of that type.
    """
    if param.allowed_values and text not in param.allowed_values:
        allowed = ", ".join(param.allowed_values)
        raise BindError(f"Argument --{param.flag} must be one of: {allowed}")

    kind = param.type
    if kind == ParameterType.STRING:
        return text
    if kind == ParameterType.INTEGER:
        try:
            return int(text)
        except ValueError:
            raise BindError(f"Cannot convert '{param.flag}' value '{text}' to integer") from None
    if kind == ParameterType.NUMBER:
        try:
            return float(text)
        except ValueError:
            raise BindError(f"Cannot convert '{param.flag}' value '{text}' to number") from None
    if kind == ParameterType.BOOLEAN:
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise BindError(f"Cannot convert '{param.flag}' value '{text}' to boolean")
    if kind == ParameterType.OBJECT:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise BindError(f"Cannot convert '{param.flag}' value to JSON: {exc}") from None
    return FileReference.from_path(text)
