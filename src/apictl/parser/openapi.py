"""Turn a raw definition document into a :class:`~apictl.models.CommandTree`.

This is the core algorithm of apictl. It walks every path and HTTP method of
an OpenAPI-style document and produces one frozen
:class:`~apictl.models.Command` per operation.

**Algorithm summary**

1. Inline ``$ref`` pointers (:func:`~apictl.parser.resolver.resolve_refs`).
2. Read the server URL template and its variable defaults from
   ``servers[0]``; documents without servers get :data:`DEFAULT_SERVER_URL`.
3. For each operation derive the group (first tag, else first static path
   segment) and the command name (kebab-cased ``operationId``, else
   ``<method>-<path>``).
4. Merge path-level and operation-level parameters, then expand the request
   body: JSON bodies become one parameter per property, multipart bodies
   become form parameters (``string/binary`` properties turn into file
   parameters), and raw ``application/octet-stream`` bodies become the
   reserved :data:`RAW_BODY_PARAMETER` bound to ``--file`` or stdin.
5. Flag hidden (no summary or ``x-hidden``) and disabled (``x-disabled``)
   operations.
6. Merge plugin commands registered for this definition: a plugin command
   replaces the operation of the same name and brings its own group,
   parameters and visibility.

Any failure raises :class:`~apictl.exceptions.DefinitionParseError`; a
partially built tree is never returned.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Sequence

from apictl.exceptions import DefinitionParseError
from apictl.models import (
    COMMON_OPTIONS,
    JSON_BODY_PARAMETER,
    RAW_BODY_PARAMETER,
    Command,
    CommandParameter,
    CommandTree,
    HTTPMethod,
    ParameterLocation,
    ParameterType,
)
from apictl.parser.resolver import resolve_refs
from apictl.plugins.base import PluginCommand

DEFAULT_SERVER_URL = "https://cloud.uipath.com/{organization}/{tenant}"
"""Server URL template used when a definition declares no ``servers``."""

_MULTIPART = "multipart/form-data"
_OCTET_STREAM = "application/octet-stream"

_LOCATIONS = {
    "path": ParameterLocation.PATH,
    "query": ParameterLocation.QUERY,
    "header": ParameterLocation.HEADER,
}


def to_kebab(value: str) -> str:
    """Convert an identifier to the kebab-case form used for flags and names.

    Example::

        >>> to_kebab("folderId")
        'folder-id'
        >>> to_kebab("Buckets_GetWriteUri")
        'buckets-get-write-uri'
    """
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", value)
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", value)
    value = re.sub(r"[^A-Za-z0-9]+", "-", value)
    return value.strip("-").lower()


def schema_to_type(schema: dict[str, Any], files: bool = False) -> ParameterType:
    """Map a JSON schema fragment onto a :class:`~apictl.models.ParameterType`.

    ``string/binary`` only becomes a file parameter where *files* is set
    (multipart form fields); anywhere else the value is sent as text.
    """
    schema_type = schema.get("type", "string")
    if schema_type == "integer":
        return ParameterType.INTEGER
    if schema_type == "number":
        return ParameterType.NUMBER
    if schema_type == "boolean":
        return ParameterType.BOOLEAN
    if schema_type in ("object", "array"):
        return ParameterType.OBJECT
    if files and schema.get("format") == "binary":
        return ParameterType.BINARY
    return ParameterType.STRING


class DefinitionParser:
    """Parses definition documents, merging in plugin-provided commands.

    Args:
        plugins: Metadata of every registered plugin command. Only those
            whose ``service`` matches the parsed definition are merged.

    Example::

        parser = DefinitionParser(registry.commands())
        tree = parser.parse("orchestrator", store.load("orchestrator"))
        for group in tree.groups():
            print(group, [c.name for c in tree.commands_in(group)])
    """

    def __init__(self, plugins: Sequence[PluginCommand] = ()) -> None:
        self._plugins = tuple(plugins)

    def parse(self, name: str, document: Any) -> CommandTree:
        """Build the command tree of the definition called *name*.

        Args:
            name: Definition name; becomes the top-level command.
            document: The decoded definition document.

        Returns:
            The complete, frozen :class:`~apictl.models.CommandTree`.

        Raises:
            DefinitionParseError: On a malformed document, an unresolvable
                ``$ref``, a duplicate ``operationId`` or a duplicate flag.
        """
        if not isinstance(document, dict):
            raise DefinitionParseError(name, "document must be an object")
        resolved = resolve_refs(name, document)

        server_url, variables = self._parse_servers(name, resolved.get("servers"))
        paths = resolved.get("paths") or {}
        if not isinstance(paths, dict):
            raise DefinitionParseError(name, "'paths' must be an object")

        commands: list[Command] = []
        operation_ids: set[str] = set()
        for route, item in paths.items():
            if not isinstance(item, dict):
                raise DefinitionParseError(name, f"path item '{route}' must be an object")
            shared = item.get("parameters") or []
            for method in HTTPMethod:
                operation = item.get(method.value)
                if operation is None:
                    continue
                if not isinstance(operation, dict):
                    raise DefinitionParseError(
                        name, f"operation {method.value.upper()} {route} must be an object"
                    )
                operation_id = operation.get("operationId")
                if operation_id:
                    if operation_id in operation_ids:
                        raise DefinitionParseError(
                            name, f"duplicate operationId '{operation_id}'"
                        )
                    operation_ids.add(operation_id)
                commands.append(
                    self._parse_operation(name, str(route), method, operation, shared)
                )

        commands = self._merge_plugins(name, commands)
        _check_unique_commands(name, commands)

        info = resolved.get("info") or {}
        return CommandTree(
            name=name,
            description=info.get("description") or info.get("title"),
            server_url=server_url,
            server_variables=variables,
            commands=tuple(commands),
        )

    # ------------------------------------------------------------------ #
    # Servers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _parse_servers(name: str, servers: Any) -> tuple[str, dict[str, str]]:
        if not servers:
            return DEFAULT_SERVER_URL, {}
        if not isinstance(servers, list) or not isinstance(servers[0], dict):
            raise DefinitionParseError(name, "'servers' must be a list of objects")
        server = servers[0]
        url = server.get("url")
        if not url:
            raise DefinitionParseError(name, "server entry without 'url'")
        variables: dict[str, str] = {}
        for var_name, spec in (server.get("variables") or {}).items():
            if isinstance(spec, dict) and spec.get("default") is not None:
                variables[var_name] = str(spec["default"])
        return str(url), variables

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def _parse_operation(
        self,
        name: str,
        route: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        shared: list[Any],
    ) -> Command:
        parameters = self._parse_parameters(name, shared, operation.get("parameters") or [])
        content_type: Optional[str] = None
        body = operation.get("requestBody")
        if isinstance(body, dict):
            content_type, body_params = self._parse_request_body(body)
            parameters.extend(body_params)

        command_name = to_kebab(operation.get("operationId") or "") or to_kebab(
            f"{method.value}-{route}"
        )
        _check_unique_flags(name, command_name, parameters)

        summary = operation.get("summary")
        return Command(
            service=name,
            group=_group_for(route, operation),
            name=command_name,
            summary=summary,
            description=operation.get("description"),
            method=method,
            route=route,
            parameters=tuple(parameters),
            content_type=content_type,
            hidden=not summary or bool(operation.get("x-hidden")),
            disabled=bool(operation.get("x-disabled")),
        )

    def _parse_parameters(
        self, name: str, shared: list[Any], own: list[Any]
    ) -> list[CommandParameter]:
        # Operation-level declarations override path-level ones with the same (name, in).
        merged: dict[tuple[str, str], dict[str, Any]] = {}
        for declaration in list(shared) + list(own):
            if not isinstance(declaration, dict) or "name" not in declaration:
                raise DefinitionParseError(name, f"invalid parameter declaration: {declaration!r}")
            merged[(declaration["name"], declaration.get("in", "query"))] = declaration

        parameters: list[CommandParameter] = []
        for (param_name, location_name), declaration in merged.items():
            location = _LOCATIONS.get(location_name)
            if location is None:
                continue
            schema = declaration.get("schema") or {}
            parameters.append(
                CommandParameter(
                    name=param_name,
                    flag=to_kebab(param_name),
                    type=schema_to_type(schema),
                    location=location,
                    required=bool(declaration.get("required")) or location == ParameterLocation.PATH,
                    default=schema.get("default"),
                    description=declaration.get("description"),
                    allowed_values=tuple(str(v) for v in schema.get("enum") or ()),
                )
            )
        return parameters

    def _parse_request_body(
        self, body: dict[str, Any]
    ) -> tuple[Optional[str], list[CommandParameter]]:
        content = body.get("content") or {}
        if not isinstance(content, dict) or not content:
            return None, []

        if _MULTIPART in content:
            schema = (content[_MULTIPART] or {}).get("schema") or {}
            return _MULTIPART, list(_object_properties(schema, ParameterLocation.FORM))

        json_type = next((ct for ct in content if "json" in ct), None)
        if json_type is not None:
            schema = (content[json_type] or {}).get("schema") or {}
            properties = list(_object_properties(schema, ParameterLocation.BODY))
            if properties:
                return json_type, properties
            return json_type, [
                CommandParameter(
                    name=JSON_BODY_PARAMETER,
                    flag="body",
                    type=ParameterType.OBJECT,
                    location=ParameterLocation.BODY,
                    required=bool(body.get("required")),
                    description=body.get("description") or "The JSON request body",
                )
            ]

        raw_type = _OCTET_STREAM if _OCTET_STREAM in content else next(iter(content))
        return raw_type, [
            CommandParameter(
                name=RAW_BODY_PARAMETER,
                flag="file",
                type=ParameterType.STREAM,
                location=ParameterLocation.BODY,
                required=bool(body.get("required")),
                description=body.get("description") or "The file to upload (defaults to stdin)",
            )
        ]

    # ------------------------------------------------------------------ #
    # Plugins
    # ------------------------------------------------------------------ #

    def _merge_plugins(self, name: str, commands: list[Command]) -> list[Command]:
        merged = list(commands)
        for plugin in self._plugins:
            if plugin.service != name:
                continue
            _check_unique_flags(name, plugin.name, list(plugin.parameters))
            replaced = next((i for i, cmd in enumerate(merged) if cmd.name == plugin.name), None)
            original = merged[replaced] if replaced is not None else None
            command = Command(
                service=name,
                group=plugin.group,
                name=plugin.name,
                summary=plugin.description,
                description=plugin.description,
                method=original.method if original else HTTPMethod.POST,
                route=original.route if original else "/",
                parameters=plugin.parameters,
                hidden=plugin.hidden,
                disabled=plugin.disabled,
                plugin=True,
            )
            if replaced is None:
                merged.append(command)
            else:
                merged[replaced] = command
        return merged


def _group_for(route: str, operation: dict[str, Any]) -> str:
    tags = operation.get("tags") or []
    if tags and isinstance(tags[0], str) and to_kebab(tags[0]):
        return to_kebab(tags[0])
    for segment in route.split("/"):
        if segment and not segment.startswith("{"):
            return to_kebab(segment)
    return "default"


def _object_properties(
    schema: dict[str, Any], location: ParameterLocation
) -> Iterable[CommandParameter]:
    required = set(schema.get("required") or ())
    for prop_name, prop_schema in (schema.get("properties") or {}).items():
        prop_schema = prop_schema if isinstance(prop_schema, dict) else {}
        yield CommandParameter(
            name=prop_name,
            flag=to_kebab(prop_name),
            type=schema_to_type(prop_schema, files=location == ParameterLocation.FORM),
            location=location,
            required=prop_name in required,
            default=prop_schema.get("default"),
            description=prop_schema.get("description"),
            allowed_values=tuple(str(v) for v in prop_schema.get("enum") or ()),
        )


def _check_unique_flags(name: str, command: str, parameters: list[CommandParameter]) -> None:
    seen: set[str] = set()
    for param in parameters:
        if param.flag in COMMON_OPTIONS:
            raise DefinitionParseError(
                name, f"parameter '--{param.flag}' in command '{command}' clashes with a common option"
            )
        if param.flag in seen:
            raise DefinitionParseError(
                name, f"duplicate parameter '--{param.flag}' in command '{command}'"
            )
        seen.add(param.flag)


def _check_unique_commands(name: str, commands: list[Command]) -> None:
    seen: set[tuple[str, str]] = set()
    for command in commands:
        key = (command.group, command.name)
        if key in seen:
            raise DefinitionParseError(
                name, f"duplicate command '{command.group} {command.name}'"
            )
        seen.add(key)
