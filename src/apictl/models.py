"""Canonical Pydantic models shared across all apictl modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- loaded from the YAML files in the user's config
directory:
    :class:`AuthConfig`, :class:`Profile`, :class:`Config`,
    :class:`AuthenticatorConfig` and :class:`PluginConfig`.

**Command tree models** -- produced by the definition parser and consumed by
the binder, the executors and the CLI driver:
    :class:`HTTPMethod`, :class:`ParameterType`, :class:`ParameterLocation`,
    :class:`CommandParameter`, :class:`Command` and :class:`CommandTree`.

Command tree models are frozen: once a definition has been parsed, nothing
downstream can mutate it. Configuration models that accept strategy-specific
extensions use ``extra="allow"`` so that unknown keys are preserved in
``model_extra``.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


# --- Auth Config ---


class AuthConfig(BaseModel):
    """Authentication configuration embedded in a :class:`Profile`.

    The *shape* of this block decides which authenticator claims a request:

    * ``type`` naming a configured external authenticator selects it.
    * ``pat`` selects the personal-access-token authenticator.
    * ``clientId`` + ``redirectUri`` + ``scopes`` select the interactive
      OAuth (authorization code with PKCE) flow.
    * ``clientId`` + ``clientSecret`` select the bearer (client credentials)
      flow.

    Every string option may use the ``env:VAR`` or ``file:/path`` source
    syntax understood by :func:`~apictl.config.resolve_credential`.
    External authenticators may define their own keys; extra keys are
    preserved and accessible via ``model_extra``.

    Example::

        AuthConfig(clientId="my-app", clientSecret="env:APP_SECRET")
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Optional[str] = Field(
        default=None, description="Name of an external authenticator to use"
    )
    pat: Optional[str] = Field(default=None, description="Personal access token")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    redirect_uri: Optional[str] = Field(default=None, alias="redirectUri")
    scopes: Optional[str] = Field(
        default=None, description="Space separated list of scopes"
    )
    uri: Optional[str] = Field(
        default=None, description="Identity server override (defaults to <host>/identity_)"
    )


class Profile(BaseModel):
    """A named set of connection defaults, one entry of the ``profiles`` list.

    Exactly one profile is active per invocation. Its ``path``, ``query`` and
    ``header`` maps provide fallback values for parameters of the matching
    location; ``organization`` and ``tenant`` fill the corresponding
    placeholders of a definition's server URL.

    See Also:
        :func:`~apictl.config.load_config`: Parse the profiles file.
        :meth:`Config.get_profile`: Look up a profile by name.
    """

    model_config = ConfigDict(extra="allow")

    name: str = "default"
    organization: Optional[str] = None
    tenant: Optional[str] = None
    uri: Optional[str] = Field(
        default=None, description="Override for the definition's server URL"
    )
    path: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    header: dict[str, str] = Field(default_factory=dict)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    insecure: bool = Field(default=False, description="Skip TLS certificate checks")
    debug: bool = Field(default=False, description="Echo requests and responses")
    output: str = Field(default="json", description="Output mode: json or text")
    version: Optional[str] = None


class Config(BaseModel):
    """The parsed configuration file: an ordered list of profiles."""

    profiles: list[Profile] = Field(default_factory=list)

    def get_profile(self, name: str) -> Optional[Profile]:
        """Return the profile called *name*, or ``None`` when absent."""
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None


class AuthenticatorConfig(BaseModel):
    """An external authenticator: a name and the executable implementing it."""

    name: str
    path: str


class PluginConfig(BaseModel):
    """The parsed plugin configuration file."""

    authenticators: list[AuthenticatorConfig] = Field(default_factory=list)


# --- Command Tree Models ---

RAW_BODY_PARAMETER = "$file"
"""Reserved parameter name carrying a raw (non-multipart) request body."""

JSON_BODY_PARAMETER = "$body"
"""Reserved parameter name carrying a JSON body without declared properties."""

COMMON_OPTIONS = ("debug", "insecure", "profile")
"""Flags every generated command accepts in addition to its parameters."""


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterType(str, enum.Enum):
    """Semantic type a raw CLI argument is coerced into.

    ``BINARY`` parameters name a file that is sent as a multipart part;
    ``STREAM`` parameters carry the raw request body and read standard input
    when no value is given.
    """

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    BINARY = "binary"
    STREAM = "stream"


class ParameterLocation(str, enum.Enum):
    """Where a bound parameter ends up in the outgoing request."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    FORM = "form"


class CommandParameter(BaseModel):
    """A single parameter of a :class:`Command`.

    ``name`` is the wire name used in the request; ``flag`` is the external
    kebab-case form accepted on the command line (``folderId`` becomes
    ``folder-id``).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    flag: str
    type: ParameterType = ParameterType.STRING
    location: ParameterLocation = ParameterLocation.QUERY
    required: bool = False
    default: Any = None
    description: Optional[str] = None
    allowed_values: tuple[str, ...] = ()

    @property
    def is_file(self) -> bool:
        """Whether the parameter carries a file or byte stream."""
        return self.type in (ParameterType.BINARY, ParameterType.STREAM)


class Command(BaseModel):
    """One executable operation of a definition.

    Hidden commands are parsed and invocable but left out of listings.
    Disabled commands are also left out of listings and refuse to run.
    Commands with ``plugin`` set are executed by a registered
    :class:`~apictl.plugins.base.CommandPlugin` instead of the generic HTTP
    executor.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    group: str
    name: str
    summary: Optional[str] = None
    description: Optional[str] = None
    method: HTTPMethod = HTTPMethod.GET
    route: str = "/"
    parameters: tuple[CommandParameter, ...] = ()
    content_type: Optional[str] = None
    hidden: bool = False
    disabled: bool = False
    plugin: bool = False

    @property
    def listed(self) -> bool:
        """Whether the command shows up in help output."""
        return not (self.hidden or self.disabled)

    def get_parameter(self, flag: str) -> Optional[CommandParameter]:
        """Return the parameter accepting ``--<flag>``, or ``None``."""
        for param in self.parameters:
            if param.flag == flag:
                return param
        return None


class CommandTree(BaseModel):
    """All commands of one definition, indexed by ``(group, name)``.

    The tree is plain data: commands live in an ordered tuple and lookups go
    through a private index built once after validation.

    Example::

        tree = DefinitionParser().parse("orchestrator", raw)
        upload = tree.find("buckets", "upload")
        assert upload is not None and upload.plugin
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    server_url: str
    server_variables: dict[str, str] = Field(default_factory=dict)
    commands: tuple[Command, ...] = ()

    _index: dict[tuple[str, str], Command] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._index = {(cmd.group, cmd.name): cmd for cmd in self.commands}

    def groups(self, include_unlisted: bool = False) -> list[str]:
        """Return group names in declaration order.

        A group whose commands are all hidden or disabled is only returned
        when *include_unlisted* is ``True``.
        """
        seen: dict[str, None] = {}
        for cmd in self.commands:
            if include_unlisted or cmd.listed:
                seen.setdefault(cmd.group, None)
        return list(seen)

    def commands_in(self, group: str, include_unlisted: bool = False) -> list[Command]:
        """Return the commands of *group* in declaration order."""
        return [
            cmd
            for cmd in self.commands
            if cmd.group == group and (include_unlisted or cmd.listed)
        ]

    def find(self, group: str, name: str) -> Optional[Command]:
        """Look up a command by its group and operation name."""
        return self._index.get((group, name))
