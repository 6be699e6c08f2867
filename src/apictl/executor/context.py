"""Request-ready state of one command invocation.

:class:`ExecutionContext` is built once per invocation by
:class:`~apictl.executor.builder.ContextBuilder` and handed unchanged to
either the HTTP executor or a plugin command. File-typed values are carried
as :class:`FileReference` objects that open their file lazily, so that a
missing file is reported while the request body is produced and not while
arguments are bound.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, Optional
from urllib.parse import urlsplit

from apictl.exceptions import ConfigError, FileNotFoundError_
from apictl.models import Command, ParameterLocation

CHUNK_SIZE = 64 * 1024
"""Size of the pieces a streamed request body is sent in."""


@dataclass(frozen=True)
class FileReference:
    """A file parameter value: a filename plus either a path or an open stream.

    Files opened from ``path`` are owned by :meth:`open` and closed when its
    ``with`` block ends, whatever the outcome. Streams passed in (standard
    input) belong to the caller and are never closed here.
    """

    filename: str
    path: Optional[str] = None
    stream: Optional[BinaryIO] = field(default=None, compare=False)

    @classmethod
    def from_path(cls, path: str) -> FileReference:
        return cls(filename=os.path.basename(path) or path, path=path)

    @classmethod
    def from_stream(cls, stream: BinaryIO, filename: str = "file") -> FileReference:
        return cls(filename=filename, stream=stream)

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Yield a readable binary handle for the referenced content.

        Raises:
            FileNotFoundError_: If ``path`` does not point at a file.
        """
        if self.stream is not None:
            yield self.stream
            return
        assert self.path is not None
        try:
            handle = open(self.path, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise FileNotFoundError_(self.path) from exc
        with handle:
            yield handle

    def size(self) -> Optional[int]:
        """Return the content length when it is known up front."""
        if self.path is not None:
            try:
                return os.path.getsize(self.path)
            except OSError:
                return None
        return None


def iter_chunks(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield *handle*'s content piece by piece without buffering it whole."""
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            return
        yield chunk


@dataclass(frozen=True)
class ExecutionParameter:
    """A bound parameter: wire name, request location and typed value."""

    name: str
    value: Any
    location: ParameterLocation


@dataclass
class ExecutionContext:
    """Everything needed to send one request.

    Attributes:
        command: The command being executed.
        base_uri: Server URL with every placeholder expanded.
        organization: Resolved organization, when the server URL uses one.
        tenant: Resolved tenant, when the server URL uses one.
        parameters: Bound parameters in declaration order.
        default_headers: The profile's ``header`` map. Sent unless a header
            parameter or the authenticator supplies the same header.
        auth_headers: Headers produced by the authenticator chain.
        insecure: Disable TLS certificate verification.
        debug: Echo requests and responses to stdout.
        output: Binary sink for commands that produce raw bytes (downloads).
    """

    command: Command
    base_uri: str
    organization: Optional[str] = None
    tenant: Optional[str] = None
    parameters: list[ExecutionParameter] = field(default_factory=list)
    default_headers: dict[str, str] = field(default_factory=dict)
    auth_headers: dict[str, str] = field(default_factory=dict)
    insecure: bool = False
    debug: bool = False
    output: Optional[BinaryIO] = None

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value bound to the parameter with wire name *name*."""
        for param in self.parameters:
            if param.name == name:
                return param.value
        return default

    def values(self, location: ParameterLocation) -> dict[str, Any]:
        """Return the bound values for one request location, keyed by wire name."""
        return {p.name: p.value for p in self.parameters if p.location == location}

    def service_uri(self, service: str) -> str:
        """Return ``<scheme>://<host>/<organization>/<tenant>/<service>``.

        Plugin commands address services next to the definition's own, on
        the same host.

        Raises:
            ConfigError: If organization or tenant is not set.
        """
        if not self.organization:
            raise ConfigError("Organization is not set")
        if not self.tenant:
            raise ConfigError("Tenant is not set")
        parts = urlsplit(self.base_uri)
        return f"{parts.scheme}://{parts.netloc}/{self.organization}/{self.tenant}/{service}"
