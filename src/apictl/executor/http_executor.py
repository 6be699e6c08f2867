"""Generic HTTP execution of a bound command.

:class:`HttpExecutor` turns an :class:`~apictl.executor.context.ExecutionContext`
into exactly one HTTP request:

- URL: base URI + route, with path parameters substituted (URL-quoted).
- Headers: profile defaults, then header parameters, then auth headers;
  a later source replaces a header of the same name.
- Body, by what the command declares:

  * form parameters -> ``multipart/form-data`` (file values as file parts),
  * the reserved ``$body`` parameter -> that JSON value,
  * other body parameters -> a JSON object keyed by wire name,
  * the reserved ``$file`` parameter -> the raw bytes, streamed in chunks.

Files are opened while the body is produced and closed when the request
finishes, whatever the outcome. Nothing is retried.
"""

from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from typing import Any, Optional
from urllib.parse import quote

import httpx

from apictl.exceptions import UpstreamError
from apictl.executor.client import create_client, send
from apictl.executor.context import ExecutionContext, FileReference, iter_chunks
from apictl.models import (
    JSON_BODY_PARAMETER,
    RAW_BODY_PARAMETER,
    ParameterLocation,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "Server"
"""Service name used in the error message of non-2xx responses."""


def to_text(value: Any) -> str:
    """Render a bound value the way it appears in a URL or header."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def request_headers(context: ExecutionContext) -> httpx.Headers:
    """Merge the headers of a request, later sources winning.

    Order: ``Accept``, the profile's ``header`` map, header parameters, auth.
    Names compare case-insensitively.
    """
    headers = httpx.Headers({"Accept": "application/json"})
    headers.update(context.default_headers)
    headers.update({k: to_text(v) for k, v in context.values(ParameterLocation.HEADER).items()})
    headers.update(context.auth_headers)
    return headers


def build_url(context: ExecutionContext) -> str:
    """Join the base URI and the route, substituting path parameters."""
    route = context.command.route
    for name, value in context.values(ParameterLocation.PATH).items():
        route = route.replace("{" + name + "}", quote(to_text(value), safe=""))
    return context.base_uri.rstrip("/") + "/" + route.lstrip("/")


class HttpExecutor:
    """Send the request described by an execution context.

    Args:
        transport: Optional httpx transport (tests inject a mock).
        timeout: Request timeout in seconds.

    Example::

        response = HttpExecutor().execute(context)
        print(response.json())
    """

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 60.0,
    ) -> None:
        self._transport = transport
        self._timeout = timeout

    def execute(self, context: ExecutionContext) -> httpx.Response:
        """Send the request and return the (fully read) 2xx response.

        Raises:
            FileNotFoundError_: If a file parameter points at a missing file.
            ConnectionError_: On transport failures.
            UpstreamError: On any non-2xx status code.
        """
        command = context.command
        headers = request_headers(context)
        query = {k: to_text(v) for k, v in context.values(ParameterLocation.QUERY).items()}

        with ExitStack() as stack:
            body = self._build_body(context, stack, headers)
            client = stack.enter_context(
                create_client(
                    insecure=context.insecure,
                    debug=context.debug,
                    transport=self._transport,
                    timeout=self._timeout,
                )
            )
            request = client.build_request(
                command.method.value,
                build_url(context),
                params=query,
                headers=headers,
                **body,
            )
            response = send(client, request)

        if not response.is_success:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
        return response

    # ------------------------------------------------------------------ #
    # Body
    # ------------------------------------------------------------------ #

    def _build_body(
        self,
        context: ExecutionContext,
        stack: ExitStack,
        headers: httpx.Headers,
    ) -> dict[str, Any]:
        form = context.values(ParameterLocation.FORM)
        if form:
            return self._multipart(form, stack)

        body = context.values(ParameterLocation.BODY)
        raw = body.pop(RAW_BODY_PARAMETER, None)
        if isinstance(raw, FileReference):
            handle = stack.enter_context(raw.open())
            headers["Content-Type"] = context.command.content_type or "application/octet-stream"
            size = raw.size()
            if size is not None:
                headers["Content-Length"] = str(size)
            return {"content": iter_chunks(handle)}
        if JSON_BODY_PARAMETER in body:
            return {"json": body[JSON_BODY_PARAMETER]}
        if body:
            return {"json": body}
        return {}

    def _multipart(self, form: dict[str, Any], stack: ExitStack) -> dict[str, Any]:
        data: dict[str, str] = {}
        files: dict[str, tuple[str, Any]] = {}
        for name, value in form.items():
            if isinstance(value, FileReference):
                files[name] = (value.filename, stack.enter_context(value.open()))
            else:
                data[name] = to_text(value)
        if not files:
            # httpx only switches to multipart when there is at least one file
            return {"files": {name: (None, text) for name, text in data.items()}}
        return {"data": data, "files": files}
