"""Shared :class:`httpx.Client` factory for executors and plugin commands.

Every outgoing request of an invocation goes through a client made by
:func:`create_client`, so the ``insecure`` and ``debug`` switches behave the
same for generic operations and for plugin commands.

With ``debug`` enabled, event hooks echo each request (method, URL, headers,
body when it is in memory) and each response (status, headers, body) to
stdout. Authorization header values are masked.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import click
import httpx

from apictl.exceptions import ConnectionError_

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

_MASKED_HEADERS = frozenset({"authorization", "proxy-authorization"})


def create_client(
    *,
    insecure: bool = False,
    debug: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
    timeout: float = DEFAULT_TIMEOUT,
    echo_response_body: bool = True,
) -> httpx.Client:
    """Create a client honouring the invocation's TLS and debug settings.

    Args:
        insecure: Disable TLS certificate verification.
        debug: Echo requests and responses to stdout.
        transport: Optional transport (tests inject :class:`httpx.MockTransport`).
        timeout: Request timeout in seconds.
        echo_response_body: Whether the debug echo reads and prints response
            bodies. Streamed downloads turn this off so they stay streamed.
    """
    hooks: dict[str, list[Callable]] = {"request": [], "response": []}
    if debug:
        hooks["request"].append(_echo_request)
        hooks["response"].append(
            _echo_response if echo_response_body else _echo_response_head
        )
    return httpx.Client(
        transport=transport,
        verify=not insecure,
        timeout=timeout,
        follow_redirects=True,
        event_hooks=hooks,
    )


def send(client: httpx.Client, request: httpx.Request, *, stream: bool = False) -> httpx.Response:
    """Send *request*, mapping transport failures to :class:`ConnectionError_`."""
    logger.debug("%s %s", request.method, request.url)
    try:
        return client.send(request, stream=stream)
    except httpx.RequestError as exc:
        raise ConnectionError_(str(exc) or exc.__class__.__name__) from exc


# --- Debug echo ---


def _headers_text(headers: httpx.Headers) -> str:
    lines = []
    for name, value in headers.items():
        if name.lower() in _MASKED_HEADERS:
            value = "***"
        lines.append(f"{name}: {value}")
    return "\n".join(lines)


def _echo_request(request: httpx.Request) -> None:
    click.echo(f"{request.method} {request.url}")
    click.echo(_headers_text(request.headers))
    try:
        body = request.content
    except httpx.RequestNotRead:
        body = None
    click.echo("")
    if body:
        click.echo(body.decode("utf-8", errors="replace"))
    click.echo("")


def _echo_response_head(response: httpx.Response) -> None:
    click.echo(f"{response.http_version} {response.status_code} {response.reason_phrase}")
    click.echo(_headers_text(response.headers))
    click.echo("")


def _echo_response(response: httpx.Response) -> None:
    _echo_response_head(response)
    response.read()
    if response.content:
        click.echo(response.text)
    click.echo("")
