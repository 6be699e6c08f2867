"""Response formatting bridge -- maps :class:`httpx.Response` to the output system.

After an HTTP call completes, :func:`format_api_response` routes the body
through :meth:`~apictl.output.OutputManager.format_response`, which applies
the profile's output mode. No status line is printed: stdout carries the
body only and a successful call leaves stderr empty.

See Also:
    :mod:`apictl.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Any

import httpx

from apictl.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the body of *response* using the global output system."""
    data = extract_response_data(response)
    if data is not None:
        get_output().format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails (e.g. the
    response is HTML or plain text), returns the raw text. Returns ``None``
    for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        return response.text
