"""Document digitization via the Document Understanding digitizer.

Digitization is a long-running job:

1. ``POST <tenant>/du_/api/digitizer/digitize/start?api-version=1`` with the
   file as the multipart part ``file``. The service answers ``202 Accepted``
   with ``{"operationId": "..."}``.
2. ``GET <tenant>/du_/api/digitizer/digitize/result/<operationId>?api-version=1``
   every :attr:`DigitizeCommand.poll_interval` seconds, at most
   :attr:`DigitizeCommand.max_attempts` times. ``NotStarted`` and ``Running``
   mean keep polling; any other status is terminal and its body is returned
   pretty-printed.

The separate ``digitize-result`` operation of the definition is replaced by
:class:`DigitizeResultCommand`, which is hidden and refuses to run.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import httpx

from apictl.exceptions import (
    ApictlError,
    CommandDisabledError,
    PollingTimeoutError,
    UpstreamError,
)
from apictl.executor.client import create_client, send
from apictl.executor.context import ExecutionContext, FileReference
from apictl.executor.http_executor import request_headers
from apictl.models import CommandParameter, ParameterLocation, ParameterType
from apictl.plugins.base import CommandPlugin, PluginCommand

logger = logging.getLogger(__name__)

SERVICE = "du"
GROUP = "digitization"
SERVICE_NAME = "Digitizer"

PENDING_STATUSES = frozenset({"NotStarted", "Running"})
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class DigitizeCommand(CommandPlugin):
    """Start digitization of a file and wait for the result.

    Args:
        transport: Optional httpx transport (tests inject a mock).
        poll_interval: Seconds between two status polls.
        max_attempts: Status polls before giving up.
    """

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        poll_interval: float = 1.0,
        max_attempts: int = 60,
    ) -> None:
        self._transport = transport
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    @property
    def command(self) -> PluginCommand:
        return PluginCommand(
            service=SERVICE,
            group=GROUP,
            name="digitize",
            description="Digitize the given file",
            parameters=(
                CommandParameter(
                    name="file",
                    flag="file",
                    type=ParameterType.BINARY,
                    location=ParameterLocation.FORM,
                    required=True,
                    description="The file to digitize (defaults to stdin)",
                ),
                CommandParameter(
                    name="content-type",
                    flag="content-type",
                    location=ParameterLocation.FORM,
                    default=DEFAULT_CONTENT_TYPE,
                    description="The content type of the file",
                ),
            ),
        )

    def execute(self, context: ExecutionContext) -> str:
        base = context.service_uri("du_") + "/api/digitizer/digitize"
        file: FileReference = context.get("file")
        content_type = context.get("content-type") or DEFAULT_CONTENT_TYPE

        with create_client(
            insecure=context.insecure, debug=context.debug, transport=self._transport
        ) as client:
            operation_id = self._start(client, context, base, file, content_type)
            for attempt in range(1, self.max_attempts + 1):
                result = self._poll(client, context, base, operation_id)
                if result is not None:
                    return result
                logger.debug("Digitization %s pending (attempt %d)", operation_id, attempt)
                time.sleep(self.poll_interval)

        raise PollingTimeoutError(
            f"Digitization with operationId '{operation_id}' did not finish in time"
        )

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def _start(
        self,
        client: httpx.Client,
        context: ExecutionContext,
        base: str,
        file: FileReference,
        content_type: str,
    ) -> str:
        with file.open() as handle:
            request = client.build_request(
                "POST",
                f"{base}/start",
                params={"api-version": "1"},
                headers=request_headers(context),
                files={"file": (file.filename, handle, content_type)},
            )
            response = send(client, request)
        if response.status_code != 202:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
        operation_id = _parse_json(response).get("operationId")
        if not operation_id:
            raise ApictlError(f"Error parsing json response: missing operationId in '{response.text}'")
        return str(operation_id)

    def _poll(
        self,
        client: httpx.Client,
        context: ExecutionContext,
        base: str,
        operation_id: str,
    ) -> Optional[str]:
        request = client.build_request(
            "GET",
            f"{base}/result/{operation_id}",
            params={"api-version": "1"},
            headers=request_headers(context),
        )
        response = send(client, request)
        if response.status_code != 200:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
        data = _parse_json(response)
        if data.get("status") in PENDING_STATUSES:
            return None
        return json.dumps(data, indent=2, ensure_ascii=False)


class DigitizeResultCommand(CommandPlugin):
    """Placeholder for the definition's result operation, which cannot be run directly."""

    @property
    def command(self) -> PluginCommand:
        return PluginCommand(
            service=SERVICE,
            group=GROUP,
            name="digitize-result",
            description="Get the digitization result",
            hidden=True,
            disabled=True,
        )

    def execute(self, context: ExecutionContext) -> str:
        raise CommandDisabledError("Digitize result command not supported")


def _parse_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ApictlError(f"Error parsing json response: {exc}") from exc
    if not isinstance(data, dict):
        raise ApictlError(f"Error parsing json response: expected an object, got '{response.text}'")
    return data
