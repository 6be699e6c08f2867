"""Streamed file transfer to and from Orchestrator storage buckets.

Bucket content lives in blob storage. Orchestrator hands out a pre-signed
URI for each transfer:

- ``GET <tenant>/orchestrator_/odata/Buckets(<key>)/UiPath.Server.Configuration.OData.GetWriteUri``
  (``GetReadUri`` for downloads) with ``path`` and ``expiryInMinutes=0`` as
  query parameters and the folder in ``X-UIPATH-OrganizationUnitId``. The
  response is ``{"Uri": "...", "Headers": {...}}``.
- The file is then sent to (``PUT``, ``x-ms-blob-type: BlockBlob``) or read
  from (``GET``) that URI. Credentials are only sent to Orchestrator, never
  to the blob URI.

Neither direction holds the whole file in memory: uploads stream from the
file handle in chunks and downloads copy chunks to the output stream.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Optional

import httpx

from apictl.exceptions import ApictlError, UpstreamError
from apictl.executor.client import create_client, send
from apictl.executor.context import ExecutionContext, FileReference, iter_chunks
from apictl.executor.http_executor import request_headers
from apictl.models import CommandParameter, ParameterLocation, ParameterType
from apictl.output import binary_stdout
from apictl.plugins.base import CommandPlugin, PluginCommand

logger = logging.getLogger(__name__)

SERVICE = "orchestrator"
GROUP = "buckets"
SERVICE_NAME = "Orchestrator"

FOLDER_HEADER = "X-UIPATH-OrganizationUnitId"

_FOLDER_ID = CommandParameter(
    name=FOLDER_HEADER,
    flag="folder-id",
    type=ParameterType.INTEGER,
    location=ParameterLocation.HEADER,
    required=True,
    description="Folder/OrganizationUnit Id",
)
_KEY = CommandParameter(
    name="key",
    flag="key",
    type=ParameterType.INTEGER,
    location=ParameterLocation.PATH,
    required=True,
    description="The Bucket Id",
)
_PATH = CommandParameter(
    name="path",
    flag="path",
    location=ParameterLocation.QUERY,
    required=True,
    description="The BlobFile full path",
)


class _BucketCommand(CommandPlugin):
    """Shared plumbing: resolve the pre-signed blob URI for a bucket file."""

    uri_function = ""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport

    def _blob_location(
        self, client: httpx.Client, context: ExecutionContext
    ) -> tuple[str, dict[str, str]]:
        base = context.service_uri("orchestrator_")
        key = context.get("key")
        headers = request_headers(context)
        request = client.build_request(
            "GET",
            f"{base}/odata/Buckets({key})/UiPath.Server.Configuration.OData.{self.uri_function}",
            params={"path": context.get("path"), "expiryInMinutes": "0"},
            headers=headers,
        )
        response = send(client, request)
        if not response.is_success:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise ApictlError(f"Error parsing json response: {exc}") from exc
        uri = data.get("Uri") if isinstance(data, dict) else None
        if not uri:
            raise ApictlError(f"Error parsing json response: missing Uri in '{response.text}'")
        return uri, _blob_headers(data.get("Headers"))


class UploadCommand(_BucketCommand):
    """Upload a file to a storage bucket."""

    uri_function = "GetWriteUri"

    @property
    def command(self) -> PluginCommand:
        return PluginCommand(
            service=SERVICE,
            group=GROUP,
            name="upload",
            description="Uploads the provided file to the storage bucket",
            parameters=(
                _FOLDER_ID,
                _KEY,
                _PATH,
                CommandParameter(
                    name="file",
                    flag="file",
                    type=ParameterType.BINARY,
                    location=ParameterLocation.BODY,
                    required=True,
                    description="The file to upload (defaults to stdin)",
                ),
            ),
        )

    def execute(self, context: ExecutionContext) -> str:
        file: FileReference = context.get("file")
        with create_client(
            insecure=context.insecure, debug=context.debug, transport=self._transport
        ) as client:
            uri, headers = self._blob_location(client, context)
            headers["x-ms-blob-type"] = "BlockBlob"
            with file.open() as handle:
                size = file.size()
                if size is not None:
                    headers["Content-Length"] = str(size)
                request = client.build_request(
                    "PUT", uri, headers=headers, content=iter_chunks(handle)
                )
                response = send(client, request)
        if not response.is_success:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
        return ""


class DownloadCommand(_BucketCommand):
    """Download a file from a storage bucket to stdout."""

    uri_function = "GetReadUri"

    @property
    def command(self) -> PluginCommand:
        return PluginCommand(
            service=SERVICE,
            group=GROUP,
            name="download",
            description="Downloads the file with the given path from the bucket",
            parameters=(_FOLDER_ID, _KEY, _PATH),
        )

    def execute(self, context: ExecutionContext) -> str:
        sink: BinaryIO = context.output or binary_stdout()
        with create_client(
            insecure=context.insecure,
            debug=context.debug,
            transport=self._transport,
            echo_response_body=False,
        ) as client:
            uri, headers = self._blob_location(client, context)
            request = client.build_request("GET", uri, headers=headers)
            response = send(client, request, stream=True)
            try:
                if not response.is_success:
                    response.read()
                    raise UpstreamError(SERVICE_NAME, response.status_code, response.text)
                for chunk in response.iter_bytes():
                    sink.write(chunk)
                sink.flush()
            finally:
                response.close()
        return ""


def _blob_headers(raw: Any) -> dict[str, str]:
    """Normalise the ``Headers`` of a blob URI response.

    Orchestrator returns either a plain mapping or parallel ``Keys`` and
    ``Values`` lists.
    """
    if not isinstance(raw, dict):
        return {}
    if "Keys" in raw and "Values" in raw:
        return {str(k): str(v) for k, v in zip(raw["Keys"] or [], raw["Values"] or [])}
    return {str(k): str(v) for k, v in raw.items()}
