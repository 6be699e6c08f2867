"""External authenticators: executables that produce auth headers.

An external authenticator is any program listed in the plugin configuration
(``plugins.yaml``)::

    authenticators:
      - name: kubernetes
        path: /usr/local/bin/k8s-auth

A profile selects it with ``auth: {type: kubernetes, ...}``. The program is
started once per invocation and receives a JSON document on stdin::

    {"url": "<base uri>", "config": {<the profile's auth block>}}

It must exit with status 0 and print a JSON document on stdout::

    {"headers": {"Authorization": "Bearer ..."}}

Anything else is an authoritative failure for the request.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Optional

from apictl.auth.base import AuthRequest, AuthResult, Authenticator
from apictl.exceptions import AuthenticationFailedError

logger = logging.getLogger(__name__)


class ExternalAuthenticator(Authenticator):
    """Delegate authentication to an executable.

    Args:
        name: The name a profile's ``auth.type`` refers to.
        path: Path of the executable to run.
        timeout: Seconds to wait for the executable to finish.
    """

    def __init__(self, name: str, path: str, timeout: float = 300.0) -> None:
        self._name = name
        self._path = path
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    def authenticate(self, request: AuthRequest) -> Optional[AuthResult]:
        if request.config.type != self._name:
            return None

        payload = json.dumps(
            {
                "url": request.url,
                "config": request.config.model_dump(by_alias=True, exclude_none=True),
            }
        )
        logger.debug("Running external authenticator '%s' (%s)", self._name, self._path)
        try:
            completed = subprocess.run(
                [self._path],
                input=payload,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise AuthenticationFailedError(
                f"Authenticator '{self._name}' could not be run: {exc}"
            ) from exc

        if completed.returncode != 0:
            detail = completed.stderr.strip() or completed.stdout.strip()
            raise AuthenticationFailedError(
                f"Authenticator '{self._name}' failed with exit code "
                f"{completed.returncode}: {detail}"
            )
        return AuthResult(headers=self._parse_headers(completed.stdout))

    def _parse_headers(self, output: str) -> dict[str, str]:
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise AuthenticationFailedError(
                f"Authenticator '{self._name}' returned invalid JSON: {exc}"
            ) from exc
        headers = data.get("headers") if isinstance(data, dict) else None
        if not isinstance(headers, dict):
            raise AuthenticationFailedError(
                f"Authenticator '{self._name}' returned no 'headers' object"
            )
        return {str(k): str(v) for k, v in headers.items()}
