"""Token endpoint helpers shared by the OAuth and bearer authenticators."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from apictl.cache import CacheEntry
from apictl.exceptions import AuthenticationFailedError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600.0
"""Lifetime assumed when the token response has no ``expires_in``."""

EXPIRY_MARGIN = 30.0
"""Seconds subtracted from the lifetime so tokens are not used at the edge."""


def request_token(
    token_url: str,
    data: dict[str, str],
    *,
    insecure: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> dict[str, Any]:
    """POST a form-encoded grant to *token_url* and return the JSON response.

    Raises:
        AuthenticationFailedError: On transport errors, non-2xx responses,
            or a response without ``access_token``.
    """
    logger.debug("Requesting token from %s (grant_type=%s)", token_url, data.get("grant_type"))
    try:
        with httpx.Client(transport=transport, verify=not insecure, timeout=30.0) as client:
            response = client.post(
                token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token_data: dict[str, Any] = response.json()
    except httpx.HTTPStatusError as exc:
        raise AuthenticationFailedError(
            f"Token request failed with status {exc.response.status_code}: "
            f"{exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise AuthenticationFailedError(f"Token request failed: {exc}") from exc
    except ValueError as exc:
        raise AuthenticationFailedError(f"Token response is not valid JSON: {exc}") from exc

    if not isinstance(token_data, dict) or "access_token" not in token_data:
        raise AuthenticationFailedError("Token response missing 'access_token' field")
    return token_data


def to_cache_entry(token_data: dict[str, Any], now: Optional[float] = None) -> CacheEntry:
    """Convert a token response into a :class:`~apictl.cache.CacheEntry`."""
    expires_in = token_data.get("expires_in")
    lifetime = float(expires_in) if expires_in is not None else DEFAULT_EXPIRES_IN
    start = time.time() if now is None else now
    return CacheEntry(
        token=str(token_data["access_token"]),
        expires_at=start + max(lifetime - EXPIRY_MARGIN, 0.0),
    )
