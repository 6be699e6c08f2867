"""Credential cache for tokens obtained by the OAuth and bearer authenticators.

Tokens are stored with an absolute expiry instant. A lookup that finds a
missing or expired entry is a cache miss, never an error, so callers simply
authenticate again.

:class:`FileCache` persists entries across invocations through
:mod:`diskcache`; :class:`MemoryCache` keeps them in a dict and is what the
test suite injects. Both are passed into the authenticators that need them;
there is no process-wide cache instance.

Concurrent invocations are not synchronised: two processes that miss at the
same time both authenticate and both write, and the last write wins.

Cache keys are SHA-256 hashes of the auth settings that identify a token
(see :func:`make_cache_key`), so secrets never appear in key names.
"""

from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import diskcache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached credential: the token and the epoch second it expires at."""

    token: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.expires_at <= (time.time() if now is None else now)


def make_cache_key(*parts: str) -> str:
    """Build a stable cache key from the settings that identify a credential.

    Example::

        key = make_cache_key("oauth", client_id, scopes, identity_uri)
    """
    raw = "|".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()


class CredentialCache(ABC):
    """Key-value store of :class:`CacheEntry` objects."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, or ``None`` if missing or expired."""
        ...

    @abstractmethod
    def set(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*, replacing any previous entry."""
        ...


class FileCache(CredentialCache):
    """Disk-backed credential cache.

    Args:
        cache_dir: Root directory for the cache. An ``auth/`` subdirectory
            is created inside it.

    Example::

        cache = FileCache(get_cache_dir())
        cache.set(key, CacheEntry(token="abc", expires_at=time.time() + 3600))
        hit = cache.get(key)
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._directory = Path(cache_dir) / "auth"
        self._cache = diskcache.Cache(str(self._directory))

    def get(self, key: str) -> Optional[CacheEntry]:
        data = self._cache.get(key)
        if not isinstance(data, dict):
            logger.debug("Credential cache miss for %s", key[:12])
            return None
        entry = CacheEntry(token=data["token"], expires_at=float(data["expires_at"]))
        if entry.is_expired():
            logger.debug("Credential cache entry %s expired", key[:12])
            return None
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        ttl = max(entry.expires_at - time.time(), 0)
        self._cache.set(
            key,
            {"token": entry.token, "expires_at": entry.expires_at},
            expire=ttl or None,
        )

    def clear(self) -> None:
        """Remove all cached credentials."""
        self._cache.clear()

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()


class MemoryCache(CredentialCache):
    """In-process credential cache, used where nothing may touch the disk."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired():
            return None
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
