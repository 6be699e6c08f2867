"""Credential caching for apictl.

This package provides :class:`FileCache`, which stores tokens obtained by
the OAuth and bearer authenticators on disk using :mod:`diskcache`, and
:class:`MemoryCache`, an in-process stand-in. Entries carry an absolute
expiry; expired entries read as misses.
"""

from apictl.cache.cache import (
    CacheEntry,
    CredentialCache,
    FileCache,
    MemoryCache,
    make_cache_key,
)

__all__ = ["CacheEntry", "CredentialCache", "FileCache", "MemoryCache", "make_cache_key"]
