"""
Caching package for the BFF.

Holds the in-memory TTL store used for per-tenant directory and region
entries.
"""

from .cache_store import CacheEntry, CacheStore

__all__ = ["CacheEntry", "CacheStore"]
