"""GitHub services."""

from .cache import CacheEntry, ResponseCache
from .client import GitHubApiClient
from .resolver import ReleaseResolver

__all__ = ["CacheEntry", "GitHubApiClient", "ReleaseResolver", "ResponseCache"]
