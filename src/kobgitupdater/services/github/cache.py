"""Time-boxed cache for GitHub API responses."""

import hashlib
import threading
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from kobgitupdater.logger import get_logger

logger = get_logger(__name__)

ANONYMOUS_FINGERPRINT = "anonymous"


def token_fingerprint(token: str | None) -> str:
    """Stable, non-reversible identifier of the authentication context."""
    if not token:
        return ANONYMOUS_FINGERPRINT
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


def cache_key(url: str, token: str | None) -> str:
    """Key a response by request URL and the token it was fetched with."""
    return hashlib.sha256(f"{url}|{token_fingerprint(token)}".encode()).hexdigest()


class CacheEntry(BaseModel):
    """A cached JSON payload."""

    key: str
    url: str
    payload: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResponseCache:
    """
    In-memory response cache shared by API client calls.

    Entries are only ever written for successful, JSON-decoded responses.
    All operations take the same lock so concurrent repository checks can
    share one instance.
    """

    def __init__(self, ttl: int = 3600, clock: Callable[[], float] = time.time) -> None:
        """
        Initialize the cache.

        Args:
            ttl: Lifetime of an entry in seconds
            clock: Time source, replaceable in tests
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, url: str, token: str | None) -> Any | None:  # noqa: ANN401
        key = cache_key(url, token)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.payload

    def set(self, url: str, token: str | None, payload: Any) -> None:  # noqa: ANN401
        key = cache_key(url, token)
        entry = CacheEntry(key=key, url=url, payload=payload, expires_at=self._clock() + self.ttl)
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> int:
        """Drop every entry. Returns the number of entries removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def clear_under(self, base_url: str) -> int:
        """Drop entries for ``base_url`` and every URL below it, whatever token they were fetched with."""
        base_url = base_url.rstrip("/")
        with self._lock:
            keys = [k for k, e in self._entries.items() if e.url == base_url or e.url.startswith(base_url + "/")]
            for k in keys:
                del self._entries[k]
        logger.debug(f"Evicted {len(keys)} cached responses under {base_url}")
        return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
