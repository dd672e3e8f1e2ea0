from __future__ import annotations

import threading
import time
from typing import Any, Callable, Protocol

from tickerbot.schemas.quote import Quote


class QuoteCacheBackend(Protocol):
    def get(self, key: str) -> Quote | None: ...

    def set(self, key: str, quote: Quote, ttl: int) -> None: ...


class QuoteCache:
    """In-process TTL cache shared by crypto watchers."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._rows: dict[str, tuple[float, Quote]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Quote | None:
        now = self._clock()
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                self.misses += 1
                return None
            expires_at, quote = row
            if now >= expires_at:
                self._rows.pop(key, None)
                self.misses += 1
                return None
            self.hits += 1
            return quote.model_copy()

    def set(self, key: str, quote: Quote, ttl: int) -> None:
        with self._lock:
            self._rows[key] = (self._clock() + ttl, quote.model_copy())

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()

    def metrics(self) -> dict[str, int]:
        with self._lock:
            return {"cached_keys": len(self._rows), "hits": self.hits, "misses": self.misses}


class RedisQuoteCache:
    """Redis-backed cache; quotes are stored as JSON under ``<prefix><key>``."""

    def __init__(self, client: Any, prefix: str = "tickerbot:quote:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisQuoteCache":
        import redis

        return cls(redis.Redis.from_url(url), **kwargs)

    def get(self, key: str) -> Quote | None:
        raw = self.client.get(f"{self.prefix}{key}")
        if raw is None:
            return None
        return Quote.model_validate_json(raw)

    def set(self, key: str, quote: Quote, ttl: int) -> None:
        self.client.set(f"{self.prefix}{key}", quote.model_dump_json(), ex=ttl)
