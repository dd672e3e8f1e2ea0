from __future__ import annotations

import logging
import threading
from typing import Callable

from tickerbot.errors import WatcherExistsError
from tickerbot.integrations.discord_session import DiscordSession
from tickerbot.schemas.instrument import InstrumentConfig
from tickerbot.schemas.watcher import WatcherRuntimeState
from tickerbot.services.presence import ChatSession
from tickerbot.services.quote_cache import QuoteCacheBackend
from tickerbot.services.quote_sources import QuoteClients, build_quote_source, resolve_fx_rate
from tickerbot.services.watcher import InstrumentWatcher

logger = logging.getLogger(__name__)


class WatcherSupervisor:
    def __init__(
        self,
        *,
        clients: QuoteClients | None = None,
        session_factory: Callable[[str], ChatSession] = DiscordSession,
        cache: QuoteCacheBackend | None = None,
        cache_ttl: int = 60,
    ) -> None:
        self.clients = clients or QuoteClients()
        self.session_factory = session_factory
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._lock = threading.Lock()
        self._watchers: dict[str, InstrumentWatcher] = {}

    def _resolve_fx(self, currency: str) -> float:
        return resolve_fx_rate(self.clients.yahoo, currency)

    def create(self, config: InstrumentConfig, token: str) -> WatcherRuntimeState:
        with self._lock:
            existing = self._watchers.get(config.key)
            if existing is not None and existing.status().status != "STOPPED":
                raise WatcherExistsError(config.key)

            watcher = InstrumentWatcher(
                config,
                source=build_quote_source(config, self.clients, cache=self.cache, cache_ttl=self.cache_ttl),
                session=self.session_factory(token),
                fx_resolver=self._resolve_fx,
                logger=logging.getLogger(f"tickerbot.watcher.{config.key}"),
            )
            self._watchers[config.key] = watcher

        watcher.start()
        logger.info("[SUPERVISOR][watcher_created] key=%s", config.key)
        return watcher.status()

    def get(self, key: str) -> WatcherRuntimeState | None:
        with self._lock:
            watcher = self._watchers.get(key)
        return watcher.status() if watcher else None

    def list(self) -> list[WatcherRuntimeState]:
        with self._lock:
            watchers = list(self._watchers.values())
        return [w.status() for w in watchers]

    def remove(self, key: str) -> bool:
        with self._lock:
            watcher = self._watchers.pop(key, None)
        if watcher is None:
            return False
        watcher.shutdown(wait=True)
        logger.info("[SUPERVISOR][watcher_removed] key=%s", key)
        return True

    def shutdown_all(self) -> None:
        with self._lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        for watcher in watchers:
            watcher.shutdown()
        for watcher in watchers:
            watcher.join(timeout=1.0)
