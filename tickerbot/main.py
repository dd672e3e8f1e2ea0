from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tickerbot.api.routes import router
from tickerbot.config.settings import Settings, get_settings
from tickerbot.services.quote_cache import QuoteCache, RedisQuoteCache
from tickerbot.services.supervisor import WatcherSupervisor


def build_supervisor(settings: Settings) -> WatcherSupervisor:
    cache = None
    if settings.TICKER_CACHE_BACKEND == "memory":
        cache = QuoteCache()
    elif settings.TICKER_CACHE_BACKEND == "redis":
        cache = RedisQuoteCache.from_url(settings.TICKER_REDIS_URL)
    return WatcherSupervisor(cache=cache, cache_ttl=settings.TICKER_CACHE_TTL_SEC)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()
    logging.basicConfig(
        level=settings.TICKER_LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if app.state.supervisor is None:
        app.state.supervisor = build_supervisor(settings)
    logging.getLogger("tickerbot").info("[APP][start] cache=%s", settings.TICKER_CACHE_BACKEND)

    try:
        yield
    finally:
        app.state.supervisor.shutdown_all()
        logging.getLogger("tickerbot").info("[APP][stop]")


app = FastAPI(title="Ticker Presence Bot", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.supervisor = None
