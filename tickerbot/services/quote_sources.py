from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from tickerbot.errors import FormatError, TransientFetchError
from tickerbot.integrations.coingecko import CoinGeckoClient
from tickerbot.integrations.oneinch import OneInchClient
from tickerbot.integrations.pancakeswap import PancakeSwapClient
from tickerbot.integrations.yahoo import YahooFinanceClient
from tickerbot.schemas.instrument import InstrumentConfig
from tickerbot.schemas.quote import Quote
from tickerbot.services.quote_cache import QuoteCacheBackend

AGGREGATOR_PRICE_SCALE = 10_000_000
DEX_REFERENCE_COIN = "binancecoin"

logger = logging.getLogger(__name__)

_SESSION_PREFIX = {
    "PRE": "preMarket",
    "POST": "postMarket",
    "REGULAR": "regularMarket",
}


class QuoteSource(Protocol):
    def fetch(self) -> Quote: ...


def _to_float(value: Any, *, field_name: str) -> float:
    try:
        if value is None or value == "":
            raise ValueError(f"missing value for {field_name}")
        return float(value)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"invalid numeric value for {field_name}: {value!r}") from exc


def _fmt(field: Any) -> str | None:
    if isinstance(field, dict) and field.get("fmt") is not None:
        return str(field["fmt"])
    return None


def _raw(field: Any, default: float = 0.0) -> float:
    if isinstance(field, dict) and field.get("raw") is not None:
        try:
            return float(field["raw"])
        except (TypeError, ValueError):
            return default
    return default


class EquitySource:
    def __init__(self, client: YahooFinanceClient, ticker: str) -> None:
        self.client = client
        self.ticker = ticker

    def fetch(self) -> Quote:
        try:
            results = self.client.get_price_results(self.ticker)
        except Exception as exc:
            raise TransientFetchError(f"equity fetch failed for {self.ticker}: {exc}") from exc
        if not results:
            raise TransientFetchError(f"provider returned no results for {self.ticker}")
        return self.normalize(results[0])

    def normalize(self, price: dict) -> Quote:
        state = str(price.get("marketState") or "").upper()
        session = state if state in ("PRE", "POST") else "REGULAR"
        prefix = _SESSION_PREFIX[session]

        regular_price = price.get("regularMarketPrice") or {}
        raw_price = _to_float(regular_price.get("raw"), field_name="regularMarketPrice")
        change_field = price.get(f"{prefix}Change") or {}
        pct_field = price.get(f"{prefix}ChangePercent") or {}
        pct_fmt = _fmt(pct_field)

        return Quote(
            symbol=str(price.get("symbol") or self.ticker),
            price=raw_price,
            change=_raw(change_field),
            change_pct=_raw(pct_field),
            price_fmt=_fmt(regular_price) or f"{raw_price:.2f}",
            change_fmt=_fmt(change_field) or "",
            change_pct_fmt=pct_fmt.rstrip("%") if pct_fmt is not None else "",
            market_session=session,
            market_cap=_fmt(price.get("marketCap")),
            circulating_supply=_fmt(price.get("circulatingSupply")),
            volume_24h=_fmt(price.get("volume24Hr")),
            session_open=_fmt(price.get("regularMarketOpen")),
            source="yahoo",
            ts=int(time.time()),
        )


class CryptoSource:
    def __init__(
        self,
        client: CoinGeckoClient,
        coin_id: str,
        cache: QuoteCacheBackend | None = None,
        cache_ttl: int = 60,
    ) -> None:
        self.client = client
        self.coin_id = coin_id
        self.cache = cache
        self.cache_ttl = cache_ttl

    def _fetch_direct(self) -> Quote:
        try:
            payload = self.client.get_coin(self.coin_id)
        except Exception as exc:
            raise TransientFetchError(f"crypto fetch failed for {self.coin_id}: {exc}") from exc
        return self.normalize(payload)

    def normalize(self, payload: dict) -> Quote:
        market = payload.get("market_data")
        if not isinstance(market, dict):
            raise TransientFetchError(f"provider returned no market data for {self.coin_id}")
        current = market.get("current_price") or {}
        change = market.get("price_change_24h_in_currency") or {}

        return Quote(
            symbol=str(payload.get("symbol") or self.coin_id),
            price=_to_float(current.get("usd"), field_name="current_price.usd"),
            change=_to_float(change.get("usd", 0.0), field_name="price_change_24h.usd"),
            change_pct=_to_float(
                market.get("price_change_percentage_24h", 0.0),
                field_name="price_change_percentage_24h",
            ),
            pair_price=_to_float(current.get("btc", 0.0), field_name="current_price.btc"),
            pair_change=_to_float(change.get("btc", 0.0), field_name="price_change_24h.btc"),
            source="coingecko",
            ts=int(time.time()),
        )

    def fetch(self) -> Quote:
        if self.cache is None:
            return self._fetch_direct()

        try:
            cached = self.cache.get(self.coin_id)
        except Exception as exc:
            raise TransientFetchError(f"cache read failed for {self.coin_id}: {exc}") from exc
        if cached is not None:
            return cached

        quote = self._fetch_direct()
        try:
            self.cache.set(self.coin_id, quote, self.cache_ttl)
        except Exception as exc:
            logger.error("[QUOTE][cache_write_error] coin=%s error=%s", self.coin_id, exc)
        return quote


class DexTokenSource:
    """On-chain pool price in a reference coin, converted to USD."""

    def __init__(
        self,
        dex_client: PancakeSwapClient,
        coin_client: CoinGeckoClient,
        contract: str,
        reference_coin: str = DEX_REFERENCE_COIN,
    ) -> None:
        self.dex_client = dex_client
        self.coin_client = coin_client
        self.contract = contract
        self.reference_coin = reference_coin

    def fetch(self) -> Quote:
        try:
            payload = self.dex_client.get_token_price(self.contract)
        except Exception as exc:
            raise TransientFetchError(f"dex fetch failed for {self.contract}: {exc}") from exc

        try:
            reference_usd = self.coin_client.get_usd_price(self.reference_coin)
        except Exception as exc:
            raise TransientFetchError(f"{self.reference_coin} price fetch failed: {exc}") from exc

        raw = _to_float(payload, field_name="price_BNB")
        return Quote(
            symbol=self.contract,
            price=reference_usd * raw,
            source="pancakeswap",
            ts=int(time.time()),
        )


class AggregatorTokenSource:
    """Aggregator quote returned as a fixed-point integer string."""

    def __init__(self, client: OneInchClient, network: str, contract: str) -> None:
        self.client = client
        self.network = network
        self.contract = contract

    def fetch(self) -> Quote:
        try:
            payload = self.client.get_token_price(self.network, self.contract)
        except Exception as exc:
            raise TransientFetchError(f"aggregator fetch failed for {self.contract}: {exc}") from exc

        raw = _to_float(payload, field_name="toTokenAmount")
        return Quote(
            symbol=self.contract,
            price=raw / AGGREGATOR_PRICE_SCALE,
            source="1inch",
            ts=int(time.time()),
        )


class QuoteClients:
    def __init__(
        self,
        *,
        yahoo: YahooFinanceClient | None = None,
        coingecko: CoinGeckoClient | None = None,
        pancakeswap: PancakeSwapClient | None = None,
        oneinch: OneInchClient | None = None,
    ) -> None:
        self.yahoo = yahoo or YahooFinanceClient()
        self.coingecko = coingecko or CoinGeckoClient()
        self.pancakeswap = pancakeswap or PancakeSwapClient()
        self.oneinch = oneinch or OneInchClient()


def build_quote_source(
    config: InstrumentConfig,
    clients: QuoteClients,
    cache: QuoteCacheBackend | None = None,
    cache_ttl: int = 60,
) -> QuoteSource:
    if config.kind == "equity":
        return EquitySource(clients.yahoo, config.symbol)
    if config.kind == "crypto":
        return CryptoSource(clients.coingecko, config.symbol, cache=cache, cache_ttl=cache_ttl)
    if config.source == "pancakeswap":
        return DexTokenSource(clients.pancakeswap, clients.coingecko, config.contract)
    return AggregatorTokenSource(clients.oneinch, config.network, config.contract)


def resolve_fx_rate(client: YahooFinanceClient, currency: str) -> float:
    """Return the USD -> ``currency`` multiplier, 0.0 meaning no conversion."""
    if currency.upper() == "USD":
        return 0.0
    results = client.get_price_results(f"{currency.upper()}=X")
    if not results:
        raise TransientFetchError(f"no exchange rate for {currency}")
    return _to_float((results[0].get("regularMarketPrice") or {}).get("raw"), field_name="fx")
