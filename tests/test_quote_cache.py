import unittest
from unittest.mock import MagicMock

from tickerbot.schemas.quote import Quote
from tickerbot.services.quote_cache import QuoteCache, RedisQuoteCache


def _quote(price: float = 1.5) -> Quote:
    return Quote(symbol="btc", price=price, change=0.1, change_pct=2.0, source="coingecko", ts=1700000000)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class QuoteCacheTest(unittest.TestCase):
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = QuoteCache(clock=clock)
        cache.set("bitcoin", _quote(), ttl=30)

        clock.now += 29
        self.assertEqual(cache.get("bitcoin").price, 1.5)
        clock.now += 1
        self.assertIsNone(cache.get("bitcoin"))

        self.assertEqual(cache.metrics(), {"cached_keys": 0, "hits": 1, "misses": 1})

    def test_returned_quote_is_a_copy(self):
        cache = QuoteCache()
        cache.set("bitcoin", _quote(), ttl=30)

        cache.get("bitcoin").price = 99.0

        self.assertEqual(cache.get("bitcoin").price, 1.5)


class RedisQuoteCacheTest(unittest.TestCase):
    def test_set_stores_json_with_expiry(self):
        client = MagicMock()
        cache = RedisQuoteCache(client)
        quote = _quote()

        cache.set("bitcoin", quote, ttl=45)

        client.set.assert_called_once_with("tickerbot:quote:bitcoin", quote.model_dump_json(), ex=45)

    def test_get_parses_json_or_returns_none(self):
        client = MagicMock()
        client.get.return_value = _quote(2.5).model_dump_json().encode("utf-8")
        cache = RedisQuoteCache(client, prefix="t:")

        self.assertEqual(cache.get("bitcoin").price, 2.5)
        client.get.assert_called_once_with("t:bitcoin")

        client.get.return_value = None
        self.assertIsNone(cache.get("bitcoin"))


if __name__ == "__main__":
    unittest.main()
